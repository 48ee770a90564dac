import json
import tempfile
import zipfile
from pathlib import Path
from click.testing import CliRunner
from exam_mix_toolkit.cli import cli, find_question, parse_fix
from exam_mix_toolkit.models import QuestionBlock, QuestionType
from samples import EXAM, build_docx

BROKEN_EXAM = [
    "Câu 1: Giá trị của 2 + 2 là",
    "A. 3",
    "B. 5",
    "C. 4",
    "D. 6",
]


def _setup(tmpdir: Path, paragraphs) -> Path:
    fp = tmpdir / "de_goc.docx"
    fp.write_bytes(build_docx(paragraphs))
    return fp


def _base_args(tmpdir: Path) -> list[str]:
    return ["-c", str(tmpdir / "missing.yaml"), "--prefs", str(tmpdir / "prefs.json")]


def test_parse_fix():
    assert parse_fix("Câu 3=B") == ("Câu 3", "B")
    assert parse_fix("3 = b") == ("Câu 3", "b")
    assert parse_fix("Bài 4=12,5") == ("Câu 4", "12,5")
    assert parse_fix("#7=A") == ("#7", "A")


def test_find_question():
    qs = [QuestionBlock(id=str(i), original_index=i, label=f"Câu {i % 2 + 1}",
                        type=QuestionType.MCQ) for i in range(4)]
    assert find_question(qs, "Câu 2").id == "1"
    assert find_question(qs, "#4").id == "3"
    assert find_question(qs, "#9") is None
    assert find_question(qs, "Câu 9") is None


def test_check_command():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        fp = _setup(tmpdir, EXAM)
        result = CliRunner().invoke(cli, _base_args(tmpdir) + ["check", str(fp)])
        assert result.exit_code == 0, result.output


def test_check_reports_errors():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        fp = _setup(tmpdir, BROKEN_EXAM)
        result = CliRunner().invoke(cli, _base_args(tmpdir) + ["check", str(fp)])
        assert result.exit_code == 2


def test_check_invalid_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        fp = tmpdir / "hong.docx"
        fp.write_bytes(b"not a zip")
        result = CliRunner().invoke(cli, _base_args(tmpdir) + ["check", str(fp)])
        assert result.exit_code == 1
        assert "[ERROR]" in result.output


def test_mix_command_writes_bundle_and_prefs():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        fp = _setup(tmpdir, EXAM)
        out = tmpdir / "out"
        args = _base_args(tmpdir) + [
            "mix", str(fp), "-n", "2", "--start-code", "201",
            "-o", str(out), "--seed", "5", "--yes",
        ]
        result = CliRunner().invoke(cli, args)
        assert result.exit_code == 0, result.output

        with zipfile.ZipFile(out / "Ket_Qua_Tron_De.zip") as zf:
            assert zf.namelist() == [
                "De_Tron_Ma_201.docx", "De_Tron_Ma_202.docx", "Bang_Dap_An.xlsx",
            ]

        prefs = json.loads((tmpdir / "prefs.json").read_text(encoding="utf-8"))
        assert prefs["mathmixer_next_code"] == 203

        # 下一次默认从 203 开始
        args = _base_args(tmpdir) + ["mix", str(fp), "-n", "1", "-o", str(out / "b.zip"), "--yes"]
        result = CliRunner().invoke(cli, args)
        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(out / "b.zip") as zf:
            assert "De_Tron_Ma_203.docx" in zf.namelist()


def test_mix_aborts_on_errors_without_confirmation():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        fp = _setup(tmpdir, BROKEN_EXAM)
        out = tmpdir / "out"
        args = _base_args(tmpdir) + ["mix", str(fp), "-o", str(out)]
        result = CliRunner().invoke(cli, args, input="n\n")
        assert result.exit_code == 1
        assert not out.exists()


def test_mix_fix_resolves_missing_answer():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        fp = _setup(tmpdir, BROKEN_EXAM)
        out = tmpdir / "out"
        args = _base_args(tmpdir) + [
            "mix", str(fp), "-n", "1", "-o", str(out), "--fix", "Câu 1=C",
            "-f", "json", "--keep-options",
        ]
        result = CliRunner().invoke(cli, args)
        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(out / "Ket_Qua_Tron_De.zip") as zf:
            data = json.loads(zf.read("Bang_Dap_An.json"))
        assert data["answers"]["1"]["101"] == "C"


def test_prefs_command_reset():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        (tmpdir / "prefs.json").write_text(json.dumps({"mathmixer_next_code": 150}), encoding="utf-8")
        result = CliRunner().invoke(cli, _base_args(tmpdir) + ["prefs"])
        assert result.exit_code == 0
        assert '"mathmixer_next_code": 150' in result.output

        result = CliRunner().invoke(cli, _base_args(tmpdir) + ["prefs", "--reset"])
        assert result.exit_code == 0
        assert not (tmpdir / "prefs.json").exists()
