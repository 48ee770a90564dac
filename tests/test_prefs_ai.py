import json
import tempfile
from pathlib import Path
from types import SimpleNamespace
import httpx
import openai
import pytest
import exam_mix_toolkit.ai.reviewer as reviewer_module
from exam_mix_toolkit.ai.prompt import MAX_CHARS, build_review_prompt, snapshot
from exam_mix_toolkit.ai.result import ReviewError, ReviewResult
from exam_mix_toolkit.ai.reviewer import ContentReviewer, submit_review
from exam_mix_toolkit.config import ExamHeaderConfig
from exam_mix_toolkit.models import QuestionBlock, QuestionType
from exam_mix_toolkit.prefs import HEADER_KEY, NEXT_CODE_KEY, PreferenceStore


def test_prefs_defaults_when_missing():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = PreferenceStore(Path(tmpdir) / "prefs.json").load()
        assert store.next_code == 101
        assert store.saved_next_code is None
        assert store.header == ExamHeaderConfig()


def test_prefs_roundtrip():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "sub" / "prefs.json"
        store = PreferenceStore(path).load()
        store.save_next_code(105)
        store.save_header(ExamHeaderConfig(enabled=True, school_name="THPT Lê Lợi"))

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw[NEXT_CODE_KEY] == 105
        assert raw[HEADER_KEY]["school_name"] == "THPT Lê Lợi"

        reloaded = PreferenceStore(path).load()
        assert reloaded.next_code == 105
        assert reloaded.header.enabled
        assert reloaded.header.school_name == "THPT Lê Lợi"
        # 没有残留临时文件
        assert [p.name for p in path.parent.iterdir()] == ["prefs.json"]


def test_prefs_corrupt_file_ignored():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "prefs.json"
        path.write_text("{not json", encoding="utf-8")
        store = PreferenceStore(path).load()
        assert store.next_code == 101
        store.clear()
        assert not path.exists()


def test_header_config_from_dict_ignores_unknown_and_none():
    cfg = ExamHeaderConfig.from_dict({"school_name": "A", "bogus": 1}, subject=None, year="2025")
    assert cfg.school_name == "A"
    assert cfg.year == "2025"
    assert cfg.subject == ExamHeaderConfig().subject


def _questions(n):
    return [
        QuestionBlock(id=str(i), original_index=i, label=f"Câu {i + 1}",
                      type=QuestionType.MCQ, text="x" * 800)
        for i in range(n)
    ]


def test_prompt_caps_questions_and_length():
    text = snapshot(_questions(25))
    blocks = text.split("\n---\n")
    assert len(blocks) == 20
    assert "x" * MAX_CHARS + "..." in blocks[0]
    assert "x" * (MAX_CHARS + 1) not in text
    assert "Câu 20" in build_review_prompt(_questions(25))


def test_review_result_messages():
    assert ReviewResult.success("Đề ổn.").message == "Đề ổn."
    assert ReviewResult.success("").message == "Không có phản hồi từ AI."
    assert "Quota" in ReviewResult.failure(ReviewError.QUOTA_EXCEEDED).message
    assert not ReviewResult.failure(ReviewError.TRANSIENT).ok


def test_reviewer_not_configured(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    result = ContentReviewer(provider="gemini").review(_questions(2))
    assert result.error == ReviewError.NOT_CONFIGURED
    assert result.message == "API Key chưa được cấu hình."


def test_submit_review_runs_in_background(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    future = submit_review(_questions(1), {"provider": "gemini"})
    assert future.result(timeout=10).error == ReviewError.NOT_CONFIGURED


def _failing_client(exc):
    def create(**kwargs):
        raise exc
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def _http_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://llm.local/v1/chat/completions"))


@pytest.mark.parametrize("exc, expected", [
    (openai.RateLimitError("rate limited", response=_http_response(429), body=None),
     ReviewError.QUOTA_EXCEEDED),
    (openai.APIStatusError("too many requests", response=_http_response(429), body=None),
     ReviewError.QUOTA_EXCEEDED),
    (openai.AuthenticationError("bad key", response=_http_response(401), body=None),
     ReviewError.NOT_CONFIGURED),
    (RuntimeError("RESOURCE_EXHAUSTED: daily limit"), ReviewError.QUOTA_EXCEEDED),
    (RuntimeError("Quota exceeded for project"), ReviewError.QUOTA_EXCEEDED),
    (openai.APIStatusError("server error", response=_http_response(503), body=None),
     ReviewError.TRANSIENT),
    (ConnectionResetError("connection reset by peer"), ReviewError.TRANSIENT),
])
def test_reviewer_maps_failures(monkeypatch, exc, expected):
    monkeypatch.setattr(reviewer_module, "make_client", lambda **kw: _failing_client(exc))
    result = ContentReviewer(provider="gemini", api_key="k").review(_questions(1))
    assert result.error == expected
    assert not result.ok
    assert result.message


def test_reviewer_returns_commentary(monkeypatch):
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="  Đề hợp lý. "))])
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=lambda **kw: response)))
    monkeypatch.setattr(reviewer_module, "make_client", lambda **kw: client)
    result = ContentReviewer(provider="gemini", api_key="k").review(_questions(1))
    assert result.ok
    assert result.message == "Đề hợp lý."
