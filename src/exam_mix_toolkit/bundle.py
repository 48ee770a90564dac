"""打包输出：各份试卷 + 答案表合成一个 zip"""
from __future__ import annotations
import io
import logging
import zipfile
from pathlib import Path

from exam_mix_toolkit.exporters import get_exporter
from exam_mix_toolkit.models import AnswerMatrix, Variant

logger = logging.getLogger(__name__)

BUNDLE_NAME = "Ket_Qua_Tron_De.zip"
ANSWER_KEY_STEM = "Bang_Dap_An"


def bundle_bytes(variants: list[Variant], matrix: AnswerMatrix, answer_format: str = "xlsx") -> bytes:
    exporter = get_exporter(answer_format)
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for v in sorted(variants, key=lambda v: int(v.code)):
            zf.writestr(v.filename, v.document)
        zf.writestr(f"{ANSWER_KEY_STEM}{exporter.suffix}", exporter.render(matrix))
    return buf.getvalue()


def write_bundle(
    variants: list[Variant],
    matrix: AnswerMatrix,
    output: str | Path,
    answer_format: str = "xlsx",
) -> Path:
    """output 为目录时写入 <output>/Ket_Qua_Tron_De.zip"""
    fp = Path(output)
    if fp.suffix.lower() != ".zip":
        fp = fp / BUNDLE_NAME
    fp.parent.mkdir(parents=True, exist_ok=True)
    fp.write_bytes(bundle_bytes(variants, matrix, answer_format))
    logger.info("打包完成: %s (%d 份试卷)", fp, len(variants))
    print(f"[INFO] 打包完成: {fp} ({len(variants)} 份试卷 + 答案表)")
    return fp
