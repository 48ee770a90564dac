from __future__ import annotations
import io
from functools import lru_cache
from pathlib import Path
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from exam_mix_toolkit.models import AnswerMatrix
from exam_mix_toolkit.exporters import register
from exam_mix_toolkit.exporters.base import BaseExporter

TITLE = "BẢNG ĐÁP ÁN"
FALLBACK_FONT = "Helvetica"
_FONT_NAME = "AnswerKeyFont"
_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "C:/Windows/Fonts/arial.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/Library/Fonts/Arial.ttf",
)


@lru_cache(maxsize=None)
def _font() -> str:
    """越南语声调字符需要 TTF 字体；都找不到时退回 Helvetica"""
    for candidate in map(Path, _FONT_CANDIDATES):
        if not candidate.is_file():
            continue
        try:
            pdfmetrics.registerFont(TTFont(_FONT_NAME, str(candidate)))
        except TTFError:
            continue
        return _FONT_NAME
    print("[WARN] 未找到 Unicode 字体，PDF 中越南语字符可能显示异常")
    return FALLBACK_FONT


@register("pdf")
class PdfExporter(BaseExporter):

    suffix = ".pdf"

    def render(self, matrix: AnswerMatrix) -> bytes:
        font = _font()
        rows, columns = self.flatten(matrix)
        data = [columns, *([str(row.get(key, "")) for key in columns] for row in rows)]

        table = Table(data, repeatRows=1, hAlign="CENTER")
        table.setStyle(TableStyle([
            ("FONTNAME",       (0, 0), (-1, -1), font),
            ("FONTSIZE",       (0, 0), (-1, -1), 10),
            ("ALIGN",          (0, 0), (-1, -1), "CENTER"),
            ("BACKGROUND",     (0, 0), (-1, 0), colors.HexColor("#1F4E79")),
            ("TEXTCOLOR",      (0, 0), (-1, 0), colors.white),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F2F2F2")]),
            ("GRID",           (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        title = ParagraphStyle("AnswerKeyTitle", fontName=font, fontSize=16,
                               leading=22, alignment=TA_CENTER)

        buf = io.BytesIO()
        doc = SimpleDocTemplate(buf, pagesize=A4, title=TITLE,
                                leftMargin=15*mm, rightMargin=15*mm,
                                topMargin=12*mm, bottomMargin=12*mm)
        doc.build([Paragraph(TITLE, title), Spacer(1, 6*mm), table])
        return buf.getvalue()
