from __future__ import annotations
import io
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from exam_mix_toolkit.models import AnswerMatrix
from exam_mix_toolkit.exporters import register
from exam_mix_toolkit.exporters.base import BaseExporter, INDEX_COLUMN, SHEET_NAME

_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill("solid", start_color="1F4E79")
_CENTER = Alignment(horizontal="center", vertical="center")
_THIN = Side(style="thin", color="BFBFBF")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)

INDEX_WIDTH = 5
CODE_WIDTH = 10


@register("xlsx")
class XlsxExporter(BaseExporter):
    """答案表：一行一题，一列一个试卷编号"""

    suffix = ".xlsx"

    def render(self, matrix: AnswerMatrix) -> bytes:
        rows, columns = self.flatten(matrix)

        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_NAME
        ws.append(columns)
        for row in rows:
            ws.append([row.get(key, "") for key in columns])

        for r, line in enumerate(ws.iter_rows(), 1):
            for cell in line:
                cell.alignment = _CENTER
                cell.border = _BORDER
                if r == 1:
                    cell.font = _HEADER_FONT
                    cell.fill = _HEADER_FILL

        for idx, key in enumerate(columns, 1):
            width = INDEX_WIDTH if key == INDEX_COLUMN else CODE_WIDTH
            ws.column_dimensions[get_column_letter(idx)].width = width
        ws.freeze_panes = "B2"

        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
