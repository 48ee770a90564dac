from __future__ import annotations
import csv
import io
from exam_mix_toolkit.models import AnswerMatrix
from exam_mix_toolkit.exporters import register
from exam_mix_toolkit.exporters.base import BaseExporter


@register("csv")
class CsvExporter(BaseExporter):

    suffix = ".csv"

    def render(self, matrix: AnswerMatrix) -> bytes:
        rows, columns = self.flatten(matrix)

        buf = io.StringIO(newline="")
        writer = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
        # utf-8-sig：Excel 直接打开不乱码
        return buf.getvalue().encode("utf-8-sig")
