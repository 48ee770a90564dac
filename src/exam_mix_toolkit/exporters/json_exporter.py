from __future__ import annotations
import json
from exam_mix_toolkit.models import AnswerMatrix
from exam_mix_toolkit.exporters import register
from exam_mix_toolkit.exporters.base import BaseExporter


@register("json")
class JsonExporter(BaseExporter):

    suffix = ".json"

    def render(self, matrix: AnswerMatrix) -> bytes:
        data = {
            "codes": matrix.codes,
            "answers": {str(idx): matrix.rows[idx] for idx in sorted(matrix.rows)},
        }
        return json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
