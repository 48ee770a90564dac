from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from exam_mix_toolkit.models import AnswerMatrix, Variant

SHEET_NAME = "DapAn"
INDEX_COLUMN = "STT"


def build_answer_matrix(variants: list[Variant], total_questions: int) -> AnswerMatrix:
    """行 = 题号 1..N，列 = 按数值排序的试卷编号，缺失答案留空"""
    return AnswerMatrix.from_variants(variants, total_questions)


class BaseExporter(ABC):

    format_name = ""
    suffix = ""

    @abstractmethod
    def render(self, matrix: AnswerMatrix) -> bytes:
        ...

    def export(self, matrix: AnswerMatrix, output_path: Path) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fp = output_path.with_suffix(self.suffix)
        fp.write_bytes(self.render(matrix))
        print(f"[INFO] {self.format_name.upper()} 答案表导出完成: {fp} "
              f"({matrix.total_questions} 题, {len(matrix.codes)} 个编号)")
        return fp

    @staticmethod
    def flatten(matrix: AnswerMatrix) -> tuple[list[dict], list[str]]:
        """展平为行记录，列为 STT + 各试卷编号"""
        columns = [INDEX_COLUMN, *matrix.codes]
        rows = []
        for idx in sorted(matrix.rows):
            row = {INDEX_COLUMN: idx}
            row.update(matrix.rows[idx])
            rows.append(row)
        return rows, columns
