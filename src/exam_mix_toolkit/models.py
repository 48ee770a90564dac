from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class QuestionType(str, Enum):
    MCQ = "MCQ"                # A. B. C. D.
    TRUE_FALSE = "TF"          # a) b) c) d)
    SHORT_ANSWER = "SA"        # <Key=...>
    ESSAY = "ESSAY"            # 自由作答（PHẦN IV / TỰ LUẬN）
    UNKNOWN = "UNKNOWN"


# 每个分组内的输出顺序
TYPE_ORDER = [
    QuestionType.MCQ,
    QuestionType.TRUE_FALSE,
    QuestionType.SHORT_ANSWER,
    QuestionType.ESSAY,
    QuestionType.UNKNOWN,
]


@dataclass
class QuestionBlock:
    """一道题：从题号段落开始，到下一个题号/分部标题之前的全部块节点"""
    id: str
    original_index: int
    label: str                               # 规范化题号，如 "Câu 1"
    type: QuestionType
    nodes: list[Any] = field(default_factory=list)   # w:p / w:tbl 元素（深拷贝）
    text: str = ""                           # 纯文本，节点之间以换行分隔
    section: str = ""                        # 所属分部标题，无则为空
    is_valid: bool = True
    has_underline: bool = False              # MCQ/TF：选项是否有下划线
    has_key_tag: bool = False                # SA：是否含 <Key=...>
    option_nodes: int = 0                    # 识别为选项的段落数


@dataclass
class Segment:
    kind: str                                # "static" | "question"
    nodes: list[Any] = field(default_factory=list)
    text: str = ""
    question: QuestionBlock | None = None

    @property
    def is_question(self) -> bool:
        return self.kind == "question"


@dataclass
class ValidationIssue:
    question_index: int                      # 0-based
    question_label: str
    issue: str
    suggestion: str
    severity: str = "error"                  # error / warning
    question_id: str = ""
    question_type: QuestionType | None = None


@dataclass
class ParsedExam:
    """一份源文档的解析结果，生成所有变体时只读共享"""
    package: Any                             # ExamPackage
    segments: list[Segment] = field(default_factory=list)
    questions: list[QuestionBlock] = field(default_factory=list)
    sect_pr: Any = None                      # 末尾 w:sectPr（页面设置）
    parse_warnings: list[str] = field(default_factory=list)


@dataclass
class Variant:
    code: str
    document: bytes = b""
    answers: dict[int, str] = field(default_factory=dict)   # 全局题号 → 答案

    @property
    def filename(self) -> str:
        return f"De_Tron_Ma_{self.code}.docx"


@dataclass
class AnswerMatrix:
    codes: list[str] = field(default_factory=list)
    rows: dict[int, dict[str, str]] = field(default_factory=dict)

    @classmethod
    def from_variants(cls, variants: list[Variant], total_questions: int) -> "AnswerMatrix":
        """行 = 全局题号 1..N，列 = 按数值升序排列的试卷编号"""
        by_code = {v.code: v for v in variants}
        codes = sorted(by_code, key=int)
        rows = {
            idx: {code: by_code[code].answers.get(idx, "") for code in codes}
            for idx in range(1, total_questions + 1)
        }
        return cls(codes=codes, rows=rows)

    @property
    def total_questions(self) -> int:
        return len(self.rows)
