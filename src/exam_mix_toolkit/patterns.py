"""文本模式库：题号、分部标题、选项前缀、答案标记

所有基于正则的判断都集中在这里，分段器和分类器只依赖下面的函数。
"""
from __future__ import annotations
import re

# "Câu 1", "Câu 01", "Bài 1", "Câu hỏi 1"，后接空白、点或冒号
QUESTION_START_RE = re.compile(r"^(\s*(?:Câu\s+hỏi|Câu|Bài)\s*\d+)([\s.:]+)?", re.IGNORECASE)
_LABEL_PREFIX_RE = re.compile(r"^(?:Câu\s+hỏi|Câu|Bài)\s*", re.IGNORECASE)

SECTION_HEADER_RE = re.compile(r"^PHẦN\s+([IVX]+)\.", re.IGNORECASE)
FREE_RESPONSE_RE = re.compile(r"^PHẦN\s+IV\.|TỰ\s+LUẬN", re.IGNORECASE)

# 选项前缀：前导空白 / 字母 / 字母与分隔符之间的空白 / 分隔符
OPTION_RE = re.compile(r"^(\s*)(?P<letter>[A-F]|[a-f])(\s*)(?P<sep>[.):])")
# 段落只剩一个字母（选项内容是公式或图片、或标记被拆到相邻 run）
OPTION_LOOSE_RE = re.compile(r"^(\s*)(?P<letter>[A-F]|[a-f])(\s*)$")

_LINE_UPPER_RE = re.compile(r"^[A-F][.):]")
_LINE_LOWER_RE = re.compile(r"^[a-f][.)]")
INLINE_OPTIONS_RE = re.compile(r"A[.):].*?B[.):].*?C[.):]")
# 行内任意位置的大写选项标记（前面不能紧跟字母或数字）
INLINE_MARKER_RE = re.compile(r"(?<!\w)([A-F])[.):]")

KEY_EXTRACT_RE = re.compile(r"<Key\s*=\s*([^>]*)>", re.IGNORECASE)
KEY_TAG_REMOVE_RE = re.compile(r"\s*<Key[^>]*>", re.IGNORECASE)

CODE_PLACEHOLDER = "[MA_DE]"
CODE_LABEL_RE = re.compile(
    r"(Mã\s*đề(?:\s*thi)?\s*:\s*)(\d+|\.{2,}|_{2,}|\[.*?\]|\s*)", re.IGNORECASE,
)

MCQ_LABELS = "ABCDEF"
TF_LABELS = "abcdef"
BALANCED_LETTERS = "ABCD"

_ROMAN = {"I": 1, "V": 5, "X": 10}


def is_question_start(text: str) -> bool:
    return QUESTION_START_RE.match(text.lstrip()) is not None


def question_label(text: str) -> str:
    """规范化题号："Bài 3" / "Câu hỏi 3" → "Câu 3" """
    m = QUESTION_START_RE.match(text.lstrip())
    if not m:
        return "Câu ?"
    return _LABEL_PREFIX_RE.sub("Câu ", m.group(1).strip())


def is_section_header(text: str) -> bool:
    return SECTION_HEADER_RE.match(text.strip()) is not None


def _roman_to_int(roman: str) -> int:
    total = 0
    prev = 0
    for ch in reversed(roman.upper()):
        v = _ROMAN[ch]
        total = total - v if v < prev else total + v
        prev = max(prev, v)
    return total


def section_slot(label: str) -> int | None:
    """分部编号 1..4（PHẦN I..IV），其他返回 None"""
    m = SECTION_HEADER_RE.match((label or "").strip())
    if not m:
        return None
    n = _roman_to_int(m.group(1))
    return n if 1 <= n <= 4 else None


def is_free_response_section(label: str) -> bool:
    return bool(label) and FREE_RESPONSE_RE.search(label.strip()) is not None


def match_option(text: str) -> re.Match | None:
    return OPTION_RE.match(text)


def match_option_loose(text: str) -> re.Match | None:
    return OPTION_LOOSE_RE.match(text)


def count_line_options(text: str) -> tuple[int, int]:
    """逐行统计行首的大写/小写选项标记数"""
    upper = lower = 0
    for line in text.split("\n"):
        line = line.strip()
        if _LINE_UPPER_RE.match(line):
            upper += 1
        if _LINE_LOWER_RE.match(line):
            lower += 1
    return upper, lower


def has_inline_options(text: str) -> bool:
    """同一行内出现 A. ... B. ... C. （选项未分行）"""
    return INLINE_OPTIONS_RE.search(text) is not None


def inline_option_before(text: str, pos: int) -> str | None:
    """pos 处或之前最后一个行内选项字母"""
    letter = None
    for m in INLINE_MARKER_RE.finditer(text):
        if m.start() > pos:
            break
        letter = m.group(1)
    return letter


def has_key_tag(text: str) -> bool:
    return KEY_EXTRACT_RE.search(text) is not None


def extract_key(text: str) -> str | None:
    m = KEY_EXTRACT_RE.search(text)
    return m.group(1).strip() if m else None


def strip_key_tags(text: str) -> str:
    return KEY_TAG_REMOVE_RE.sub("", text)
