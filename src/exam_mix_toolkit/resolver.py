"""从格式标记中还原正确答案（必须在清除下划线之前调用）"""
from __future__ import annotations

from exam_mix_toolkit import patterns
from exam_mix_toolkit.models import QuestionType
from exam_mix_toolkit.ooxml import has_underline, is_paragraph, node_text, underline_offset

TF_TRUE = "Đ"
TF_FALSE = "S"


def _options(nodes: list) -> list:
    out = []
    for n in nodes:
        if not is_paragraph(n):
            continue
        text = node_text(n)
        m = patterns.match_option(text) or patterns.match_option_loose(text)
        if m:
            out.append((n, m))
    return out


def _resolve_mcq(nodes: list) -> str:
    for n in nodes:
        if not is_paragraph(n) or not has_underline(n):
            continue
        text = node_text(n)
        # 选项写在同一行：取下划线起点之前最近的选项标记
        if patterns.has_inline_options(text):
            return patterns.inline_option_before(text, underline_offset(n)) or ""
        m = patterns.match_option(text) or patterns.match_option_loose(text)
        if m:
            return m.group("letter").upper()
    return ""


def resolve_answer(nodes: list, qtype: QuestionType, text: str = "") -> str:
    """
    SA    → <Key=...> 的值
    MCQ   → 第一个带下划线的选项字母（大写）；选项同行时按下划线位置
    TF    → 每个小项一个字符，下划线为 Đ，否则为 S
    其他  → ""
    """
    if qtype == QuestionType.SHORT_ANSWER:
        if not text:
            text = "\n".join(node_text(n) for n in nodes)
        return patterns.extract_key(text) or ""

    if qtype == QuestionType.MCQ:
        return _resolve_mcq(nodes)

    if qtype == QuestionType.TRUE_FALSE:
        return "".join(
            TF_TRUE if has_underline(node) else TF_FALSE
            for node, _ in _options(nodes)
        )

    return ""
