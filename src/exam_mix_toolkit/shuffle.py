"""洗牌引擎：选项重排、平衡答案分布、题目顺序、选项排版"""
from __future__ import annotations
import random
from typing import Sequence, TypeVar

from docx.enum.text import WD_TAB_ALIGNMENT
from docx.shared import Twips
from docx.text.paragraph import Paragraph

from exam_mix_toolkit import patterns
from exam_mix_toolkit.models import TYPE_ORDER, QuestionBlock, QuestionType
from exam_mix_toolkit.ooxml import (
    W_PPR, emphasize_span, has_rich_content, has_underline,
    is_paragraph, make_tab_run, node_text, replace_span,
)

T = TypeVar("T")

# 排版阈值（单个选项的可见字符数）
ONE_LINE_MAX = 13
TWO_LINES_MAX = 35
RICH_CONTENT_PENALTY = 20
DEFAULT_LINE_TWIPS = 9000


def shuffled(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Fisher–Yates，返回打乱后的新列表，原序列不变"""
    out = list(items)
    (rng or random).shuffle(out)
    return out


def balanced_keys(n: int, rng: random.Random | None = None) -> list[str]:
    """n 个 A-D 字母：每个字母 n//4 次，余数部分随机取不重复的字母"""
    rng = rng or random.Random()
    letters = patterns.BALANCED_LETTERS
    keys = [ch for ch in letters for _ in range(n // len(letters))]
    keys.extend(rng.sample(letters, n % len(letters)))
    rng.shuffle(keys)
    return keys


def _find_options(nodes: list) -> tuple[list[int], str | None]:
    """选项段落下标及文档中使用的分隔符（取最后一个严格匹配）"""
    indices: list[int] = []
    sep = None
    for i, n in enumerate(nodes):
        if not is_paragraph(n):
            continue
        text = node_text(n)
        m = patterns.match_option(text)
        if m:
            indices.append(i)
            sep = m.group("sep")
        elif patterns.match_option_loose(text):
            indices.append(i)
    return indices, sep


def relabel_option(p, label: str, sep: str) -> None:
    text = node_text(p)
    m = patterns.match_option(text)
    if m:
        replace_span(p, m.start("letter"), m.end("sep"), f"{label}{sep}")
        return
    m = patterns.match_option_loose(text)
    if m:
        replace_span(p, m.start("letter"), m.end("letter"), label)


def shuffle_options(
    nodes: list,
    qtype: QuestionType,
    target_label: str | None = None,
    rng: random.Random | None = None,
) -> list:
    """
    重排选项段落并按新位置重写标签，返回新的节点列表。

    MCQ 给定 target_label 且存在带下划线的正确项时，正确项固定到
    target_label 对应位置（超出选项数时取模），其余干扰项打乱填充；
    否则整体打乱。MCQ 标签统一用 "."，TF 沿用原分隔符。
    """
    indices, detected_sep = _find_options(nodes)
    if len(indices) < 2:
        return nodes

    options = [nodes[i] for i in indices]
    correct = None
    if qtype == QuestionType.MCQ:
        correct = next((n for n in options if has_underline(n)), None)

    if qtype == QuestionType.MCQ and target_label and correct is not None:
        distractors = shuffled([n for n in options if n is not correct], rng)
        target = patterns.MCQ_LABELS.index(target_label.upper()) % len(options)
        ordered = distractors[:target] + [correct] + distractors[target:]
    else:
        ordered = shuffled(options, rng)

    if qtype == QuestionType.MCQ:
        labels, sep = patterns.MCQ_LABELS, "."
    else:
        labels, sep = patterns.TF_LABELS, detected_sep or ")"

    for pos, node in enumerate(ordered):
        if pos < len(labels):
            relabel_option(node, labels[pos], sep)

    out = list(nodes)
    for slot, node in zip(indices, ordered):
        out[slot] = node
    return out


def emphasize_option_labels(nodes: list) -> None:
    """选项标签（字母 + 分隔符）加粗蓝色"""
    for n in nodes:
        if not is_paragraph(n):
            continue
        text = node_text(n)
        m = patterns.match_option(text)
        if m:
            emphasize_span(n, m.start("letter"), m.end("sep"))
        else:
            m = patterns.match_option_loose(text)
            if m:
                emphasize_span(n, m.start("letter"), m.end("letter"))


def order_questions(
    questions: list[QuestionBlock],
    shuffle: bool = True,
    rng: random.Random | None = None,
    fixed: bool = False,
) -> list[QuestionBlock]:
    """按 MCQ → TF → SA → ESSAY → UNKNOWN 分桶，桶内可打乱；fixed 时保持原顺序"""
    ordered: list[QuestionBlock] = []
    for qtype in TYPE_ORDER:
        bucket = [q for q in questions if q.type == qtype]
        if shuffle and not fixed:
            bucket = shuffled(bucket, rng)
        ordered.extend(bucket)
    return ordered


def option_weight(p) -> int:
    """去掉标签后的可见字符数，含公式/图片时加罚分"""
    text = node_text(p)
    m = patterns.match_option(text) or patterns.match_option_loose(text)
    body = text[m.end():] if m else text
    weight = len(body.strip())
    if has_rich_content(p):
        weight += RICH_CONTENT_PENALTY
    return weight


def _merge_into(dest, sources: list) -> None:
    """把 sources 的内容（pPr 除外）以制表符分隔追加到 dest"""
    for src in sources:
        dest.append(make_tab_run())
        for child in list(src):
            if child.tag != W_PPR:
                dest.append(child)
        parent = src.getparent()
        if parent is not None:
            parent.remove(src)


def _set_tab_stops(p, positions: list[int]) -> None:
    tab_stops = Paragraph(p, None).paragraph_format.tab_stops
    tab_stops.clear_all()
    for pos in positions:
        tab_stops.add_tab_stop(Twips(pos), WD_TAB_ALIGNMENT.LEFT)


def reformat_mcq_layout(option_nodes: list, line_twips: int = DEFAULT_LINE_TWIPS) -> list:
    """
    恰好 4 个选项时按最长选项决定排成 1 行 / 2 行 / 4 行，
    返回排版后的段落列表；选项数不为 4 时原样返回。
    """
    if len(option_nodes) != 4 or not all(is_paragraph(n) for n in option_nodes):
        return option_nodes

    widest = max(option_weight(n) for n in option_nodes)
    if widest <= ONE_LINE_MAX:
        first = option_nodes[0]
        _merge_into(first, option_nodes[1:])
        _set_tab_stops(first, [line_twips // 4, line_twips // 2, line_twips * 3 // 4])
        return [first]
    if widest <= TWO_LINES_MAX:
        row1, row2 = option_nodes[0], option_nodes[2]
        _merge_into(row1, [option_nodes[1]])
        _merge_into(row2, [option_nodes[3]])
        for row in (row1, row2):
            _set_tab_stops(row, [line_twips // 2])
        return [row1, row2]
    return option_nodes


def layout_question(nodes: list, line_twips: int = DEFAULT_LINE_TWIPS) -> list:
    """对题目节点中连续的 4 个选项段落做排版，其余节点不动"""
    indices, _ = _find_options(nodes)
    if len(indices) != 4 or indices != list(range(indices[0], indices[0] + 4)):
        return nodes
    start = indices[0]
    merged = reformat_mcq_layout(nodes[start:start + 4], line_twips)
    return nodes[:start] + merged + nodes[start + 4:]
