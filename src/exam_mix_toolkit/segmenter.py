"""文档分段：把 w:body 的块节点切成静态段与题目段"""
from __future__ import annotations
import copy
import logging
from pathlib import Path
from typing import BinaryIO

from exam_mix_toolkit import patterns
from exam_mix_toolkit.classifier import build_question
from exam_mix_toolkit.docx_package import ExamPackage
from exam_mix_toolkit.models import ParsedExam, QuestionBlock, Segment
from exam_mix_toolkit.ooxml import W_SECTPR, is_paragraph, node_text

logger = logging.getLogger(__name__)


def segment_nodes(nodes: list) -> tuple[list[Segment], list[QuestionBlock]]:
    """按顺序扫描块节点

    分部标题：结束当前段，记为新的静态段，并更新当前分部；
    题号段落：结束当前段，开始新的题目段；
    其他节点：追加到当前段（没有当前段时开一个匿名静态段）。
    """
    segments: list[Segment] = []
    questions: list[QuestionBlock] = []
    section = ""
    current: Segment | None = None

    def flush():
        nonlocal current
        if current is None:
            return
        if current.is_question:
            q = build_question(current.nodes, current.text, section, len(questions))
            current.question = q
            questions.append(q)
        segments.append(current)
        current = None

    for node in nodes:
        text = node_text(node)
        # 只有段落可能是题号或分部标题；表格等一律归入当前段
        if is_paragraph(node) and patterns.is_section_header(text):
            flush()
            section = text.strip()
            current = Segment(kind="static", nodes=[copy.deepcopy(node)], text=text)
            continue
        if is_paragraph(node) and patterns.is_question_start(text):
            flush()
            current = Segment(kind="question", nodes=[copy.deepcopy(node)], text=text)
            continue

        if current is None:
            current = Segment(kind="static")
        current.nodes.append(copy.deepcopy(node))
        current.text = f"{current.text}\n{text}" if current.text else text

    flush()
    return segments, questions


def process_document(source: str | Path | bytes | BinaryIO) -> ParsedExam:
    """读取源文档并分段；结构无效时抛出 FormatError"""
    package = ExamPackage.load(source)
    doc = package.open_document()
    body = doc.element.body

    nodes = [el for el in body if isinstance(el.tag, str)]
    sect_pr = None
    if nodes and nodes[-1].tag == W_SECTPR:
        sect_pr = copy.deepcopy(nodes.pop())

    segments, questions = segment_nodes(nodes)
    logger.info(
        "分段完成: %s  段=%d  题=%d",
        package.name or "<bytes>", len(segments), len(questions),
    )
    return ParsedExam(
        package=package,
        segments=segments,
        questions=questions,
        sect_pr=sect_pr,
        parse_warnings=list(package.warnings),
    )
