"""试卷组装：为每个编号生成一份独立的 .docx"""
from __future__ import annotations
import copy
import io
import logging
import random

from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_TAB_ALIGNMENT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Mm, Pt, Twips

from exam_mix_toolkit import patterns
from exam_mix_toolkit.config import DEFAULT_START_CODE, ExamHeaderConfig, MixOptions
from exam_mix_toolkit.models import ParsedExam, QuestionBlock, QuestionType, Segment, Variant
from exam_mix_toolkit.ooxml import (
    W_P, W_SECTPR, append_block, emphasize_span, node_text,
    remove_key_tags, replace_span, set_alignment, strip_answer_formatting,
)
from exam_mix_toolkit.resolver import resolve_answer
from exam_mix_toolkit.shuffle import (
    DEFAULT_LINE_TWIPS, balanced_keys, emphasize_option_labels,
    layout_question, order_questions, shuffle_options,
)

logger = logging.getLogger(__name__)

END_MARKER = "--- HẾT ---"
SECTION_SLOTS = (1, 2, 3, 4)
_EMU_PER_TWIP = 635
_OPTION_TYPES = (QuestionType.MCQ, QuestionType.TRUE_FALSE)


def relabel_question(p, number: int) -> None:
    """把题号改为 "Câu N"（保留原分隔符），并加粗蓝色"""
    text = node_text(p)
    m = patterns.QUESTION_START_RE.match(text)
    if not m:
        return
    label = m.group(1)
    start = m.start(1) + len(label) - len(label.lstrip())
    new_label = f"Câu {number}"
    replace_span(p, start, m.end(1), new_label)
    sep = (m.group(2) or "").rstrip()
    emphasize_span(p, start, start + len(new_label) + len(sep))


def substitute_code(body, code: str) -> int:
    """替换 [MA_DE] 占位符与 "Mã đề: ..." 标签，所在段落改为右对齐"""
    changed = 0
    for p in list(body.iter(W_P)):
        original = node_text(p)
        text = original
        pos = text.rfind(patterns.CODE_PLACEHOLDER)
        while pos != -1:
            replace_span(p, pos, pos + len(patterns.CODE_PLACEHOLDER), code)
            text = node_text(p)
            pos = text.rfind(patterns.CODE_PLACEHOLDER)

        for m in reversed(list(patterns.CODE_LABEL_RE.finditer(text))):
            replace_span(p, m.start(2), m.end(2), code)

        if node_text(p) != original:
            set_alignment(p, WD_ALIGN_PARAGRAPH.RIGHT)
            changed += 1
    return changed


def _section_slot_of(segment: Segment) -> int | None:
    if segment.is_question or not segment.nodes:
        return None
    return patterns.section_slot(node_text(segment.nodes[0]))


def _is_header_segment(segment: Segment) -> bool:
    return (
        not segment.is_question and bool(segment.nodes)
        and segment.nodes[0].tag == W_P
        and patterns.is_section_header(node_text(segment.nodes[0]))
    )


class VariantAssembler:
    """根据一份解析结果生成各编号的试卷；每份试卷都从源文件重新打开"""

    def __init__(
        self,
        parsed: ParsedExam,
        header: ExamHeaderConfig | None = None,
        mix: MixOptions | None = None,
        rng: random.Random | None = None,
    ):
        self.parsed = parsed
        self.header = header or ExamHeaderConfig()
        self.mix = mix or MixOptions()
        self.rng = rng or random.Random()

        self._section_headers: dict[int, Segment] = {}
        for seg in parsed.segments:
            slot = _section_slot_of(seg)
            if slot is not None and slot not in self._section_headers:
                self._section_headers[slot] = seg
            elif _is_header_segment(seg):
                # 仅 PHẦN I-IV 会重放，其余标题下的题目并入最后一组
                logger.warning("分部标题不会出现在生成的试卷中: %s", node_text(seg.nodes[0]).strip())

    # ── 组装 ────────────────────────────────────────────
    def build(self, code: str | int) -> Variant:
        code = str(code)
        doc = self.parsed.package.open_document()
        body = doc.element.body
        body.clear_content()
        self._ensure_sect_pr(doc)

        if self.header.enabled:
            self._add_title_block(doc, code)
            self._add_footer(doc, code)
        else:
            for seg in self._preamble():
                for node in seg.nodes:
                    append_block(body, copy.deepcopy(node))

        line_twips = self._line_twips(doc)
        answers: dict[int, str] = {}
        counter = 1
        for slot, bucket in self._buckets():
            header_seg = self._section_headers.get(slot) if slot else None
            if header_seg is not None:
                self._replay_section_header(body, header_seg)
            counter = self._render_bucket(body, bucket, answers, counter, line_twips)

        self._add_end_marker(doc)
        substitute_code(body, code)

        out = io.BytesIO()
        doc.save(out)
        logger.info("生成试卷 %s: %d 题", code, len(answers))
        return Variant(code=code, document=out.getvalue(), answers=answers)

    # ── 题目 ────────────────────────────────────────────
    def _buckets(self) -> list[tuple[int | None, list[QuestionBlock]]]:
        """PHẦN I-IV 各一组，其余题目归入最后一组"""
        slotted: dict[int, list[QuestionBlock]] = {slot: [] for slot in SECTION_SLOTS}
        other: list[QuestionBlock] = []
        for q in self.parsed.questions:
            slot = patterns.section_slot(q.section)
            if slot is None:
                other.append(q)
            else:
                slotted[slot].append(q)
        buckets: list[tuple[int | None, list[QuestionBlock]]] = [
            (slot, slotted[slot]) for slot in SECTION_SLOTS
        ]
        if other:
            buckets.append((None, other))
        return buckets

    def _render_bucket(self, body, bucket, answers, counter, line_twips) -> int:
        fixed = any(patterns.is_free_response_section(q.section) for q in bucket)
        ordered = order_questions(bucket, self.mix.shuffle_questions, self.rng, fixed=fixed)

        mcq_count = sum(1 for q in ordered if q.type == QuestionType.MCQ)
        keys = iter(balanced_keys(mcq_count, self.rng) if self.mix.shuffle_options else [])

        for local_no, q in enumerate(ordered, 1):
            target = next(keys, None) if q.type == QuestionType.MCQ else None
            nodes, answer = self._render_question(q, local_no, target, line_twips, fixed)
            answers[counter] = answer
            counter += 1
            for node in nodes:
                append_block(body, node)
        return counter

    def _render_question(self, q: QuestionBlock, number: int, target: str | None,
                         line_twips: int, fixed: bool = False) -> tuple[list, str]:
        nodes = [copy.deepcopy(n) for n in q.nodes]
        # 自由作答分部里的 a) b) 是小问，不是选项
        reorder = self.mix.shuffle_options and not fixed

        if reorder and q.type in _OPTION_TYPES:
            nodes = shuffle_options(nodes, q.type, target, self.rng)

        # 下划线即答案，必须在清除格式前读取
        answer = resolve_answer(nodes, q.type, q.text)

        for node in nodes:
            strip_answer_formatting(node)
            remove_key_tags(node)

        if nodes:
            relabel_question(nodes[0], number)
        if q.type in _OPTION_TYPES:
            emphasize_option_labels(nodes)
        if reorder and q.type == QuestionType.MCQ:
            nodes = layout_question(nodes, line_twips)
        return nodes, answer

    # ── 静态内容 ────────────────────────────────────────
    def _preamble(self) -> list[Segment]:
        """第一道题或第一个分部标题之前的静态段"""
        out = []
        for seg in self.parsed.segments:
            if seg.is_question or _section_slot_of(seg) is not None:
                break
            out.append(seg)
        return out

    @staticmethod
    def _replay_section_header(body, seg: Segment) -> None:
        for i, node in enumerate(seg.nodes):
            node = copy.deepcopy(node)
            if i == 0 and node.tag == W_P:
                text = node_text(node)
                start = len(text) - len(text.lstrip())
                end = len(text.rstrip())
                if end > start:
                    emphasize_span(node, start, end)
            append_block(body, node)

    @staticmethod
    def _add_end_marker(doc) -> None:
        p = doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        p.paragraph_format.space_before = Pt(12)
        p.paragraph_format.space_after = Pt(12)
        p.add_run(END_MARKER).bold = True

    # ── 页面设置 / 页眉表格 / 页脚 ───────────────────────
    def _ensure_sect_pr(self, doc) -> None:
        body = doc.element.body
        if body.find(W_SECTPR) is not None:
            return
        if self.parsed.sect_pr is not None:
            body.append(copy.deepcopy(self.parsed.sect_pr))
            return
        body.get_or_add_sectPr()
        section = doc.sections[-1]
        section.page_width, section.page_height = Mm(210), Mm(297)
        section.left_margin = section.right_margin = Mm(20)
        section.top_margin = section.bottom_margin = Mm(20)

    @staticmethod
    def _line_twips(doc) -> int:
        section = doc.sections[-1]
        if None in (section.page_width, section.left_margin, section.right_margin):
            return DEFAULT_LINE_TWIPS
        width = section.page_width - section.left_margin - section.right_margin
        return int(width / _EMU_PER_TWIP) if width > 0 else DEFAULT_LINE_TWIPS

    def _add_title_block(self, doc, code: str) -> None:
        cfg = self.header
        table = doc.add_table(rows=2, cols=2)
        table.alignment = WD_TABLE_ALIGNMENT.CENTER
        _hide_borders(table)

        for col, width in zip(table.columns, (Twips(4500), Twips(5000))):
            col.width = width
            for cell in col.cells:
                cell.width = width

        _fill_cell(table.cell(0, 0), [
            (cfg.school_name.upper(), True, False),
            (cfg.sub_name, True, False),
            ("------------------", False, False),
        ])
        _fill_cell(table.cell(0, 1), [
            (cfg.exam_title.upper(), True, False),
            (cfg.year, True, False),
            (cfg.subject, True, False),
            (f"({cfg.time})", False, True),
        ])
        p = table.cell(1, 1).paragraphs[0]
        p.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        p.add_run(f"Mã đề thi: {code}").bold = True

        doc.add_paragraph()

    def _add_footer(self, doc, code: str) -> None:
        """每份试卷单独的页脚部件：页脚文字、制表符、编号与页码"""
        section = doc.sections[-1]
        sect_pr = section._sectPr
        for ref in sect_pr.findall(qn("w:footerReference")):
            sect_pr.remove(ref)

        footer = section.footer
        footer.is_linked_to_previous = False
        ftr = footer._element
        for child in list(ftr):
            ftr.remove(child)

        p = footer.add_paragraph()
        p.paragraph_format.tab_stops.add_tab_stop(Twips(self._line_twips(doc)), WD_TAB_ALIGNMENT.RIGHT)
        pPr = p._p.get_or_add_pPr()
        pPr.find(qn("w:tabs")).addprevious(_top_border())

        p.add_run(self.header.footer_text or "")
        p.add_run().add_tab()
        p.add_run(f"Mã đề: {code}   Trang ")
        p._p.append(_field("PAGE"))
        p.add_run(" / ")
        p._p.append(_field("NUMPAGES"))


def _fill_cell(cell, lines: list[tuple[str, bool, bool]]) -> None:
    for i, (text, bold, italic) in enumerate(lines):
        p = cell.paragraphs[0] if i == 0 else cell.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = p.add_run(text)
        run.bold = bold
        run.italic = italic


def _hide_borders(table) -> None:
    borders = OxmlElement("w:tblBorders")
    for edge in ("top", "left", "bottom", "right", "insideH", "insideV"):
        el = OxmlElement(f"w:{edge}")
        el.set(qn("w:val"), "none")
        borders.append(el)
    table._tbl.tblPr.insert_element_before(
        borders, "w:shd", "w:tblLayout", "w:tblCellMar", "w:tblLook",
        "w:tblCaption", "w:tblDescription", "w:tblPrChange",
    )


def _top_border():
    pBdr = OxmlElement("w:pBdr")
    top = OxmlElement("w:top")
    for attr, value in (("val", "single"), ("sz", "6"), ("space", "1"), ("color", "auto")):
        top.set(qn(f"w:{attr}"), value)
    pBdr.append(top)
    return pBdr


def _field(instr: str):
    fld = OxmlElement("w:fldSimple")
    fld.set(qn("w:instr"), instr)
    r = OxmlElement("w:r")
    t = OxmlElement("w:t")
    t.text = "1"
    r.append(t)
    fld.append(r)
    return fld


def generate_variants(
    parsed: ParsedExam,
    count: int,
    start_code: int = DEFAULT_START_CODE,
    header: ExamHeaderConfig | None = None,
    mix: MixOptions | None = None,
    seed: int | None = None,
) -> list[Variant]:
    """编号 start_code .. start_code + count - 1，依次生成"""
    if count < 1:
        raise ValueError(f"试卷份数必须 ≥ 1，当前: {count}")
    assembler = VariantAssembler(parsed, header, mix, random.Random(seed))
    return [assembler.build(start_code + i) for i in range(count)]
