"""WordprocessingML 元素操作工具

段落的可见文本常被拆成多个 w:t 片段（"<Ke" + "y=5>"），所有基于正则的
改写都先在段落拼接文本上定位，再把区间映射回原始片段。
"""
from __future__ import annotations
import copy

from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import RGBColor
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from exam_mix_toolkit import patterns

W_P = qn("w:p")
W_T = qn("w:t")
W_R = qn("w:r")
W_TBL = qn("w:tbl")
W_SECTPR = qn("w:sectPr")
W_RPR = qn("w:rPr")
W_PPR = qn("w:pPr")

LABEL_COLOR = RGBColor(0x00, 0x00, 0xFF)

# 泄露答案的格式：下划线、字体颜色、高亮、底纹
_ANSWER_FORMAT_TAGS = (qn("w:u"), qn("w:color"), qn("w:highlight"), qn("w:shd"))

# 公式/图片等富内容，排版时加权
_M_NS = "http://schemas.openxmlformats.org/officeDocument/2006/math"
_RICH_TAGS = (
    f"{{{_M_NS}}}oMath", f"{{{_M_NS}}}oMathPara",
    qn("w:drawing"), qn("w:pict"), qn("w:object"),
)

_XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"


def is_paragraph(node) -> bool:
    return node.tag == W_P


def _owner_paragraph(el):
    p = el.getparent()
    while p is not None and p.tag != W_P:
        p = p.getparent()
    return p


def text_fragments(p) -> list:
    """段落直属的 w:t（不含文本框等内嵌段落）"""
    return [t for t in p.iter(W_T) if _owner_paragraph(t) is p]


def node_text(node) -> str:
    if node.tag == W_P:
        return "".join(t.text or "" for t in text_fragments(node))
    return "".join(t.text or "" for t in node.iter(W_T))


def iter_paragraphs(node):
    if node.tag == W_P:
        yield node
    for p in node.iter(W_P):
        if p is not node:
            yield p


def _run_underlined(r) -> bool:
    rPr = r.find(W_RPR)
    if rPr is None:
        return False
    u = rPr.find(qn("w:u"))
    return u is not None and u.get(qn("w:val")) != "none"


def has_underline(node) -> bool:
    """任一 run 带 w:u 且 w:val 不是 none"""
    return any(_run_underlined(r) for r in node.iter(W_R))


def underline_offset(p) -> int | None:
    """段落拼接文本中第一个带下划线字符的位置，没有则为 None"""
    offset = 0
    for t in text_fragments(p):
        text = t.text or ""
        r = t.getparent()
        if text and r.tag == W_R and _run_underlined(r):
            return offset
        offset += len(text)
    return None


def has_rich_content(node) -> bool:
    return any(next(node.iter(tag), None) is not None for tag in _RICH_TAGS)


def _set_text(t, text: str) -> None:
    t.text = text
    if text and (text[0].isspace() or text[-1].isspace()):
        t.set(_XML_SPACE, "preserve")


def replace_span(p, start: int, end: int, new_text: str) -> list:
    """把段落拼接文本中 [start, end) 替换为 new_text

    新文本写入第一个相交片段，其余相交片段只删除对应字符；
    返回被改写的 w:t 列表。
    """
    touched = []
    offset = 0
    for t in text_fragments(p):
        text = t.text or ""
        t_start, t_end = offset, offset + len(text)
        offset = t_end
        if start == end:
            hit = t_start <= start <= t_end and not touched
        else:
            hit = t_start < end and t_end > start
        if not hit:
            continue
        lo = max(start, t_start) - t_start
        hi = min(end, t_end) - t_start
        repl = "" if touched else new_text
        _set_text(t, text[:lo] + repl + text[hi:])
        touched.append(t)
    return touched


def runs_for_span(p, start: int, end: int) -> list:
    runs = []
    offset = 0
    for t in text_fragments(p):
        t_len = len(t.text or "")
        if offset < end and offset + t_len > start:
            r = t.getparent()
            if r.tag == W_R and r not in runs:
                runs.append(r)
        offset += t_len
    return runs


def split_run(r, k: int):
    """在 run 的第 k 个字符处拆成两个 run，返回右半部分（插在 r 之后）"""
    right = copy.deepcopy(r)
    r.addnext(right)
    pos = 0
    for left_el, right_el in zip(list(r), list(right)):
        if left_el.tag == W_RPR:
            continue
        if left_el.tag == W_T:
            text = left_el.text or ""
            lo, hi = pos, pos + len(text)
            pos = hi
            if hi <= k:
                right.remove(right_el)
            elif lo >= k:
                r.remove(left_el)
            else:
                _set_text(left_el, text[:k - lo])
                _set_text(right_el, text[k - lo:])
        elif pos < k:
            right.remove(right_el)
        else:
            r.remove(left_el)
    return right


def isolate_span(p, start: int, end: int) -> list:
    """拆分跨越边界的 run，使 [start, end) 恰好由若干完整 run 覆盖"""
    for boundary in (start, end):
        offset = 0
        for t in text_fragments(p):
            t_len = len(t.text or "")
            if offset < boundary < offset + t_len:
                r = t.getparent()
                if r.tag == W_R:
                    run_start = offset
                    for sib in r.iter(W_T):
                        if sib is t:
                            break
                        run_start -= len(sib.text or "")
                    split_run(r, boundary - run_start)
                break
            offset += t_len
    return runs_for_span(p, start, end)


def make_tab_run():
    r = OxmlElement("w:r")
    r.append(OxmlElement("w:tab"))
    return r


def emphasize_runs(runs, parent=None) -> None:
    """题号/选项标签：加粗 + 蓝色"""
    for r in runs:
        run = Run(r, parent)
        run.bold = True
        run.font.color.rgb = LABEL_COLOR


def emphasize_span(p, start: int, end: int) -> None:
    emphasize_runs(isolate_span(p, start, end))


def strip_answer_formatting(node) -> None:
    """只清除 run 属性里的格式，段落/表格底纹保持不变"""
    for tag in _ANSWER_FORMAT_TAGS:
        for el in list(node.iter(tag)):
            parent = el.getparent()
            if parent.tag == W_RPR:
                parent.remove(el)


def remove_key_tags(node) -> int:
    """删除 <Key=...> 标记，支持标记被拆到多个相邻片段的情况"""
    removed = 0
    for p in iter_paragraphs(node):
        text = node_text(p)
        for m in reversed(list(patterns.KEY_TAG_REMOVE_RE.finditer(text))):
            replace_span(p, m.start(), m.end(), "")
            removed += 1
    return removed


def set_alignment(p, alignment=WD_ALIGN_PARAGRAPH.RIGHT) -> None:
    Paragraph(p, None).alignment = alignment


def append_block(body, el) -> None:
    """追加到 w:body 末尾，始终保持 w:sectPr 为最后一个子元素"""
    sect_pr = body.find(W_SECTPR)
    if sect_pr is not None:
        sect_pr.addprevious(el)
    else:
        body.append(el)
