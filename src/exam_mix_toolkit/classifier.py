"""题型识别与格式校验"""
from __future__ import annotations
import uuid

from docx.text.paragraph import Paragraph
from docx.text.run import Run

from exam_mix_toolkit import patterns
from exam_mix_toolkit.models import QuestionBlock, QuestionType, ValidationIssue
from exam_mix_toolkit.ooxml import has_underline, is_paragraph, node_text, W_R

ESSAY_MIN_CHARS = 10
MAX_BALANCED_OPTIONS = 4


def detect_type(text: str, section: str = "") -> QuestionType:
    if patterns.has_key_tag(text):
        return QuestionType.SHORT_ANSWER

    upper, lower = patterns.count_line_options(text)
    if upper >= 2 and upper > lower:
        return QuestionType.MCQ
    if lower >= 2 and lower > upper:
        return QuestionType.TRUE_FALSE

    # 选项全写在一行：仍按 MCQ 处理，由校验提示用户分行
    if patterns.has_inline_options(text):
        return QuestionType.MCQ

    if patterns.is_free_response_section(section):
        return QuestionType.ESSAY

    return QuestionType.UNKNOWN


def option_paragraphs(nodes: list) -> list:
    """MCQ/TF 的选项段落（严格前缀或仅含字母的段落）"""
    return [
        n for n in nodes
        if is_paragraph(n) and (
            patterns.match_option(node_text(n)) or patterns.match_option_loose(node_text(n))
        )
    ]


def _refresh_flags(q: QuestionBlock) -> None:
    if q.type in (QuestionType.MCQ, QuestionType.TRUE_FALSE):
        options = option_paragraphs(q.nodes)
        q.option_nodes = sum(1 for n in options if patterns.match_option(node_text(n)))
        # 选项写在同一行时没有独立的选项段落，退回到整题检查
        scope = options or [n for n in q.nodes if is_paragraph(n)]
        q.has_underline = any(has_underline(n) for n in scope)
    else:
        q.option_nodes = 0
        q.has_underline = any(has_underline(n) for n in q.nodes if is_paragraph(n))
    q.has_key_tag = patterns.has_key_tag(q.text)
    q.is_valid = _is_valid(q)


def _is_valid(q: QuestionBlock) -> bool:
    if q.type == QuestionType.MCQ:
        return q.option_nodes >= 2 and q.has_underline
    if q.type == QuestionType.TRUE_FALSE:
        return q.has_underline
    if q.type == QuestionType.SHORT_ANSWER:
        return q.has_key_tag
    if q.type == QuestionType.ESSAY:
        return len(q.text.strip()) >= ESSAY_MIN_CHARS
    return False


def build_question(nodes: list, text: str, section: str, index: int) -> QuestionBlock:
    q = QuestionBlock(
        id=uuid.uuid4().hex,
        original_index=index,
        label=patterns.question_label(text),
        type=detect_type(text, section),
        nodes=nodes,
        text=text,
        section=section,
    )
    _refresh_flags(q)
    return q


def _issue(q: QuestionBlock, index: int, issue: str, suggestion: str,
           severity: str = "error") -> ValidationIssue:
    return ValidationIssue(
        question_index=index,
        question_label=q.label,
        issue=issue,
        suggestion=suggestion,
        severity=severity,
        question_id=q.id,
        question_type=q.type,
    )


def validate_questions(questions: list[QuestionBlock]) -> list[ValidationIssue]:
    """逐题生成问题清单；只报告，不修改题目"""
    issues: list[ValidationIssue] = []

    for index, q in enumerate(questions):
        if q.type == QuestionType.MCQ:
            if q.option_nodes < 2:
                issues.append(_issue(
                    q, index,
                    "Các đáp án không nằm trên dòng riêng biệt.",
                    "Vui lòng ngắt dòng (Enter) giữa các đáp án A, B, C, D để phần mềm có thể trộn.",
                ))
            if not q.has_underline:
                issues.append(_issue(
                    q, index,
                    "Chưa gạch chân đáp án đúng.",
                    "Vui lòng gạch chân (Underline) vào đáp án đúng (A, B, C hoặc D).",
                ))
            if q.option_nodes > MAX_BALANCED_OPTIONS:
                issues.append(_issue(
                    q, index,
                    f"Câu hỏi có {q.option_nodes} đáp án (nhiều hơn 4).",
                    "Phân bố đáp án cân bằng chỉ tính cho A, B, C, D; hãy kiểm tra lại đề sau khi trộn.",
                    severity="warning",
                ))
        elif q.type == QuestionType.TRUE_FALSE:
            if not q.has_underline:
                issues.append(_issue(
                    q, index,
                    "Chưa có ý nào được gạch chân (Đúng).",
                    "Gạch chân vào các ý Đúng (a, b, c, d). Nếu tất cả đều Sai, "
                    "hãy kiểm tra lại xem đã định dạng đúng chưa.",
                    severity="warning",
                ))
        elif q.type == QuestionType.SHORT_ANSWER:
            if not q.has_key_tag:
                issues.append(_issue(
                    q, index,
                    "Thiếu thẻ đáp án <Key=...>.",
                    "Thêm thẻ <Key=Giá trị> vào cuối câu hỏi.",
                ))
        elif q.type == QuestionType.ESSAY:
            if len(q.text.strip()) < ESSAY_MIN_CHARS:
                issues.append(_issue(
                    q, index,
                    "Nội dung câu tự luận quá ngắn hoặc trống.",
                    "Kiểm tra lại nội dung câu hỏi trong phần tự luận.",
                ))
        else:
            issues.append(_issue(
                q, index,
                "Không nhận diện được dạng câu hỏi.",
                "Kiểm tra lại định dạng (A. B. C. D. hoặc a) b) c) d)).",
            ))

    return issues


def apply_fix(q: QuestionBlock, value: str) -> bool:
    """人工修正：MCQ/TF 给选项 value 加下划线；SA 追加 <Key=value>"""
    value = value.strip()
    modified = False

    if q.type in (QuestionType.MCQ, QuestionType.TRUE_FALSE):
        # TF 可一次给多个正确小项，如 "bd"
        wanted = set(value.lower()) if q.type == QuestionType.TRUE_FALSE else {value.lower()}
        for node in option_paragraphs(q.nodes):
            m = patterns.match_option(node_text(node)) or patterns.match_option_loose(node_text(node))
            if m and m.group("letter").lower() in wanted:
                for r in node.iter(W_R):
                    Run(r, None).underline = True
                modified = True
    elif q.type == QuestionType.SHORT_ANSWER and q.nodes:
        last = next((n for n in reversed(q.nodes) if is_paragraph(n)), None)
        if last is not None:
            tag = f" <Key={value}>"
            Paragraph(last, None).add_run(tag)
            q.text += tag
            modified = True

    if modified:
        _refresh_flags(q)
    return modified
