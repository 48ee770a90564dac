"""内容审阅 Prompt"""
from __future__ import annotations

import textwrap
from exam_mix_toolkit.models import QuestionBlock

MAX_QUESTIONS = 20
MAX_CHARS = 500

SYSTEM_PROMPT = "Bạn là một trợ lý AI chuyên về Toán học THPT tại Việt Nam."


def snapshot(questions: list[QuestionBlock]) -> str:
    """前 20 题，每题正文截断到 500 字符"""
    parts = []
    for q in questions[:MAX_QUESTIONS]:
        qtype = getattr(q.type, "value", q.type)
        parts.append(
            f"Label: {q.label}\n"
            f"Type: {qtype}\n"
            f"Content: {q.text[:MAX_CHARS]}..."
        )
    return "\n---\n".join(parts)


def build_review_prompt(questions: list[QuestionBlock]) -> str:
    return textwrap.dedent(
        """\
        Dưới đây là danh sách các câu hỏi được trích xuất từ một đề thi.
        Hãy kiểm tra và đưa ra nhận xét tổng quan về:
        1. Chính tả và ngữ pháp (nếu có lỗi nghiêm trọng).
        2. Logic toán học (nếu thấy lỗi hiển nhiên trong văn bản, ví dụ: 4 đáp án giống nhau, hoặc câu hỏi vô lý).
        3. Đề xuất cải thiện ngắn gọn.

        Lưu ý: Chỉ đưa ra nhận xét những lỗi quan trọng. Nếu đề có vẻ ổn, hãy khen ngợi.
        Không cần check định dạng gạch chân vì hệ thống đã check rồi.

        Danh sách câu hỏi:
        """
    ) + snapshot(questions)


def build_messages(questions: list[QuestionBlock]) -> list[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_review_prompt(questions)},
    ]
