from exam_mix_toolkit.ai.client import make_client
from exam_mix_toolkit.ai.result import ReviewError, ReviewResult
from exam_mix_toolkit.ai.reviewer import ContentReviewer, review_questions, submit_review

__all__ = [
    "ContentReviewer",
    "ReviewError",
    "ReviewResult",
    "make_client",
    "review_questions",
    "submit_review",
]
