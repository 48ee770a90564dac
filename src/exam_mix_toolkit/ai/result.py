"""审阅结果：成功的评语或带类型的失败原因，不向主流程抛出"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReviewError(str, Enum):
    NOT_CONFIGURED = "not_configured"
    QUOTA_EXCEEDED = "quota_exceeded"
    TRANSIENT = "transient"


_ERROR_MESSAGES = {
    ReviewError.NOT_CONFIGURED: "API Key chưa được cấu hình.",
    ReviewError.QUOTA_EXCEEDED: (
        "⚠️ Tính năng kiểm tra bằng AI đang tạm dừng do vượt quá hạn mức miễn phí "
        "(Quota Exceeded). Bạn vẫn có thể thực hiện trộn đề bình thường mà không cần bước này."
    ),
    ReviewError.TRANSIENT: "Đã xảy ra lỗi khi kết nối với AI. Vui lòng thử lại sau.",
}

EMPTY_RESPONSE = "Không có phản hồi từ AI."


@dataclass(frozen=True)
class ReviewResult:
    commentary: str = ""
    error: ReviewError | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        """给用户显示的文字"""
        if self.error is not None:
            return _ERROR_MESSAGES[self.error]
        return self.commentary or EMPTY_RESPONSE

    @classmethod
    def success(cls, commentary: str) -> "ReviewResult":
        return cls(commentary=commentary)

    @classmethod
    def failure(cls, error: ReviewError, detail: str = "") -> "ReviewResult":
        return cls(error=error, detail=detail)
