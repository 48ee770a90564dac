"""AI 内容审阅：可选、尽力而为，结果只用于显示"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor

from exam_mix_toolkit.ai.client import (
    AIUnavailableError, build_chat_params, default_model,
    extract_response_text, make_client,
)
from exam_mix_toolkit.ai.prompt import build_messages
from exam_mix_toolkit.ai.result import ReviewError, ReviewResult
from exam_mix_toolkit.models import QuestionBlock

logger = logging.getLogger(__name__)

_QUOTA_MARKERS = ("429", "RESOURCE_EXHAUSTED", "quota")


def _classify(exc: Exception) -> ReviewError:
    import openai

    if isinstance(exc, openai.RateLimitError):
        return ReviewError.QUOTA_EXCEEDED
    if isinstance(exc, openai.AuthenticationError):
        return ReviewError.NOT_CONFIGURED
    if isinstance(exc, openai.APIStatusError) and exc.status_code == 429:
        return ReviewError.QUOTA_EXCEEDED
    text = str(exc)
    if any(marker.lower() in text.lower() for marker in _QUOTA_MARKERS):
        return ReviewError.QUOTA_EXCEEDED
    return ReviewError.TRANSIENT


class ContentReviewer:

    def __init__(
        self,
        provider: str = "gemini",
        model:    str = "",
        api_key:  str = "",
        base_url: str = "",
        timeout:  float = 60.0,
    ) -> None:
        self.provider = provider
        self.model    = model or default_model(provider)
        self.api_key  = api_key
        self.base_url = base_url
        self.timeout  = timeout
        self._executor: ThreadPoolExecutor | None = None

    @classmethod
    def from_config(cls, cfg: dict | None) -> "ContentReviewer":
        cfg = cfg or {}
        return cls(
            provider = cfg.get("provider", "gemini"),
            model    = cfg.get("model", ""),
            api_key  = cfg.get("api_key", ""),
            base_url = cfg.get("base_url", ""),
            timeout  = float(cfg.get("timeout", 60.0)),
        )

    def review(self, questions: list[QuestionBlock]) -> ReviewResult:
        """同步审阅；任何失败都转成 ReviewResult，不抛异常"""
        try:
            client = make_client(
                provider=self.provider, api_key=self.api_key,
                base_url=self.base_url, model=self.model, timeout=self.timeout,
            )
        except (AIUnavailableError, ValueError) as exc:
            logger.info("AI 审阅未启用: %s", exc)
            return ReviewResult.failure(ReviewError.NOT_CONFIGURED, str(exc))

        params = build_chat_params(self.model, build_messages(questions))
        try:
            response = client.chat.completions.create(**params)
        except Exception as exc:  # noqa: BLE001
            kind = _classify(exc)
            logger.warning("AI 审阅失败 (%s): %s", kind.value, exc)
            return ReviewResult.failure(kind, str(exc))

        return ReviewResult.success(extract_response_text(response))

    def submit(self, questions: list[QuestionBlock]) -> Future:
        """后台线程执行审阅，调用方不必等待结果"""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ai-review")
        return self._executor.submit(self.review, list(questions))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None


def review_questions(questions: list[QuestionBlock], cfg: dict | None = None) -> ReviewResult:
    return ContentReviewer.from_config(cfg).review(questions)


def submit_review(questions: list[QuestionBlock], cfg: dict | None = None) -> Future:
    reviewer = ContentReviewer.from_config(cfg)
    future = reviewer.submit(questions)
    future.add_done_callback(lambda _: reviewer.close())
    return future
