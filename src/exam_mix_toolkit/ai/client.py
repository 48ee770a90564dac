"""OpenAI 兼容的聊天客户端（gemini / openai / deepseek / ollama / qwen）"""
from __future__ import annotations

import logging
import os
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)


class Provider(NamedTuple):
    base_url: str
    model: str
    key_env: str = ""


PROVIDERS: dict[str, Provider] = {
    "gemini":   Provider("https://generativelanguage.googleapis.com/v1beta/openai/",
                         "gemini-2.5-flash", "GEMINI_API_KEY"),
    "openai":   Provider("https://api.openai.com/v1", "gpt-4o-mini", "OPENAI_API_KEY"),
    "deepseek": Provider("https://api.deepseek.com/v1", "deepseek-chat", "DEEPSEEK_API_KEY"),
    "qwen":     Provider("https://dashscope.aliyuncs.com/compatible-mode/v1",
                         "qwen-plus", "DASHSCOPE_API_KEY"),
    # 本地服务不校验 key
    "ollama":   Provider("http://localhost:11434/v1", "qwen2.5:14b"),
}
DEFAULT_PROVIDER = "gemini"

# 推理模型不接受自定义 temperature
_REASONING_MARKERS = ("o1", "o3", "deepseek-reasoner", "-r1")


class AIUnavailableError(RuntimeError):
    """未安装 openai 或未配置 API Key"""


def _provider(name: str) -> Provider | None:
    return PROVIDERS.get(name.lower().strip())


def is_reasoning_model(model: str) -> bool:
    name = model.lower()
    return any(marker in name for marker in _REASONING_MARKERS)


def resolve_api_key(provider: str, api_key: str = "") -> str:
    """显式 key 优先，其次读 provider 对应的环境变量"""
    if api_key:
        return api_key
    spec = _provider(provider)
    if spec is None:
        return ""
    if not spec.key_env:
        return provider.lower().strip()
    return os.environ.get(spec.key_env, "")


def default_model(provider: str) -> str:
    spec = _provider(provider)
    return spec.model if spec else PROVIDERS[DEFAULT_PROVIDER].model


def make_client(
    provider: str   = DEFAULT_PROVIDER,
    api_key:  str   = "",
    base_url: str   = "",
    model:    str   = "",
    timeout:  float = 60.0,
) -> Any:
    try:
        from openai import OpenAI
    except ImportError as exc:
        raise AIUnavailableError(
            "AI 审阅需要 openai 包：pip install 'exam-mix-toolkit[ai]'"
        ) from exc

    spec = _provider(provider)
    if spec is None and not base_url:
        raise ValueError(f"不支持的 provider: {provider!r}，可选: {sorted(PROVIDERS)}")

    key = resolve_api_key(provider, api_key)
    if not key:
        raise AIUnavailableError(f"{provider} 没有可用的 API Key")

    url = base_url or spec.base_url
    logger.info("AI 客户端就绪: %s / %s (%s)", provider, model or default_model(provider), url)
    return OpenAI(api_key=key, base_url=url, timeout=timeout)


def build_chat_params(
    model:       str,
    messages:    list[dict],
    temperature: float = 0.3,
    max_tokens:  int   = 1500,
) -> dict:
    """chat.completions.create 的关键字参数"""
    params: dict = {"model": model, "messages": messages}
    if not is_reasoning_model(model):
        params.update(temperature=temperature, max_tokens=max_tokens)
    elif model.lower().startswith(("o1", "o3")):
        params["max_completion_tokens"] = max_tokens
    else:
        # deepseek-reasoner 等只接受默认温度 1
        params.update(temperature=1, max_tokens=max_tokens)
    return params


def extract_response_text(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    return (choices[0].message.content or "").strip()
