"""
OpenRouter / Anthropic 兼容辅助函数

- 规范化 Base URL 与 API Key，拼出 chat/completions 与 messages 地址
- 构造带 provider.order 的请求体；判断 404 "No allowed providers" 是否可重试
- 从响应体中提取文本与错误信息（解析失败返回 None 或默认值，不抛异常）
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

NO_PROVIDERS_AVAILABLE_MARKER = "No allowed providers are available"
AVAILABLE_PROVIDERS_MARKER = "available_providers"


def normalize_base_url(base_url: Optional[str]) -> str:
    """补全协议并去掉末尾的 /"""
    normalized = (base_url or "").strip()
    if not normalized.startswith(("http://", "https://")):
        normalized = "https://" + normalized
    return normalized.rstrip("/")


def normalize_api_key(api_key: Optional[str]) -> str:
    """兼容用户把 `Bearer xxx` 整段粘进来"""
    normalized = (api_key or "").strip()
    if normalized[:7].lower() == "bearer ":
        return normalized[7:].strip()
    return normalized


def build_chat_completions_url(base_url: str) -> str:
    if base_url.endswith("/chat/completions"):
        return base_url
    if base_url.endswith("/v1"):
        return base_url + "/chat/completions"
    return base_url + "/v1/chat/completions"


def build_messages_url(base_url: str) -> str:
    if base_url.endswith("/v1/messages"):
        return base_url
    if base_url.endswith("/v1"):
        return base_url + "/messages"
    return base_url + "/v1/messages"


def is_openrouter_provider(code: Optional[str], base_url: Optional[str]) -> bool:
    if (code or "").strip().lower() == "openrouter":
        return True
    return "openrouter.ai" in (base_url or "").lower()


def build_provider_order_from_model(model_name: Optional[str]) -> List[str]:
    """
    `deepseek/deepseek-chat` -> ["deepseek"]

    没有 vendor 前缀的模型不指定顺序，交给网关自行路由。
    """
    raw = (model_name or "").strip()
    if "/" not in raw:
        return []
    vendor = raw.split("/", 1)[0].strip().lower()
    return [vendor] if vendor else []


def build_chat_request_body(
    *,
    model: str,
    system_prompt: str,
    prompt: str,
    provider_order: Optional[List[str]] = None,
    max_tokens: int = 1024,
    temperature: float = 0.7,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
    }
    if provider_order:
        body["provider"] = {"order": list(provider_order), "allow_fallbacks": True}
    return body


def _load_json(body: Optional[str]) -> Any:
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


def should_retry_with_available_providers(status_code: int, body: Optional[str]) -> bool:
    """网关 404 且错误体里带了可用提供商列表时，允许按该列表重试一次"""
    if status_code != 404 or not body:
        return False
    return NO_PROVIDERS_AVAILABLE_MARKER in body and AVAILABLE_PROVIDERS_MARKER in body


def extract_available_providers(body: Optional[str]) -> List[str]:
    data = _load_json(body)
    if not isinstance(data, dict):
        return []
    error = data.get("error")
    metadata = error.get("metadata") if isinstance(error, dict) else None
    providers = metadata.get(AVAILABLE_PROVIDERS_MARKER) if isinstance(metadata, dict) else None
    if not isinstance(providers, list):
        return []
    out: List[str] = []
    for item in providers:
        if isinstance(item, str) and item.strip():
            out.append(item.strip().lower())
    return out


def extract_chat_completion_text(body: Optional[str]) -> Optional[str]:
    """OpenAI ChatCompletions: choices[0].message.content（字符串或分段数组）"""
    data = _load_json(body)
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            str(part.get("text"))
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str) and part.get("text").strip()
        ]
        return "\n".join(texts)
    return None


def extract_messages_text(body: Optional[str]) -> Optional[str]:
    """Anthropic Messages: 拼接 content[] 中的 text 块"""
    data = _load_json(body)
    if not isinstance(data, dict):
        return None
    content = data.get("content")
    if not isinstance(content, list):
        return None
    texts = [
        block.get("text")
        for block in content
        if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
    ]
    return "".join(texts)


def extract_error_message(body: Optional[str], limit: int = 300, default: str = "Unknown error") -> str:
    if not body or not body.strip():
        return default
    data = _load_json(body)
    if isinstance(data, dict) and data.get("error") is not None:
        error = data.get("error")
        if isinstance(error, dict) and error.get("message") is not None:
            return str(error.get("message"))
        if isinstance(error, str):
            return error
    return truncate(body, limit)


def truncate(value: Optional[str], max_length: int) -> str:
    if value is None:
        return ""
    if len(value) <= max_length:
        return value
    return value[:max_length] + "...(truncated)"


def single_line(value: Optional[str]) -> str:
    if value is None:
        return ""
    return " ".join(value.split())
