"""
Switch intent extraction.

Two sources can ask for a provider switch:
- the user's own prompt ("帮我切换到 DeepSeek"), checked before any model call so
  simple commands never pay for a round-trip;
- the model's reply, which may embed a tool call in one of two loose markup
  dialects:

    <FunctionCall>
    tool_name: switchModel
    tool_args: {"providerCode": "openrouter"}
    </FunctionCall>

    [TOOL_CALL]
    {tool => "switchModel", args => {--model "deepseek"}}
    [/TOOL_CALL]

Every parser here returns a normalized provider code or None. Malformed or
partial markup is "no intent", never an exception.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Optional, Sequence, Tuple

SWITCH_FUNCTION_NAME = "switchModel"

# 用户输入中的切换意图关键词（小写匹配）
SWITCH_INTENT_MARKERS: Tuple[str, ...] = ("切换", "换成", "改成", "切到", "switch to")
SWITCH_INTENT_PREFIXES: Tuple[str, ...] = ("用",)

# 按顺序匹配：先命中的家族优先
PROVIDER_ALIASES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("deepseek", ("deepseek",)),
    ("openrouter", ("openrouter",)),
    ("zhipu", ("zhipu", "智谱", "glm")),
    ("claude", ("claude", "anthropic")),
)

# 参数里可能携带提供商的字段，按优先级
PROVIDER_ARG_FIELDS: Tuple[str, ...] = ("providerCode", "provider", "model", "code", "name")

FUNCTION_CALL_BLOCK_PATTERN = re.compile(r"<FunctionCall>(.*?)</FunctionCall>", re.DOTALL)
TOOL_CALL_BLOCK_PATTERN = re.compile(r"\[TOOL_CALL\](.*?)\[/TOOL_CALL\]", re.DOTALL | re.IGNORECASE)

TOOL_NAME_PATTERN = re.compile(r"tool_name:\s*([\w-]+)", re.IGNORECASE)
TOOL_NAME_ALT_PATTERN = re.compile(r"tool\s*=>\s*\"?([\w-]+)\"?", re.IGNORECASE)
TOOL_ARGS_PATTERN = re.compile(r"tool_args:\s*(\{.*\})", re.IGNORECASE | re.DOTALL)
TOOL_ARGS_ALT_PATTERN = re.compile(r"args\s*=>\s*(\{.*\})", re.IGNORECASE | re.DOTALL)

MODEL_FLAG_PATTERN = re.compile(r"--(?:model|provider|providerCode)\s+\"([^\"]+)\"", re.IGNORECASE)
PROVIDER_KEY_VALUE_PATTERN = re.compile(
    r"(?:providerCode|provider|model|code|name)\"?\s*(?::|=>|=)\s*\"([^\"]+)\"",
    re.IGNORECASE,
)


def normalize_provider_code(raw: Optional[str]) -> Optional[str]:
    """
    Map free text to a provider code.

    Known family names win even when embedded in longer text
    ("DeepSeek-V3 please" -> "deepseek"). Anything else is returned lowercased
    and trimmed; unknown codes are rejected later by the provider lookup.
    """
    if raw is None:
        return None
    normalized = raw.strip().lower()
    if not normalized:
        return None
    for code, aliases in PROVIDER_ALIASES:
        if any(alias in normalized for alias in aliases):
            return code
    return normalized


def is_switch_intent(prompt: Optional[str]) -> bool:
    if not prompt or not prompt.strip():
        return False
    normalized = prompt.strip().lower()
    if any(marker in normalized for marker in SWITCH_INTENT_MARKERS):
        return True
    return normalized.startswith(SWITCH_INTENT_PREFIXES)


def parse_switch_command_from_prompt(prompt: Optional[str]) -> Optional[str]:
    """Direct user-intent short-circuit: the whole prompt is the provider hint."""
    if not is_switch_intent(prompt):
        return None
    return normalize_provider_code(prompt)


def _scalar_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def parse_provider_from_args(args_text: Optional[str]) -> Optional[str]:
    """
    Read the provider out of a tool-args payload.

    JSON first; if the payload is not valid JSON, try the `--model "x"` flag
    form, then a loose `key: "value"` form for the recognized field names.
    """
    if not args_text or not args_text.strip():
        return None
    try:
        args = json.loads(args_text)
    except ValueError:
        flag = MODEL_FLAG_PATTERN.search(args_text)
        if flag:
            return normalize_provider_code(flag.group(1))
        key_value = PROVIDER_KEY_VALUE_PATTERN.search(args_text)
        if key_value:
            return normalize_provider_code(key_value.group(1))
        return None

    if not isinstance(args, dict):
        return None
    for field in PROVIDER_ARG_FIELDS:
        text = _scalar_text(args.get(field))
        if text:
            return normalize_provider_code(text)
    return None


def _is_switch_tool(name_match: Optional[re.Match]) -> bool:
    return bool(name_match) and name_match.group(1).lower() == SWITCH_FUNCTION_NAME.lower()


def parse_function_call_block(text: str) -> Optional[str]:
    """<FunctionCall> tool_name: ... tool_args: {...} </FunctionCall>"""
    block = FUNCTION_CALL_BLOCK_PATTERN.search(text)
    if not block:
        return None
    body = block.group(1)
    if not _is_switch_tool(TOOL_NAME_PATTERN.search(body)):
        return None
    args = TOOL_ARGS_PATTERN.search(body)
    if not args:
        return None
    return parse_provider_from_args(args.group(1))


def parse_tool_call_block(text: str) -> Optional[str]:
    """[TOOL_CALL] tool => "...", args => {...} [/TOOL_CALL]"""
    block = TOOL_CALL_BLOCK_PATTERN.search(text)
    if not block:
        return None
    body = block.group(1)
    if not _is_switch_tool(TOOL_NAME_ALT_PATTERN.search(body)):
        return None
    flag = MODEL_FLAG_PATTERN.search(body)
    if flag:
        return normalize_provider_code(flag.group(1))
    args = TOOL_ARGS_ALT_PATTERN.search(body)
    if not args:
        return None
    return parse_provider_from_args(args.group(1))


MarkupStrategy = Callable[[str], Optional[str]]

MARKUP_STRATEGIES: Sequence[MarkupStrategy] = (
    parse_function_call_block,
    parse_tool_call_block,
)


def parse_switch_command(reply: Optional[str], strategies: Sequence[MarkupStrategy] = MARKUP_STRATEGIES) -> Optional[str]:
    """Try each markup strategy in order; the first provider code found wins."""
    if not reply or not reply.strip():
        return None
    for strategy in strategies:
        code = strategy(reply)
        if code:
            return code
    return None


def strip_tool_call_blocks(text: Optional[str]) -> str:
    if text is None:
        return ""
    without_function_call = FUNCTION_CALL_BLOCK_PATTERN.sub("", text)
    return TOOL_CALL_BLOCK_PATTERN.sub("", without_function_call).strip()


def display_text(text: Optional[str]) -> str:
    """Reply with markup removed; falls back to the untouched reply if nothing else is left."""
    cleaned = strip_tool_call_blocks(text)
    if cleaned:
        return cleaned
    return text or ""
