"""
自然语言切换服务

流程：
1) 记录用户消息
2) 用户输入本身就是切换指令（"帮我切换到 DeepSeek"）时直接切换，不调用模型
3) 否则调用当前提供商：
   - OpenRouter（code=openrouter 或 URL 含 openrouter.ai）走 /v1/chat/completions
   - 其它走 Anthropic /v1/messages
4) 从模型回复中解析切换指令（两种标记方言），解析不到再回退到用户输入
5) 去掉回复中的标记块，有切换时追加 "切换结果：..."

OpenRouter 返回 404 "No allowed providers are available" 且错误体带有
available_providers 时，按该列表作为 provider.order 重试一次。
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import List, Optional, Tuple

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.cache.chat_client_cache import ChatClientCache
from modelswitch.cache.switch_lock import SwitchLock
from modelswitch.core.exceptions import ExternalServiceError, NotFoundError, UpstreamTimeoutError
from modelswitch.models.model_provider import ModelProvider
from modelswitch.models.switch_history import SwitchType
from modelswitch.repositories.ai_conversation_repository import AiConversationRepository
from modelswitch.repositories.user_config_repository import UserConfigRepository
from modelswitch.schemas.switch import (
    ConversationMessage,
    NaturalLanguageRequest,
    NaturalLanguageResponse,
    SwitchResult,
)
from modelswitch.services.api_key_service import ApiKeyService
from modelswitch.services.switch_service import SwitchService
from modelswitch.utils.encryption import SecretVault
from modelswitch.utils.openrouter_compat import (
    build_chat_completions_url,
    build_chat_request_body,
    build_messages_url,
    build_provider_order_from_model,
    extract_available_providers,
    extract_chat_completion_text,
    extract_error_message,
    extract_messages_text,
    is_openrouter_provider,
    normalize_api_key,
    normalize_base_url,
    should_retry_with_available_providers,
    single_line,
    truncate,
)
from modelswitch.utils.switch_intent import (
    display_text,
    parse_switch_command,
    parse_switch_command_from_prompt,
    strip_tool_call_blocks,
)

logger = logging.getLogger(__name__)

CHAT_TIMEOUT = httpx.Timeout(45.0, connect=10.0)
CHAT_MAX_TOKENS = 1024
CHAT_TEMPERATURE = 0.7
ANTHROPIC_VERSION = "2023-06-01"
LOG_BODY_LIMIT = 4000

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

SWITCH_RESULT_PREFIX = "切换结果："
QUICK_SWITCH_PREFIX = "已收到你的切换请求。\n\n"

SYSTEM_PROMPT = """你是 ModelSwitch 的 AI 助手，帮助用户管理和切换 AI 模型。

你可以：
1. 帮助用户切换到不同的 AI 模型提供商（如 Claude、DeepSeek、智谱 AI、OpenRouter）
2. 回答关于各种 AI 模型的问题
3. 提供模型选择的建议

当用户要求切换模型时，请使用 switchModel 函数来执行切换。

可用的模型提供商：
- claude: Claude (Anthropic 官方)
- deepseek: DeepSeek V3
- zhipu: 智谱 AI (GLM-4.5)
- openrouter: OpenRouter (多模型网关)

请用中文与用户交流，保持友好和专业的态度。
"""


def compose_reply(reply: str, switch_result: Optional[SwitchResult]) -> str:
    """去掉标记块；有切换时追加结果行（清理后为空则只返回结果行）"""
    cleaned = strip_tool_call_blocks(reply)
    if switch_result is None:
        return display_text(reply)
    result_line = SWITCH_RESULT_PREFIX + switch_result.message
    if not cleaned:
        return result_line
    return cleaned + "\n\n" + result_line


class AiChatService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        client_cache: ChatClientCache,
        lock: Optional[SwitchLock] = None,
        vault: Optional[SecretVault] = None,
        switch_service: Optional[SwitchService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.configs = UserConfigRepository(db)
        self.conversations = AiConversationRepository(db)
        self.api_key_service = ApiKeyService(db, vault=vault)
        self.switch_service = switch_service or SwitchService(db, lock=lock, vault=vault)
        self.client_cache = client_cache
        self._transport = transport

    async def process_natural_language(self, user_id: int, request: NaturalLanguageRequest) -> NaturalLanguageResponse:
        session_id = request.session_id or str(uuid.uuid4())
        await self._save(user_id, session_id, ROLE_USER, request.prompt)

        quick_code = parse_switch_command_from_prompt(request.prompt)
        if quick_code:
            result = await self._switch(user_id, quick_code, request)
            reply = QUICK_SWITCH_PREFIX + SWITCH_RESULT_PREFIX + result.message
            await self._save(user_id, session_id, ROLE_ASSISTANT, reply)
            return NaturalLanguageResponse(session_id=session_id, response=reply, switched=True, switch_result=result)

        config = await self.configs.get_by_user_id(user_id)
        if config is None:
            raise NotFoundError("Config not found", error_code="CONFIG_NOT_FOUND")
        provider = config.current_provider
        api_key = await self.api_key_service.get_decrypted_api_key(user_id, provider.code)

        if is_openrouter_provider(provider.code, provider.base_url):
            ai_reply = await self.call_openrouter_chat(provider, api_key, request.prompt)
        else:
            ai_reply = await self.call_anthropic_messages(provider, api_key, request.prompt)

        code = parse_switch_command(ai_reply) or parse_switch_command_from_prompt(request.prompt)
        result: Optional[SwitchResult] = None
        if code:
            result = await self._switch(user_id, code, request)

        reply = compose_reply(ai_reply, result)
        await self._save(user_id, session_id, ROLE_ASSISTANT, reply)
        return NaturalLanguageResponse(
            session_id=session_id,
            response=reply,
            switched=result is not None,
            switch_result=result,
        )

    async def _switch(self, user_id: int, code: str, request: NaturalLanguageRequest) -> SwitchResult:
        return await self.switch_service.switch_to_provider(
            user_id,
            code,
            SwitchType.AI_NATURAL_LANGUAGE,
            ai_prompt=request.prompt,
            client_info=request.client_info,
        )

    async def _save(self, user_id: int, session_id: str, role: str, content: str) -> None:
        await self.conversations.add_message(user_id=user_id, session_id=session_id, role=role, content=content)

    # ==================== 上游调用 ====================

    def _client(self, provider: ModelProvider, api_key: str, headers: dict) -> httpx.AsyncClient:
        return self.client_cache.get_or_create(
            provider.code,
            api_key,
            lambda: httpx.AsyncClient(timeout=CHAT_TIMEOUT, headers=headers, transport=self._transport),
        )

    async def _post(self, client: httpx.AsyncClient, url: str, body: dict) -> httpx.Response:
        try:
            return await client.post(url, content=json.dumps(body, ensure_ascii=False))
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError("AI service error: 上游请求超时", details={"url": url}) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"AI service error: {e}", details={"url": url}) from e

    async def call_openrouter_chat(self, provider: ModelProvider, api_key: str, prompt: str) -> str:
        url = build_chat_completions_url(normalize_base_url(provider.base_url))
        client = self._client(
            provider,
            api_key,
            {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {normalize_api_key(api_key)}",
            },
        )

        body = build_chat_request_body(
            model=provider.model_name,
            system_prompt=SYSTEM_PROMPT,
            prompt=prompt,
            provider_order=build_provider_order_from_model(provider.model_name),
            max_tokens=CHAT_MAX_TOKENS,
            temperature=CHAT_TEMPERATURE,
        )
        logger.info("AI OpenRouter request -> url=%s, model=%s, body=%s", url, provider.model_name, single_line(json.dumps(body, ensure_ascii=False)))
        response = await self._post(client, url, body)
        logger.info("AI OpenRouter response <- status=%s, body=%s", response.status_code, truncate(response.text, LOG_BODY_LIMIT))

        if should_retry_with_available_providers(response.status_code, response.text):
            available = extract_available_providers(response.text)
            if available:
                retry_body = build_chat_request_body(
                    model=provider.model_name,
                    system_prompt=SYSTEM_PROMPT,
                    prompt=prompt,
                    provider_order=available,
                    max_tokens=CHAT_MAX_TOKENS,
                    temperature=CHAT_TEMPERATURE,
                )
                logger.info("AI OpenRouter retry -> url=%s, order=%s", url, available)
                response = await self._post(client, url, retry_body)
                logger.info("AI OpenRouter retry response <- status=%s, body=%s", response.status_code, truncate(response.text, LOG_BODY_LIMIT))

        if response.is_success:
            content = extract_chat_completion_text(response.text)
            if content and content.strip():
                return content
            raise ExternalServiceError("AI service error: OpenRouter 返回为空")

        raise ExternalServiceError(
            "AI service error: " + extract_error_message(response.text),
            details={"status_code": response.status_code},
        )

    async def call_anthropic_messages(self, provider: ModelProvider, api_key: str, prompt: str) -> str:
        url = build_messages_url(normalize_base_url(provider.base_url))
        client = self._client(
            provider,
            api_key,
            {
                "Content-Type": "application/json",
                "x-api-key": normalize_api_key(api_key),
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )
        body = {
            "model": provider.model_name,
            "max_tokens": CHAT_MAX_TOKENS,
            "temperature": CHAT_TEMPERATURE,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        response = await self._post(client, url, body)
        logger.info("AI messages response <- provider=%s status=%s", provider.code, response.status_code)

        if not response.is_success:
            raise ExternalServiceError(
                "AI service error: " + extract_error_message(response.text),
                details={"status_code": response.status_code},
            )
        content = extract_messages_text(response.text)
        if content is None:
            raise ExternalServiceError("AI service error: 无法解析模型返回")
        return content

    # ==================== 对话记录 ====================

    async def get_latest_conversation(self, user_id: int) -> Tuple[Optional[str], List[ConversationMessage]]:
        latest = await self.conversations.get_latest(user_id)
        if latest is None:
            return None, []
        return await self.get_conversation_history(user_id, latest.session_id)

    async def get_conversation_history(self, user_id: int, session_id: str) -> Tuple[str, List[ConversationMessage]]:
        rows = await self.conversations.list_session(user_id, session_id)
        return session_id, [ConversationMessage.model_validate(r) for r in rows]

    async def clear_model_cache(self) -> int:
        return await self.client_cache.clear()
