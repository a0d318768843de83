"""
Клиент для обращения к LLM через OpenAI‑совместимый API.

Задачи модуля:
- Единственная попытка на вызов: повторов, задержек и ограничения частоты нет.
- Унифицированная обработка ошибок провайдера с маппингом на HTTP‑статусы (LLMError).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    OpenAIError,
    RateLimitError,
)

from SmartPRD.core.settings import settings

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """
    Структурированная ошибка уровня клиента LLM.

    Поля используются вызывающим кодом для логирования и для текста ошибки
    в поэлементных результатах генерации.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 502,
        code: str = "provider_error",
        provider_status: Optional[int] = None,
        model: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.provider_status = provider_status
        self.model = model


def classify_provider_error(exc: OpenAIError) -> tuple[int, str, Optional[int]]:
    """Сопоставить ошибку SDK со статусом/кодом: (status_code, code, provider_status)."""
    http_status = int(getattr(exc, "status_code", 0) or 0) or None
    if isinstance(exc, RateLimitError):
        return 429, "rate_limited", http_status
    if isinstance(exc, APITimeoutError):
        return 504, "timeout", http_status
    if isinstance(exc, APIConnectionError):
        return 502, "connection_error", http_status
    if isinstance(exc, APIStatusError):
        if http_status == 401:
            return 401, "unauthorized", http_status
        if http_status == 403:
            return 403, "forbidden", http_status
        if http_status == 400:
            return 400, "bad_request", http_status
    return 502, "upstream_error", http_status


class LLMClient:
    """Тонкая обёртка над `AsyncOpenAI` (chat completions, без стриминга)."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.default_model = default_model or settings.default_model
        self._client = client or AsyncOpenAI(
            api_key=api_key if api_key is not None else settings.openai_api_key,
            base_url=base_url or settings.openai_base_url,
            timeout=timeout or settings.http_timeout,
            max_retries=0,
        )

    async def complete(self, messages: List[Dict[str, str]], *, model: Optional[str] = None) -> str:
        """
        Выполнить один вызов модели и вернуть текст ответа.

        Ошибки провайдера и пустой ответ превращаются в LLMError.
        """
        model_name = model or self.default_model
        payload: Dict[str, Any] = {
            "model": model_name,
            "messages": messages,
            "temperature": 0.3,
            "stream": False,
        }
        logger.info("llm: request model=%s messages=%s", model_name, len(messages))
        try:
            resp = await self._client.chat.completions.create(**payload)  # type: ignore[arg-type]
        except OpenAIError as e:
            status_code, code, provider_status = classify_provider_error(e)
            logger.error("llm: provider error code=%s status=%s: %s", code, provider_status, e)
            raise LLMError(
                str(e),
                status_code=status_code,
                code=code,
                provider_status=provider_status,
                model=model_name,
            ) from e

        content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        usage = getattr(resp, "usage", None)
        logger.info(
            "llm: success model=%s tokens=%s",
            model_name,
            getattr(usage, "total_tokens", "?"),
        )
        if not content:
            raise LLMError("Model returned an empty completion", code="empty_completion", model=model_name)
        return content
