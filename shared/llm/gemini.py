"""
Gemini Provider
===============

Google Gemini provider using the public ``generateContent`` REST API.

Several (API version, model) pairs are tried in order and the first
successful answer wins, since model names are retired and renamed across
API versions.

Version: 0.1.0
"""

import time
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.config import settings
from shared.llm.provider import (
    LLMError,
    LLMMessage,
    LLMProvider,
    LLMResponse,
    LLMUsage,
)
from shared.logging import get_logger


logger = get_logger(__name__)


def build_candidates(model: str, fallback_models: list[str], api_versions: list[str]) -> list[tuple[str, str]]:
    """
    Expand the configured model into ordered (api_version, model) pairs.

    The configured model comes first, then its ``-latest`` alias, then the
    fallbacks. Duplicates are dropped while keeping order.
    """
    models: list[str] = []
    for name in [model, f"{model}-latest", *fallback_models]:
        name = name.strip()
        if name.endswith("-latest-latest"):
            name = name[: -len("-latest")]
        if name and name not in models:
            models.append(name)

    return [(version, name) for name in models for version in api_versions]


class GeminiProvider(LLMProvider):
    """
    Google Gemini LLM provider.

    The API key travels as a query parameter and is never logged.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        gemini = settings.llm.gemini

        self._api_key = api_key or gemini.api_key.get_secret_value()
        self._model = model or gemini.model
        self._timeout = timeout or settings.llm.timeout_seconds
        self._candidates = build_candidates(self._model, gemini.fallback_models, gemini.api_versions)

        self._client = client or httpx.AsyncClient(
            base_url=base_url or gemini.base_url,
            timeout=httpx.Timeout(self._timeout),
        )

        logger.debug(
            "gemini_provider_initialized",
            model=self._model,
            candidates=len(self._candidates),
        )

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def model(self) -> str:
        return self._model

    @property
    def candidates(self) -> list[tuple[str, str]]:
        return list(self._candidates)

    def _build_contents(self, messages: list[LLMMessage]) -> list[dict[str, Any]]:
        """Gemini has no system role on every API version, so system text is folded into the first user turn."""
        system_parts: list[str] = []
        contents: list[dict[str, Any]] = []

        for msg in messages:
            msg_dict = msg.to_dict()
            role = msg_dict["role"]
            if role == "system":
                system_parts.append(msg_dict["content"])
                continue
            contents.append(
                {
                    "role": "model" if role == "assistant" else "user",
                    "parts": [{"text": msg_dict["content"]}],
                }
            )

        if system_parts:
            preamble = "\n\n".join(system_parts)
            if contents and contents[0]["role"] == "user":
                first = contents[0]["parts"][0]
                first["text"] = f"{preamble}\n\n{first['text']}"
            else:
                contents.insert(0, {"role": "user", "parts": [{"text": preamble}]})

        return contents

    @retry(
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        stop=stop_after_attempt(settings.llm.max_retries),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "gemini_retry",
            attempt=retry_state.attempt_number,
        ),
    )
    async def _post(self, api_version: str, model: str, body: dict[str, Any]) -> httpx.Response:
        return await self._client.post(
            f"/{api_version}/models/{model}:generateContent",
            params={"key": self._api_key},
            json=body,
        )

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [part.get("text") or "" for part in parts if isinstance(part, dict)]
        return "\n".join(text for text in texts if text.strip())

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion, trying each candidate endpoint in turn.

        Raises:
            LLMError: when every candidate failed
        """
        generation_config: dict[str, Any] = {
            "temperature": settings.llm.temperature if temperature is None else temperature,
        }
        if max_tokens is not None:
            generation_config["maxOutputTokens"] = max_tokens

        body = {
            "contents": self._build_contents(messages),
            "generationConfig": generation_config,
        }

        last_error: str | None = None
        for api_version, model in self._candidates:
            start_time = time.perf_counter()
            try:
                response = await self._post(api_version, model, body)
            except httpx.HTTPError as e:
                last_error = type(e).__name__
                logger.warning(
                    "gemini_transport_error",
                    api_version=api_version,
                    model=model,
                    error_type=last_error,
                )
                continue

            if not response.is_success:
                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    "gemini_http_error",
                    api_version=api_version,
                    model=model,
                    status_code=response.status_code,
                )
                continue

            data = response.json()
            latency_ms = (time.perf_counter() - start_time) * 1000
            metadata = data.get("usageMetadata") or {}
            usage = LLMUsage(
                prompt_tokens=metadata.get("promptTokenCount", 0),
                completion_tokens=metadata.get("candidatesTokenCount", 0),
                total_tokens=metadata.get("totalTokenCount", 0),
            )

            logger.debug(
                "gemini_completion",
                api_version=api_version,
                model=model,
                tokens=usage.total_tokens,
                latency_ms=round(latency_ms, 2),
            )

            candidates = data.get("candidates") or [{}]
            return LLMResponse(
                content=self._extract_text(data),
                model=model,
                provider=self.name,
                usage=usage,
                finish_reason=candidates[0].get("finishReason"),
                latency_ms=latency_ms,
                raw_response=data,
            )

        raise LLMError(f"All Gemini candidates failed (last error: {last_error})")

    async def health_check(self) -> dict[str, Any]:
        """
        Report configuration without spending quota on a generation call.

        Returns:
            dict with status and provider info
        """
        return {
            "status": "healthy" if self._api_key else "unhealthy",
            "provider": self.name,
            "model": self._model,
            "candidates": len(self._candidates),
        }

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
