"""
LLM Provider Base
=================

Abstract base class and common models for LLM providers.

Version: 0.1.0
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from shared.config import settings, LLMProvider as LLMProviderEnum
from shared.logging import get_logger

logger = get_logger(__name__)


class LLMError(Exception):
    """Raised when a provider cannot produce a usable answer."""


class MessageRole(str, Enum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMMessage(BaseModel):
    """A message in the conversation."""

    role: MessageRole | Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dict for API calls."""
        role_str = self.role.value if isinstance(self.role, MessageRole) else self.role
        return {"role": role_str, "content": self.content}


class LLMUsage(BaseModel):
    """Token usage information."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Response from LLM provider."""

    content: str = Field(..., description="Generated text content")
    model: str = Field(..., description="Model used for generation")
    provider: str = Field(..., description="Provider name")
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: str | None = None

    # Additional metadata
    latency_ms: float = 0.0
    raw_response: dict[str, Any] | None = None


def extract_json_object(text: str) -> str | None:
    """
    Pull the first JSON object out of free-form model output.

    Markdown code fences are removed first. If what remains is already a
    ``{...}`` document it is returned as-is; otherwise the first balanced
    brace block is returned. Returns None when no object is found.
    """
    if not text:
        return None

    cleaned = text.replace("```json", "").replace("```", "").strip()
    if cleaned.startswith("{") and cleaned.endswith("}"):
        return cleaned

    start = cleaned.find("{")
    if start < 0:
        return None

    depth = 0
    for index in range(start, len(cleaned)):
        char = cleaned[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return cleaned[start : index + 1]
    return None


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implements the Strategy pattern for swappable LLM backends.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion for the given messages.

        Args:
            messages: Conversation messages
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with generated content

        Raises:
            LLMError: when no candidate endpoint produced an answer
        """
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """
        Check provider health.

        Returns:
            dict with status and provider info
        """
        ...

    async def close(self) -> None:
        """Release network resources held by the provider."""

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """
        Simple text generation helper.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            **kwargs: Additional arguments for complete()

        Returns:
            Generated text content
        """
        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(LLMMessage(role="user", content=prompt))

        response = await self.complete(messages, **kwargs)
        return response.content

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Generate JSON output.

        The answer is parsed leniently with :func:`extract_json_object`.

        Raises:
            LLMError: when the answer holds no JSON object
        """
        text = await self.generate_text(prompt, system_prompt=system_prompt, **kwargs)

        payload = extract_json_object(text)
        if payload is None:
            raise LLMError("Model answer did not contain a JSON object")

        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            raise LLMError(f"Model answer was not valid JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise LLMError("Model answer was not a JSON object")
        return parsed


# Global provider instance
_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider | None:
    """
    Get the configured LLM provider instance.

    Creates and caches the instance on first call. Returns None when the
    selected provider has no credentials, so callers can skip the external
    path entirely.
    """
    global _provider

    if _provider is None:
        provider_type = settings.llm.provider

        if provider_type == LLMProviderEnum.GEMINI:
            if not settings.llm.gemini.is_configured:
                return None

            from shared.llm.gemini import GeminiProvider

            _provider = GeminiProvider()
        else:
            raise ValueError(f"Unknown LLM provider: {provider_type}")

        logger.info(
            "llm_provider_initialized",
            provider=_provider.name,
            model=_provider.model,
        )

    return _provider


def set_llm_provider(provider: LLMProvider | None) -> None:
    """
    Set a custom LLM provider.

    Useful for testing or custom implementations.
    """
    global _provider
    _provider = provider
    if provider is not None:
        logger.info(
            "llm_provider_set",
            provider=provider.name,
            model=provider.model,
        )


def reset_llm_provider() -> None:
    """Reset the provider to be re-initialized on next access."""
    global _provider
    _provider = None
