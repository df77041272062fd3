"""
LLM Provider Module
===================

Abstraction layer for the external text classifier.

Supported providers:
- Google Gemini (optional, enabled by GEMINI_API_KEY)

Usage:
    from shared.llm import get_llm_provider, LLMMessage

    provider = get_llm_provider()
    if provider is not None:
        data = await provider.generate_json("Classifique o chamado ...")
"""

from shared.llm.provider import (
    LLMError,
    LLMProvider,
    LLMMessage,
    LLMResponse,
    LLMUsage,
    MessageRole,
    extract_json_object,
    get_llm_provider,
    reset_llm_provider,
    set_llm_provider,
)
from shared.llm.gemini import GeminiProvider, build_candidates

__all__ = [
    # Base
    "LLMError",
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMUsage",
    "MessageRole",
    "extract_json_object",
    "get_llm_provider",
    "reset_llm_provider",
    "set_llm_provider",
    # Providers
    "GeminiProvider",
    "build_candidates",
]
