"""
LLM Provider Package

Provider registry and implementations for the LLM providers used by the
diagnosis generator.
"""

from .anthropic import AnthropicProvider
from .base import BaseLLMProvider, LLMProviderError, LLMResponse, ProviderConfig
from .openai_provider import OpenAIProvider
from .registry import ProviderRegistry, get_registry, reset_registry

__all__ = [
    "AnthropicProvider",
    "BaseLLMProvider",
    "LLMProviderError",
    "LLMResponse",
    "ProviderConfig",
    "OpenAIProvider",
    "ProviderRegistry",
    "get_registry",
    "reset_registry",
]
