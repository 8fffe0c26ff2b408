"""LLM integration: providers, registry and the diagnosis generator."""

from .generator import LLMDiagnosisGenerator
from .providers import LLMProviderError, ProviderRegistry, get_registry, reset_registry

__all__ = [
    "LLMDiagnosisGenerator",
    "LLMProviderError",
    "ProviderRegistry",
    "get_registry",
    "reset_registry",
]
