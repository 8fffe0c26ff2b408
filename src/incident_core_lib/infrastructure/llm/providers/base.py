"""
Provider contract for LLM backends.

Every provider takes a plain-text prompt and returns an ``LLMResponse``; any
failure (transport, timeout, non-200 answer, empty content) is raised as
``LLMProviderError`` so the registry can fall back to the next provider.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


class LLMProviderError(Exception):
    """Raised when a provider cannot produce a response.

    ``status`` carries the HTTP status of the upstream answer, or None when the
    endpoint was never reached.
    """

    def __init__(self, message: str, provider: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status = status


@dataclass
class LLMResponse:
    """Completion text plus accounting"""

    content: str
    provider: str
    model: str
    tokens_used: int = 0
    response_time_ms: int = 0


@dataclass
class ProviderConfig:
    """Connection settings for one provider; the first model is the default"""

    name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    models: List[str] = field(default_factory=list)
    max_retries: int = 3
    timeout: int = 30
    default_model: Optional[str] = None

    def __post_init__(self):
        if self.default_model is None and self.models:
            self.default_model = self.models[0]


class BaseLLMProvider(ABC):
    """Abstract LLM backend"""

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.2,
        **kwargs
    ) -> LLMResponse:
        """
        Complete ``prompt``.

        Raises:
            LLMProviderError: On any failure, with ``status`` set for HTTP answers
        """

    def is_available(self) -> bool:
        """Credentials, endpoint and at least one model are configured"""
        return bool(self.config.api_key and self.config.base_url and self.config.models)

    def get_supported_models(self) -> List[str]:
        return list(self.config.models)

    def resolve_model(self, requested: Optional[str] = None) -> str:
        """The requested model if this provider serves it, else the default."""
        if requested in self.config.models:
            return requested
        if self.config.default_model:
            return self.config.default_model
        raise LLMProviderError(f"{self.provider_name} has no model configured", provider=self.provider_name)

    def _require_content(self, content: Optional[str]) -> str:
        text = (content or "").strip()
        if not text:
            raise LLMProviderError(f"{self.provider_name} returned empty content", provider=self.provider_name)
        return text

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
