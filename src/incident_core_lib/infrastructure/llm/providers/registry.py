"""
Provider registry for LLM providers.

Builds the configured providers from ``Settings`` and routes requests through
a fallback chain: the primary provider first, then every other available
provider. Transient provider failures are retried per provider before
falling back.
"""

import logging
from typing import Dict, List, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from incident_core_lib.config.settings import Settings, get_settings

from .anthropic import AnthropicProvider
from .base import BaseLLMProvider, LLMProviderError, LLMResponse, ProviderConfig
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


# Data-driven provider schema - single source of truth
PROVIDER_SCHEMA = {
    "anthropic": {
        "default_base_url": "https://api.anthropic.com/v1",
        "default_model": "claude-3-5-sonnet-latest",
        "provider_class": AnthropicProvider,
    },
    "openai": {
        "default_base_url": "https://api.openai.com/v1",
        "default_model": "gpt-4o",
        "provider_class": OpenAIProvider,
    },
}

FALLBACK_ORDER = ["anthropic", "openai"]


def _is_transient(error: BaseException) -> bool:
    """Transport failures, timeouts, rate limits and 5xx answers are worth retrying."""
    if not isinstance(error, LLMProviderError):
        return False
    return error.status is None or error.status == 429 or error.status >= 500


class ProviderRegistry:
    """Central registry for managing LLM providers"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._providers: Dict[str, BaseLLMProvider] = {}
        self._fallback_chain: List[str] = []

        for provider_name, schema in PROVIDER_SCHEMA.items():
            config = self._create_provider_config(provider_name, schema)
            if config is None:
                logger.info(f"Provider '{provider_name}' skipped (no API key)")
                continue
            self._initialize_provider(provider_name, schema["provider_class"](config))

        self._setup_fallback_chain(self.settings.llm_provider)

    def _create_provider_config(self, provider_name: str, schema: Dict) -> Optional[ProviderConfig]:
        """Create provider configuration from settings"""
        api_key = getattr(self.settings, f"{provider_name}_api_key")
        if api_key is None:
            return None

        model = getattr(self.settings, f"{provider_name}_model") or schema["default_model"]
        base_url = getattr(self.settings, f"{provider_name}_base_url") or schema["default_base_url"]

        return ProviderConfig(
            name=provider_name,
            api_key=api_key.get_secret_value(),
            base_url=base_url,
            models=[model],
            max_retries=self.settings.llm_max_retries,
            timeout=self.settings.llm_request_timeout,
        )

    def _initialize_provider(self, name: str, provider: BaseLLMProvider):
        if provider.is_available():
            self._providers[name] = provider
            logger.info(f"Provider '{name}' initialized")
        else:
            logger.warning(f"Provider '{name}' not available (missing config)")

    def _setup_fallback_chain(self, primary_provider: str):
        """Primary provider first, then the remaining available providers"""
        if primary_provider not in self._providers:
            logger.warning(f"Primary provider '{primary_provider}' is not available")

        chain = [primary_provider] if primary_provider in self._providers else []
        for name in FALLBACK_ORDER + list(self._providers):
            if name in self._providers and name not in chain:
                chain.append(name)

        self._fallback_chain = chain
        logger.info(f"Provider fallback chain: {' -> '.join(chain) or '(empty)'}")

    def register_provider(self, name: str, provider: BaseLLMProvider, primary: bool = False):
        """Register a provider instance, optionally as the primary provider"""
        self._providers[name] = provider
        if name in self._fallback_chain:
            self._fallback_chain.remove(name)
        if primary:
            self._fallback_chain.insert(0, name)
        else:
            self._fallback_chain.append(name)
        logger.info(f"Registered provider: {name}")

    def get_provider(self, name: str) -> Optional[BaseLLMProvider]:
        return self._providers.get(name)

    def get_available_providers(self) -> List[str]:
        return list(self._providers.keys())

    def get_fallback_chain(self) -> List[str]:
        return self._fallback_chain.copy()

    async def route_request(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.2,
        **kwargs
    ) -> LLMResponse:
        """
        Route request through the fallback chain until success

        Raises:
            LLMProviderError: If no provider is configured or all providers fail
        """
        if not self._fallback_chain:
            raise LLMProviderError("No LLM provider configured")

        last_error: Optional[Exception] = None

        for provider_name in self._fallback_chain:
            provider = self._providers[provider_name]
            try:
                logger.info(f"Trying provider: {provider_name}")
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(max(1, provider.config.max_retries)),
                    wait=wait_exponential(multiplier=1, min=1, max=8),
                    retry=retry_if_exception(_is_transient),
                    before_sleep=before_sleep_log(logger, logging.WARNING),
                    reraise=True,
                ):
                    with attempt:
                        response = await provider.generate(
                            prompt=prompt,
                            model=model,
                            max_tokens=max_tokens,
                            temperature=temperature,
                            **kwargs
                        )
                logger.info(f"Success with {provider_name} ({response.response_time_ms}ms)")
                return response
            except Exception as e:
                logger.warning(f"Provider {provider_name} failed: {e}")
                last_error = e

        error_msg = f"All providers failed. Last error: {last_error}"
        logger.error(error_msg)
        raise LLMProviderError(error_msg)


# Global registry instance
_registry: Optional[ProviderRegistry] = None


def get_registry(settings: Optional[Settings] = None) -> ProviderRegistry:
    """Get the global provider registry instance"""
    global _registry
    if _registry is None:
        _registry = ProviderRegistry(settings=settings)
    return _registry


def reset_registry():
    """Reset the global registry (mainly for testing)"""
    global _registry
    _registry = None
