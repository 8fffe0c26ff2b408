"""
OpenAI provider implementation.

Works with any OpenAI-compatible chat completions endpoint.
"""

import asyncio
import time
from typing import Optional

import aiohttp

from .base import BaseLLMProvider, LLMProviderError, LLMResponse


class OpenAIProvider(BaseLLMProvider):
    """OpenAI LLM provider implementation"""

    @property
    def provider_name(self) -> str:
        return "openai"

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.2,
        **kwargs
    ) -> LLMResponse:
        """Generate response using the chat completions API

        Args:
            prompt: Input prompt
            model: Specific model to use
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            **kwargs: Additional request fields (e.g. ``response_format``)
        """
        started = time.monotonic()
        effective_model = self.resolve_model(model)

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": effective_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        payload.update(kwargs)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.config.base_url.rstrip('/')}/chat/completions",
                    headers=headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise LLMProviderError(
                            f"OpenAI API error {response.status}: {error_text}",
                            provider=self.provider_name,
                            status=response.status,
                        )
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LLMProviderError(f"OpenAI API unreachable: {e}", provider=self.provider_name) from e

        if not data.get("choices"):
            raise LLMProviderError("OpenAI API returned no choices", provider=self.provider_name)

        message = data["choices"][0]["message"]

        return LLMResponse(
            content=self._require_content(message.get("content")),
            provider=self.provider_name,
            model=effective_model,
            tokens_used=data.get("usage", {}).get("total_tokens", 0),
            response_time_ms=self._elapsed_ms(started),
        )
