"""
Anthropic provider implementation.

Calls the Claude Messages API over aiohttp.
"""

import asyncio
import time
from typing import Optional

import aiohttp

from .base import BaseLLMProvider, LLMProviderError, LLMResponse

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude LLM provider implementation"""

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.2,
        **kwargs
    ) -> LLMResponse:
        """
        Generate text using the Anthropic Messages API

        Args:
            prompt: Input prompt for text generation
            model: Specific Claude model to use
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0-1.0)
            **kwargs: ``system`` and ``stop_sequences`` are forwarded
        """
        started = time.monotonic()
        selected_model = self.resolve_model(model)

        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

        request_body = {
            "model": selected_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        if "system" in kwargs:
            request_body["system"] = kwargs["system"]

        if "stop_sequences" in kwargs:
            request_body["stop_sequences"] = kwargs["stop_sequences"]

        url = f"{self.config.base_url.rstrip('/')}/messages"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    headers=headers,
                    json=request_body,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise LLMProviderError(
                            f"Anthropic API request failed: {response.status} - {error_text}",
                            provider=self.provider_name,
                            status=response.status,
                        )
                    response_data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LLMProviderError(f"Anthropic API unreachable: {e}", provider=self.provider_name) from e

        # Content arrives as a list of blocks
        content = "".join(
            block.get("text", "")
            for block in response_data.get("content") or []
            if block.get("type") == "text"
        )

        return LLMResponse(
            content=self._require_content(content),
            provider=self.provider_name,
            model=selected_model,
            tokens_used=response_data.get("usage", {}).get("output_tokens", 0),
            response_time_ms=self._elapsed_ms(started),
        )
