"""Tests for the provider registry fallback chain and the LLM diagnosis generator."""

from typing import List, Optional

import pytest
from pydantic import SecretStr

from conftest import make_incident
from incident_core_lib.config.settings import Settings
from incident_core_lib.core.prompts import PromptInputs
from incident_core_lib.infrastructure.llm import LLMDiagnosisGenerator, LLMProviderError, ProviderRegistry
from incident_core_lib.infrastructure.llm.providers import BaseLLMProvider, LLMResponse, ProviderConfig
from incident_core_lib.models import RetrievalContext


class FakeProvider(BaseLLMProvider):
    """Answers with fixed content or raises; records prompts."""

    def __init__(self, name: str, content: str = "{}", error: Optional[Exception] = None, max_retries: int = 1):
        super().__init__(ProviderConfig(
            name=name,
            api_key="test-key",
            base_url="http://llm.test",
            models=[f"{name}-model"],
            max_retries=max_retries,
        ))
        self.name = name
        self.content = content
        self.error = error
        self.prompts: List[str] = []

    @property
    def provider_name(self) -> str:
        return self.name

    async def generate(self, prompt, model=None, max_tokens=1000, temperature=0.2, **kwargs):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, provider=self.name, model=self.resolve_model(model))


@pytest.fixture
def registry():
    return ProviderRegistry(settings=Settings())


class TestProviderRegistry:
    def test_no_keys_means_empty_chain(self, registry):
        assert registry.get_available_providers() == []
        assert registry.get_fallback_chain() == []

    def test_configured_provider_joins_chain(self):
        registry = ProviderRegistry(settings=Settings(
            llm_provider="openai",
            anthropic_api_key=SecretStr("a"),
            openai_api_key=SecretStr("o"),
        ))
        assert registry.get_fallback_chain() == ["openai", "anthropic"]
        assert registry.get_provider("anthropic").get_supported_models() == ["claude-3-5-sonnet-latest"]

    @pytest.mark.asyncio
    async def test_empty_chain_raises(self, registry):
        with pytest.raises(LLMProviderError, match="No LLM provider configured"):
            await registry.route_request("hello")

    @pytest.mark.asyncio
    async def test_falls_back_after_non_transient_failure(self, registry):
        primary = FakeProvider("primary", error=LLMProviderError("bad request", status=400), max_retries=3)
        backup = FakeProvider("backup", content="ok")
        registry.register_provider("backup", backup)
        registry.register_provider("primary", primary, primary=True)

        response = await registry.route_request("hello")

        assert registry.get_fallback_chain() == ["primary", "backup"]
        assert response.content == "ok"
        assert response.provider == "backup"
        # 4xx answers are not retried
        assert len(primary.prompts) == 1

    @pytest.mark.asyncio
    async def test_all_providers_fail(self, registry):
        registry.register_provider("a", FakeProvider("a", error=LLMProviderError("down")))
        registry.register_provider("b", FakeProvider("b", error=LLMProviderError("still down")))

        with pytest.raises(LLMProviderError, match="All providers failed.*still down"):
            await registry.route_request("hello")


class TestLLMDiagnosisGenerator:
    @pytest.mark.asyncio
    async def test_propose_sends_rendered_prompt(self, registry):
        provider = FakeProvider("fake", content='{"rootCause": "x"}')
        registry.register_provider("fake", provider, primary=True)
        generator = LLMDiagnosisGenerator(registry=registry)
        inputs = PromptInputs(
            app_name="Shop",
            app_stack="AWS",
            app_components=["api-gateway"],
            incident=make_incident().with_id(3),
            context=RetrievalContext(),
        )

        answer = await generator.propose(inputs)

        assert answer == '{"rootCause": "x"}'
        assert provider.prompts == [inputs.render()]
        assert "High CPU on api-gateway" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_provider_failure_propagates(self, registry):
        generator = LLMDiagnosisGenerator(registry=registry)
        inputs = PromptInputs(app_name="Shop", app_stack="AWS", incident=make_incident(), context=RetrievalContext())

        with pytest.raises(LLMProviderError):
            await generator.propose(inputs)
