"""Diagnosis generation backed by the LLM provider registry."""

import logging
from typing import Optional

from incident_core_lib.core.interfaces import DiagnosisGenerator
from incident_core_lib.core.prompts import PromptInputs

from .providers.registry import ProviderRegistry, get_registry

logger = logging.getLogger(__name__)


class LLMDiagnosisGenerator(DiagnosisGenerator):
    """
    Renders the diagnosis prompt and sends it through the provider fallback
    chain. Provider failures propagate as ``LLMProviderError``.

    Args:
        registry: Provider registry (default: global registry)
        max_tokens: Completion budget
        temperature: Sampling temperature; low for repeatable JSON
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        max_tokens: int = 1000,
        temperature: float = 0.2,
    ):
        self.registry = registry or get_registry()
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def propose(self, prompt_inputs: PromptInputs) -> str:
        response = await self.registry.route_request(
            prompt=prompt_inputs.render(),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        logger.info(
            f"Diagnosis proposal for incident {prompt_inputs.incident.id} from "
            f"{response.provider}/{response.model} ({response.tokens_used} tokens)"
        )
        return response.content
