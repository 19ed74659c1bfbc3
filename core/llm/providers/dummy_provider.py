from typing import List, Optional

from core.contracts.provider import LLMProvider
from config.models import ModelConfig
from core.registry import provider_registry


@provider_registry.register("dummy")
class DummyProvider(LLMProvider):
    """
    A provider that answers every prompt with a canned reply.

    Used for offline runs and tests; the prompts it received are kept in `prompts`.
    """

    def __init__(self, config: ModelConfig, response: Optional[str] = None):
        self.config = config
        self._response = response if response is not None else (
            '{"reasoning": "Dummy provider does not analyze code.", '
            '"description": "No changes", "changes": [], "testPlan": ""}'
        )
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        """Returns the canned response."""
        self.prompts.append(prompt)
        return self._response

    async def aclose(self) -> None:
        pass
