from typing import Protocol


class LLMProvider(Protocol):
    """A protocol for LLM providers."""

    async def generate(self, prompt: str) -> str:
        """
        Generates a response from the LLM.

        Args:
            prompt: The prompt to send to the LLM.

        Returns:
            The text of the LLM's reply.
        """
        ...
