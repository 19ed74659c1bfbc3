import os
import json

import httpx

from core.contracts.provider import LLMProvider
from config.models import ModelConfig
from core.registry import provider_registry
from utils.errors import ProviderError
from utils.logger import logger

ANTHROPIC_API_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"


def _error_message(response: httpx.Response) -> str:
    """Returns the `error.message` of an Anthropic error body, or the raw text."""
    try:
        return response.json().get("error", {}).get("message", response.text)
    except json.JSONDecodeError:
        return response.text


@provider_registry.register("claude")
class ClaudeProvider(LLMProvider):
    """
    A provider for the Anthropic Messages API.

    One request per call: no streaming and no retries.
    """

    def __init__(self, config: ModelConfig):
        self.config = config
        api_key = config.api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ProviderError("Anthropic API key not found. Please set it in the config or as an environment variable ANTHROPIC_API_KEY.")

        self._client = httpx.AsyncClient(
            base_url=config.base_url or ANTHROPIC_API_URL,
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
            timeout=config.timeout_sec,
        )

    def _build_payload(self, prompt: str) -> dict:
        payload = {
            "model": self.config.name,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        payload.update(self.config.parameters)
        return payload

    async def generate(self, prompt: str) -> str:
        """
        Sends the prompt and returns the text of the first content block.

        Raises:
            ProviderError: On transport errors, API errors, or a reply without text.
        """
        payload = self._build_payload(prompt)
        logger.debug(f"Calling Anthropic model {payload['model']} (max_tokens={payload['max_tokens']})")
        try:
            response = await self._client.post("/messages", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request to Anthropic timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"Anthropic API error ({e.response.status_code}): {_error_message(e.response)}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"An unexpected network error occurred: {e}") from e

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise ProviderError(f"Anthropic returned a non-JSON response: {response.text[:200]}") from e
        if data.get("stop_reason") == "max_tokens":
            # Whole-file replies can be cut off mid-JSON; parsing will report it.
            logger.warning(f"Model reply hit max_tokens ({payload['max_tokens']}), output is truncated")

        block = (data.get("content") or [{}])[0]
        if block.get("type") != "text":
            raise ProviderError("Unexpected response type from Claude")
        return block.get("text", "")

    async def aclose(self) -> None:
        await self._client.aclose()
