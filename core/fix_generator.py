import json
from typing import Any, Dict, Optional

from core.contracts.models import ContextBundle, FileChange, FixResult
from core.contracts.provider import LLMProvider
from core.formatter.jinja_formatter import Jinja2Formatter
from utils.errors import ProviderError
from utils.logger import logger

PROMPT_TEMPLATE = "fix_prompt.j2"
NO_FIX_ERROR = "AI could not generate a confident fix"
DIAGNOSTIC_CHARS = 500


class ResponseParseError(ValueError):
    """Raised when the model's reply is not a valid structured fix."""


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Returns the first JSON object embedded in free text.

    Each "{" is tried in turn as the start of a JSON value; the decoder
    handles nested braces and braces inside strings.

    Raises:
        ResponseParseError: If no JSON object can be decoded.
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    raise ResponseParseError("No JSON found in response")


def parse_fix_response(text: str) -> FixResult:
    """
    Parses the model's reply into a FixResult.

    A structurally invalid reply yields a failed result whose reasoning is the
    start of the raw reply. An empty `changes` list is the model declining to
    fix, reported with its own reasoning and a distinct error.
    """
    try:
        parsed = extract_json_object(text)
        changes = parsed.get("changes")
        if not parsed.get("reasoning") or not parsed.get("description") or not isinstance(changes, list):
            raise ResponseParseError("Invalid response structure")
        try:
            file_changes = [FileChange(path=c["path"], content=c["content"]) for c in changes]
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseParseError(f"Invalid file change in response: {e}") from e
    except ResponseParseError as e:
        logger.error(f"Failed to parse model response: {e}")
        return FixResult(
            success=False,
            description="Failed to parse AI response",
            reasoning=text[:DIAGNOSTIC_CHARS],
            error=str(e),
        )

    test_plan = parsed.get("testPlan")
    if not file_changes:
        return FixResult(
            success=False,
            description=str(parsed["description"]),
            reasoning=str(parsed["reasoning"]),
            test_plan=test_plan if isinstance(test_plan, str) else None,
            error=NO_FIX_ERROR,
        )

    return FixResult(
        success=True,
        changes=file_changes,
        description=str(parsed["description"]),
        reasoning=str(parsed["reasoning"]),
        test_plan=test_plan if isinstance(test_plan, str) else None,
    )


class FixGenerator:
    """
    Turns a context bundle into a prompt, asks the model once, and parses its structured reply.
    """

    def __init__(
        self,
        provider: LLMProvider,
        formatter: Optional[Jinja2Formatter] = None,
        max_search_lines: int = 10,
    ):
        self.provider = provider
        self.formatter = formatter or Jinja2Formatter()
        self.max_search_lines = max_search_lines

    def build_prompt(self, bundle: ContextBundle) -> str:
        return self.formatter.render(PROMPT_TEMPLATE, bundle=bundle, max_search_lines=self.max_search_lines)

    async def generate(self, bundle: ContextBundle) -> FixResult:
        """
        Generates a fix for the bundle's issue.

        Provider errors are reported as a failed result carrying the provider's message.
        """
        prompt = self.build_prompt(bundle)
        logger.debug(f"Generated prompt for LLM:\n{prompt}")

        try:
            reply = await self.provider.generate(prompt)
        except ProviderError as e:
            logger.error(f"Model API error: {e}")
            return FixResult(
                success=False,
                description="Failed to get fix from the model",
                reasoning="API error",
                error=str(e),
            )

        result = parse_fix_response(reply)
        if result.success:
            logger.info(f"Model proposed changes to {len(result.changes)} file(s)")
        else:
            logger.warning(f"Model did not produce a usable fix: {result.error}")
        return result
