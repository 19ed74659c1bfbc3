from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from utils.errors import FormatterError


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cuts text to `limit` characters, appending suffix when something was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


class Jinja2Formatter:
    """Renders the prompt, pull request and comment templates."""

    def __init__(self, template_dir: Optional[str] = None):
        if template_dir is None:
            # Default template directory relative to this file
            template_dir = str(Path(__file__).parent / "templates")

        self.template_dir = template_dir
        try:
            self.env = Environment(
                loader=FileSystemLoader(self.template_dir),
                trim_blocks=True,
                lstrip_blocks=True,
                keep_trailing_newline=False,
                undefined=StrictUndefined,
            )
        except Exception as e:
            raise FormatterError(f"Failed to initialize Jinja2 environment: {e}") from e
        self.env.filters["truncate_chars"] = truncate

    def render(self, template_name: str, **context: Any) -> str:
        try:
            template = self.env.get_template(template_name)
            return template.render(**context).strip()
        except Exception as e:
            raise FormatterError(f"Failed to render template {template_name}: {e}") from e
