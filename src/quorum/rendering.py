"""Jinja2 rendering for session summaries and model prompts.

Templates live in the package's ``templates/`` directory and are plain
Markdown/text, so autoescaping is off for them.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Loads and renders templates from a directory.

    Attributes:
        env: Jinja2 Environment bound to the template directory
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=select_autoescape(enabled_extensions=("html", "xml")),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
            auto_reload=False,
        )

    def render(self, template_name: str, **context: Any) -> str:
        """Render a template by name.

        Raises:
            jinja2.TemplateNotFound: If the template doesn't exist.
        """
        return self.env.get_template(template_name).render(**context)

    def list_templates(self) -> list[str]:
        return sorted(self.env.list_templates())


@lru_cache(maxsize=1)
def get_renderer() -> TemplateRenderer:
    """Shared renderer over the packaged templates."""
    return TemplateRenderer()


def render(template_name: str, **context: Any) -> str:
    return get_renderer().render(template_name, **context)
