"""Jinja2 environment shared by the prompt packs."""

from __future__ import annotations

from typing import Any

from jinja2 import (
    BaseLoader,
    Environment,
    StrictUndefined,
    Template,
    TemplateSyntaxError,
    UndefinedError,
)


class RenderError(Exception):
    pass


def build_environment(loader: BaseLoader | None = None) -> Environment:
    """Strict environment: an undefined variable is an error, not an empty string."""
    return Environment(
        loader=loader,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=False,
    )


class PromptRenderer:
    """Renders prompt templates to stripped text.

    Args:
        env: Environment to compile string templates with
    """

    def __init__(self, env: Environment | None = None) -> None:
        self.env = env or build_environment()

    def render(self, template: str | Template, variables: dict[str, Any]) -> str:
        """Render ``template`` (source text or a compiled template).

        Raises:
            RenderError: Missing variable or invalid syntax
        """
        try:
            compiled = self.env.from_string(template) if isinstance(template, str) else template
            return compiled.render(**variables).strip()
        except UndefinedError as e:
            raise RenderError(f"Missing variable in template: {e}") from e
        except TemplateSyntaxError as e:
            raise RenderError(f"Invalid template syntax: {e}") from e
