"""Prompt packs on disk.

A pack is a directory holding ``system.j2`` and ``user.j2``. The listing
step uses the ``listing`` pack and the angle step the ``angle_prompts`` pack.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from jinja2 import FileSystemLoader, Template, TemplateSyntaxError

from snapsell.core.agents.prompts.renderer import PromptRenderer, build_environment

logger = logging.getLogger(__name__)

PROMPTS_BASE_PATH: Path = Path(__file__).resolve().parent

PROMPT_PARTS: tuple[str, ...] = ("system", "user")


class LoadError(Exception):
    """Prompt pack is missing, incomplete or does not compile."""


class PromptPackLoader:
    """Compiles prompt packs once and renders them per request.

    Args:
        base_path: Directory containing one sub-directory per pack
    """

    def __init__(self, base_path: str | Path = PROMPTS_BASE_PATH):
        self.base_path = Path(base_path)
        self.renderer = PromptRenderer(build_environment(FileSystemLoader(self.base_path)))
        self._packs: dict[str, dict[str, Template]] = {}

    def available(self) -> list[str]:
        """Names of the complete packs under ``base_path``."""
        return sorted(
            d.name
            for d in self.base_path.iterdir()
            if d.is_dir() and all((d / f"{part}.j2").is_file() for part in PROMPT_PARTS)
        )

    def load(self, pack_name: str) -> dict[str, Template]:
        """Compiled templates of a pack, keyed by part ("system", "user").

        Raises:
            LoadError: Pack directory or a part is missing, or a part does not compile
        """
        if pack_name in self._packs:
            return self._packs[pack_name]

        pack_dir = self.base_path / pack_name
        if not pack_dir.is_dir():
            raise LoadError(f"Prompt pack '{pack_name}' does not exist at {pack_dir}")

        templates: dict[str, Template] = {}
        for part in PROMPT_PARTS:
            path = pack_dir / f"{part}.j2"
            if not path.is_file():
                raise LoadError(f"Prompt pack '{pack_name}' missing required {part}.j2 at {path}")
            try:
                templates[part] = self.renderer.env.get_template(f"{pack_name}/{part}.j2")
            except TemplateSyntaxError as e:
                raise LoadError(f"Invalid template syntax in {path}: {e}") from e

        logger.debug(f"Compiled prompt pack '{pack_name}'")
        self._packs[pack_name] = templates
        return templates

    def load_and_render(self, pack_name: str, variables: dict[str, Any]) -> dict[str, str]:
        """Render every part of a pack.

        Raises:
            LoadError: If loading fails
            RenderError: If a variable is missing
        """
        templates = self.load(pack_name)
        return {part: self.renderer.render(t, variables) for part, t in templates.items()}
