"""Prompt loading and rendering system."""

from snapsell.core.agents.prompts.loader import PROMPTS_BASE_PATH, LoadError, PromptPackLoader
from snapsell.core.agents.prompts.renderer import PromptRenderer, RenderError

__all__ = ["PROMPTS_BASE_PATH", "LoadError", "PromptPackLoader", "PromptRenderer", "RenderError"]
