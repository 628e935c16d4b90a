"""Prompt templates."""

from .prompt_provider import PromptProvider

__all__ = ["PromptProvider"]
