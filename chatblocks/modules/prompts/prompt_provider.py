"""Prompt provider module for loading and caching prompt templates.

Centralizes prompt path resolution & template retrieval so core services stay
focused on orchestration/business logic. Templates ship with the package in
``chatblocks/prompts``; PROMPTS_DIR points at a directory of overrides.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from chatblocks.domain.errors import ConfigurationError
from chatblocks.modules.config.config_manager import ConfigManager

logger = logging.getLogger(__name__)

_PACKAGE_PROMPTS = Path(__file__).resolve().parents[2] / "prompts"

SYSTEM_PROMPT = "system_prompt.md"
DOCUMENT_TEXT_PROMPT = "document_text_prompt.md"
CODE_PROMPT = "code_prompt.md"
UPDATE_DOCUMENT_PROMPT = "update_document_prompt.md"
SUGGESTIONS_PROMPT = "suggestions_prompt.md"
TITLE_PROMPT = "title_prompt.md"


class PromptProvider:
    """Loads and caches prompt templates based on application configuration."""

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager
        self._cache: Dict[str, str] = {}

    def _search_dirs(self) -> List[Path]:
        dirs: List[Path] = []
        override = self.config_manager.app_settings.prompts_dir
        if override:
            dirs.append(Path(override))
        dirs.append(_PACKAGE_PROMPTS)
        return dirs

    def _load_template(self, filename: str) -> str:
        if filename in self._cache:
            return self._cache[filename]
        for base in self._search_dirs():
            path = base / filename
            if path.exists():
                content = path.read_text(encoding="utf-8").strip()
                self._cache[filename] = content
                return content
        logger.error("Prompt template not found: %s", filename)
        raise ConfigurationError(f"Prompt template not found: {filename}")

    def get_system_prompt(self) -> str:
        return self._load_template(SYSTEM_PROMPT)

    def get_document_prompt(self, kind: str) -> str:
        """System prompt for writing a new document of ``kind``."""
        return self._load_template(CODE_PROMPT if kind == "code" else DOCUMENT_TEXT_PROMPT)

    def get_update_document_prompt(self, current_content: Optional[str]) -> str:
        template = self._load_template(UPDATE_DOCUMENT_PROMPT)
        return template.replace("{current_content}", current_content or "")

    def get_suggestions_prompt(self) -> str:
        return self._load_template(SUGGESTIONS_PROMPT)

    def get_title_prompt(self) -> str:
        return self._load_template(TITLE_PROMPT)
