"""context_scribe.cleanup: варианты финальной очистки документа, выбираемые конфигом."""

from __future__ import annotations

from context_scribe.cleanup.base import Cleaner, PassthroughCleaner
from context_scribe.cleanup.llm import LLMCleaner
from context_scribe.cleanup.rules import LanguageFilterCleaner, RuleCleaner
from context_scribe.config import ScribeConfig

__all__ = [
    "Cleaner",
    "PassthroughCleaner",
    "LanguageFilterCleaner",
    "RuleCleaner",
    "LLMCleaner",
    "build_cleaner",
]


def build_cleaner(config: ScribeConfig) -> Cleaner:
    """Создаёт вариант очистки по ``config.cleanup``."""
    if config.cleanup == "none":
        return PassthroughCleaner()
    if config.cleanup == "language":
        return LanguageFilterCleaner(config.target_language, config.min_line_chars)
    if config.cleanup == "llm":
        return LLMCleaner(config.llm)
    return RuleCleaner(config.target_language, config.min_line_chars)
