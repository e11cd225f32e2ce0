# context_scribe/cleanup/rules.py
"""
Local (model-free) cleanup: boilerplate patterns and line-level language filtering.

Everything between triple-backtick fences is copied verbatim; the fence lines
themselves are always kept and toggle the code-region state.
"""
from __future__ import annotations

import re
from typing import Callable, List, Optional

from context_scribe.cleanup.base import Cleaner
from context_scribe.logger import logger
from context_scribe.parser.language import UNDETERMINED, detect_language

LanguageDetector = Callable[[str], str]

FENCE = "```"

_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_MARKUP_RE = re.compile(r"[`*_~#|]")

_NAV_LINK_RE = re.compile(r"\[(edit this page|view source|previous|next)\]\([^)]*\)", re.IGNORECASE)
_BOILERPLATE_RE = re.compile(
    r"^\s*(on this page|in this article|table of contents|was this page helpful\?"
    r"|still need help\?|contact support|related articles|feedback|legal)\s*$",
    re.IGNORECASE,
)
_SEPARATOR_RE = re.compile(r"^\s*(?:[*\-`_]\s*){3,}$")
_EMPTY_LINK = "[]()"


def text_only(line: str) -> str:
    """Line with link targets and markdown syntax characters removed."""
    return _MARKUP_RE.sub("", _LINK_RE.sub(r"\1", line)).strip()


class LanguageFilterCleaner(Cleaner):
    """Drops prose lines whose detected language is neither the target nor undetermined.

    Lines shorter than ``min_chars`` after stripping markup are kept without
    classification. Runs of blank lines collapse to one.
    """

    name = "language"
    strip_boilerplate = False

    def __init__(
        self,
        target_language: str = "en",
        min_chars: int = 30,
        detect: Optional[LanguageDetector] = None,
    ) -> None:
        self.target_language = target_language
        self.min_chars = min_chars
        self._detect = detect or detect_language

    async def _clean(self, raw: str) -> str:
        return self.filter_text(raw)

    def filter_text(self, raw: str) -> str:
        kept: List[str] = []
        in_code = False
        prev_blank = False
        removed = 0
        for line in raw.split("\n"):
            if line.strip().startswith(FENCE):
                in_code = not in_code
                kept.append(line)
                prev_blank = False
                continue
            if in_code:
                kept.append(line)
                continue
            if self.strip_boilerplate:
                line = self.scrub(line)
            if not line.strip():
                if not prev_blank:
                    kept.append("")
                prev_blank = True
                continue
            if self.keep_line(line):
                kept.append(line)
                prev_blank = False
            else:
                removed += 1
        if removed:
            logger.info("[CLEANUP] Removed %d lines not in %r", removed, self.target_language)
        return "\n".join(kept).strip()

    def keep_line(self, line: str) -> bool:
        plain = text_only(line)
        if len(plain) < self.min_chars:
            return True
        lang = self._detect(plain)
        if lang == self.target_language or lang == UNDETERMINED:
            return True
        logger.debug("[CLEANUP] Removing %s line: %.70s", lang, line)
        return False

    def scrub(self, line: str) -> str:
        return line


class RuleCleaner(LanguageFilterCleaner):
    """Language filter plus removal of navigation and page-chrome boilerplate."""

    name = "rules"
    strip_boilerplate = True

    def scrub(self, line: str) -> str:
        line = _NAV_LINK_RE.sub("", line).replace(_EMPTY_LINK, "").rstrip()
        if _BOILERPLATE_RE.match(line):
            return ""
        if _SEPARATOR_RE.match(line) and line.strip() != "---":
            return ""
        return line
