# context_scribe/parser/language.py
"""
Language identification for a single line of prose.
"""
from __future__ import annotations

from langdetect import DetectorFactory, LangDetectException, detect

UNDETERMINED = "und"

# langdetect is probabilistic; a fixed seed keeps results reproducible
DetectorFactory.seed = 0


def detect_language(text: str) -> str:
    """ISO 639-1 code of the dominant language of *text*, or ``"und"``."""
    try:
        return detect(text)
    except LangDetectException:
        return UNDETERMINED
