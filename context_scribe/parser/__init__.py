"""context_scribe.parser: black-box text capabilities (readability, markdown, language)."""

from context_scribe.parser.html_parser import Article, extract_article, html_to_markdown
from context_scribe.parser.language import UNDETERMINED, detect_language

__all__ = ["Article", "extract_article", "html_to_markdown", "UNDETERMINED", "detect_language"]
