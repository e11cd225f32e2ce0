# context_scribe/cleanup/llm.py
"""
Model-based cleanup through an OpenAI-compatible chat-completions endpoint.
"""
from __future__ import annotations

from typing import Any, Optional

from aiohttp import ClientSession, ClientTimeout

from context_scribe.cleanup.base import Cleaner
from context_scribe.config import LLMConfig
from context_scribe.logger import logger

SYSTEM_PROMPT = (
    "You clean up documentation that was scraped from a website and converted to "
    "markdown. Remove navigation menus, cookie banners, footers, duplicated "
    "headers and other page chrome. Keep every heading, paragraph, list, table "
    "and code block that belongs to the documentation itself, unchanged. Return "
    "only the cleaned markdown."
)


class LLMCleanupError(RuntimeError):
    """The rewriting service did not return a usable document."""


class LLMCleaner(Cleaner):
    """Rewrites the document with a language model; any failure keeps the raw input."""

    name = "llm"

    def __init__(self, config: LLMConfig, api_key: Optional[str] = None) -> None:
        self.config = config
        self._api_key = api_key if api_key is not None else config.api_key

    async def _clean(self, raw: str) -> str:
        if not raw.strip():
            return raw
        if not self._api_key:
            raise LLMCleanupError(f"no API key in ${self.config.api_key_env}")
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": raw},
            ],
            "temperature": 0,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        async with ClientSession(timeout=ClientTimeout(total=self.config.timeout)) as session:
            async with session.post(self.config.endpoint, json=payload, headers=headers) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise LLMCleanupError(f"HTTP {resp.status}: {body[:200]}")
                data = await resp.json(content_type=None)
        content = _message_content(data)
        if not content or not content.strip():
            raise LLMCleanupError("empty completion")
        logger.debug("[CLEANUP] model %s returned %d chars", self.config.model, len(content))
        return content.strip()


def _message_content(data: Any) -> Optional[str]:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None
