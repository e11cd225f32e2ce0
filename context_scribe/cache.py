# File: context_scribe/cache.py
"""context_scribe.cache: файловый кэш готовых документов с окном свежести."""

from __future__ import annotations

import os
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from context_scribe.logger import logger
from context_scribe.utils import cache_key

__all__ = ["CacheEntry", "CacheStore"]


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """Документ из кэша и время последней записи файла."""

    content: str
    last_modified: datetime

    def iso_last_modified(self) -> str:
        return self.last_modified.isoformat().replace("+00:00", "Z")


class CacheStore:
    """Один файл ``<sha256>.md`` на канонический scope URL; свежесть = mtime."""

    def __init__(self, directory: Union[str, Path], ttl_seconds: float) -> None:
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds

    def path_for(self, scope: str) -> Path:
        return self.directory / f"{cache_key(scope)}.md"

    def get(self, scope: str) -> Optional[CacheEntry]:
        """Возвращает свежую запись или None (нет файла / устарел / не читается)."""
        path = self.path_for(scope)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            logger.info("[CACHE MISS] %s", scope)
            return None
        if time.time() - mtime >= self.ttl_seconds:
            logger.info("[CACHE STALE] %s", scope)
            return None
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("[CACHE ERROR] Failed to read %s: %s", path, exc)
            return None
        logger.info("[CACHE HIT] %s", scope)
        return CacheEntry(content, datetime.fromtimestamp(mtime, tz=timezone.utc))

    def put(self, scope: str, content: str) -> bool:
        """Перезаписывает запись; ошибки логируются и не пробрасываются."""
        path = self.path_for(scope)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("[CACHE ERROR] Failed to write cache for %s: %s", scope, exc)
            return False
        logger.info("[CACHE WRITE] Saved new content for %s", scope)
        return True
