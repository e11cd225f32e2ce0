# File: context_scribe/utils.py
"""context_scribe.utils: URL helpers shared by discovery, processing and the cache."""

from __future__ import annotations

import hashlib
import posixpath
from typing import Any, Optional, Sequence
from urllib.parse import SplitResult, urlsplit

from context_scribe.logger import logger

__all__: Sequence[str] = (
    "InvalidURLError",
    "parse_seed",
    "canonicalize",
    "scope_of",
    "in_scope",
    "cache_key",
)

_ALLOWED_SCHEMES = ("http", "https")
_DEFAULT_PORTS = {"http": 80, "https": 443}


class InvalidURLError(ValueError):
    """Raised when a seed URL is missing or cannot be crawled."""


def _origin(parts: SplitResult) -> str:
    scheme = parts.scheme.lower()
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def _split(url: str) -> Optional[SplitResult]:
    try:
        parts = urlsplit(url.strip())
        # .port raises ValueError on garbage like "host:abc"
        parts.port
    except ValueError:
        return None
    if parts.scheme.lower() not in _ALLOWED_SCHEMES or not parts.hostname:
        return None
    return parts


def parse_seed(url: Any) -> SplitResult:
    """Validate a seed URL, raising :class:`InvalidURLError` when it is unusable."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError("URL is missing")
    parts = _split(url)
    if parts is None:
        raise InvalidURLError(f"Invalid URL: {url!r}")
    return parts


def _remove_dot_segments(path: str) -> str:
    segments = path.split("/")
    if "." not in segments and ".." not in segments:
        return path
    norm = posixpath.normpath(path)
    # normpath keeps a leading "//"
    norm = "/" + norm.lstrip("/")
    if path.endswith(("/", "/.", "/..")) and not norm.endswith("/"):
        norm += "/"
    return norm


def canonicalize(url: str) -> Optional[str]:
    """Reduce *url* to ``origin + path``; query and fragment are dropped.

    "." and ".." segments are resolved, so a path can never climb out of
    the scope prefix it appears to start with.

    Returns ``None`` for anything that is not an absolute http(s) URL.
    """
    parts = _split(url)
    if parts is None:
        return None
    return _origin(parts) + _remove_dot_segments(parts.path or "/")


def scope_of(seed: str) -> str:
    """Scope prefix of a seed: origin plus path without its trailing slash."""
    parts = parse_seed(seed)
    path = _remove_dot_segments(parts.path or "/")
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return _origin(parts) + path


def in_scope(url: str, scope: str) -> bool:
    return url.startswith(scope)


def cache_key(scope: str) -> str:
    """Hex SHA-256 of the canonical scope URL."""
    key = hashlib.sha256(scope.encode("utf-8")).hexdigest()
    logger.debug("Cache key: %s -> %s", scope, key)
    return key
