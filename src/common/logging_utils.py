"""Logging helpers shared by clients, checkers and the resolver.

Keeps structured ``extra=`` payloads consistent and makes sure no token or
credential ends up in a log line.
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_PARAMS = {"token", "access_token", "private_token", "apikey", "api_key", "key", "password"}
_TOKEN_PATTERNS = [
    (re.compile(r"gh[pousr]_[A-Za-z0-9]{20,}"), "***"),
    (re.compile(r"glpat-[A-Za-z0-9_\-]{20,}"), "***"),
    (re.compile(r"((?:Bearer|token)\s+)[A-Za-z0-9_\-\.]+", re.IGNORECASE), r"\1***"),
]


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once, honouring EXTCOMPAT_LOG_LEVEL."""
    name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=Constants.LOG_FORMAT)
    logging.getLogger().setLevel(numeric)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping, dropping None values."""
    return {k: v for k, v in fields.items() if v is not None}


def redact(text: Optional[str]) -> str:
    """Mask anything that looks like an access token."""
    if not text:
        return ""
    out = str(text)
    for pattern, replacement in _TOKEN_PATTERNS:
        out = pattern.sub(replacement, out)
    return out


def safe_url(url: Optional[str]) -> str:
    """Strip userinfo and sensitive query parameters from a URL."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    query = [
        (k, "***" if k.lower() in _SENSITIVE_PARAMS else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit((parts.scheme, netloc, parts.path, urlencode(query), parts.fragment))


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds so far (or total, once the block exited)."""
        if self._start is None:
            return 0
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
