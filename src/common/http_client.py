"""Shared HTTP helpers used across registry and repository clients.

Encapsulates common request/timeout/retry handling so modules avoid
duplicating try/except blocks. Nothing is cached here: every call goes to
the network.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _request(
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], str]:
    """Perform a request with timeout and retries.

    Returns:
        Tuple of (status_code, headers_dict, body_text). Header names are
        lower-cased. Status 0 means the request never produced a response; the
        text then holds the reason.
    """
    safe_target = safe_url(url)
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action=method,
                            target=safe_target,
                            attempt=attempt + 1,
                        ),
                    )
                response = requests.request(
                    method,
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs,
                )
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action=method,
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target,
                        ),
                    )
                return (
                    response.status_code,
                    {k.lower(): v for k, v in response.headers.items()},
                    response.text,
                )

            except requests.Timeout:
                last_exception = "timeout"
                logger.debug(
                    "HTTP timeout",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action=method,
                        outcome="timeout",
                        attempt=attempt + 1,
                        target=safe_target,
                    ),
                )
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
                logger.debug(
                    "HTTP request exception",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action=method,
                        outcome="request_exception",
                        attempt=attempt + 1,
                        target=safe_target,
                    ),
                )
                continue

    logger.warning(
        "%s %s failed after %s attempts: %s",
        method,
        safe_target,
        Constants.HTTP_RETRY_MAX,
        last_exception,
    )
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries."""
    return _request("GET", url, headers=headers, **kwargs)


def _decode(status_code: int, response_headers: Dict[str, str], text: str, url: str):
    if status_code == 200 and text:
        try:
            return status_code, response_headers, json.loads(text)
        except json.JSONDecodeError:
            logger.debug(
                "JSON decode error",
                extra=extra_context(
                    event="parse",
                    component="http_client",
                    outcome="json_decode_error",
                    status_code=status_code,
                    target=safe_url(url),
                ),
            )
    return status_code, response_headers, None


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response.

    Args:
        url: Target URL
        headers: Optional request headers
        **kwargs: Additional requests parameters

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)
    return _decode(status_code, response_headers, text, url)


def post_json(
    url: str,
    payload: Dict[str, Any],
    *,
    headers: Optional[Dict[str, str]] = None,
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """POST a JSON payload and parse the JSON response.

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = _request("POST", url, headers=headers, json=payload)
    return _decode(status_code, response_headers, text, url)
