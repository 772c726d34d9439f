"""TYPO3 Extension Repository (TER) client.

The TER API answers ``/extension/{key}`` and ``/extension/{key}/versions``.
Unknown extension keys come back as HTTP 400 rather than 404; both mean
"not found". Each release in the versions document lists the TYPO3
generations it supports in ``typo3_versions``.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning.compatibility import RegistryCompatibilityChecker, RegistryReleaseEntry
from versioning.version import Version
from .errors import RegistryError

logger = logging.getLogger(__name__)

SOURCE = "ter"
_NOT_FOUND = (400, 404)


class TerClient:
    """Query TER for releases compatible with a target TYPO3 version."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        checker: Optional[RegistryCompatibilityChecker] = None,
    ):
        self.base_url = (base_url or Constants.TER_API_BASE).rstrip("/")
        self.token = token or os.environ.get(Constants.ENV_TER_TOKEN)
        self.checker = checker or RegistryCompatibilityChecker()
        if not self.token:
            logger.debug("No %s set; TER requests are unauthenticated and may be rate-limited", Constants.ENV_TER_TOKEN)

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _fetch(self, path: str) -> Optional[Any]:
        """GET a TER document; None when not found or on a server error.

        Raises:
            RegistryError: no response at all (network failure)
        """
        url = f"{self.base_url}{path}"
        with Timer() as timer:
            status, _, data = get_json(url, headers=self._get_headers())
        if status == 0:
            raise RegistryError(SOURCE, f"TER request failed: {safe_url(url)}")
        if status in _NOT_FOUND:
            return None
        if status != 200:
            logger.warning(
                "TER API error",
                extra=extra_context(
                    event="http_response",
                    component="ter",
                    outcome="handled_non_2xx",
                    status_code=status,
                    target=safe_url(url),
                ),
            )
            return None
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response ok",
                extra=extra_context(
                    event="http_response",
                    component="ter",
                    outcome="success",
                    status_code=status,
                    duration_ms=timer.duration_ms(),
                ),
            )
        return data

    def get_extension(self, extension_key: str) -> Optional[Dict[str, Any]]:
        """Extension document, or None when TER does not know the key."""
        data = self._fetch(f"/extension/{extension_key}")
        if isinstance(data, list):
            data = data[0] if data else None
        return data if isinstance(data, dict) else None

    def get_versions(self, extension_key: str) -> List[RegistryReleaseEntry]:
        """All releases of an extension; [] when unknown."""
        if self.get_extension(extension_key) is None:
            return []
        data = self._fetch(f"/extension/{extension_key}/versions")
        return [RegistryReleaseEntry.from_dict(item) for item in _release_list(data)]

    def has_version_for(self, extension_key: str, target: Version) -> bool:
        return self.checker.has_compatible_version(self.get_versions(extension_key), target)

    def get_latest_version(self, extension_key: str, target: Version) -> Optional[str]:
        return self.checker.get_latest_compatible_version(self.get_versions(extension_key), target)

    def check_availability(self, extension_key: str, target: Version) -> Tuple[bool, Optional[str]]:
        """Availability and latest compatible release number from one fetch."""
        versions = self.get_versions(extension_key)
        return (
            self.checker.has_compatible_version(versions, target),
            self.checker.get_latest_compatible_version(versions, target),
        )


def _release_list(data: Any) -> List[Dict[str, Any]]:
    """Unwrap the versions document.

    TER wraps the release list in an outer list (``[[{...}, ...]]``); a flat
    list of release dicts is accepted too.
    """
    if not isinstance(data, list) or not data:
        return []
    if isinstance(data[0], list):
        data = data[0]
    return [item for item in data if isinstance(item, dict)]
