"""Packagist client: Composer package versions and their platform constraints."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import semantic_version

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, safe_url
from repository.url_normalize import normalize_repo_url
from versioning.constraints import ConstraintChecker
from versioning.version import Version
from .errors import RegistryError

logger = logging.getLogger(__name__)

SOURCE = "packagist"


def _is_pre_release(version: str) -> bool:
    lowered = version.lower()
    return any(marker in lowered for marker in Constants.PRE_RELEASE_MARKERS)


def _sort_key(version: str):
    """Order version strings; anything semantic_version cannot coerce sorts first."""
    try:
        return (1, semantic_version.Version.coerce(version.lstrip("vV")), version)
    except ValueError:
        return (0, None, version)


def _pick_latest(versions: List[str]) -> Optional[str]:
    if not versions:
        return None
    coercible = [v for v in versions if _sort_key(v)[0] == 1]
    if coercible:
        return max(coercible, key=lambda v: _sort_key(v)[1])
    return sorted(versions)[-1]


def _latest_preferring_stable(compatible: List[str]) -> Optional[str]:
    stable = [v for v in compatible if not _is_pre_release(v)]
    return _pick_latest(stable) or _pick_latest(compatible)


class PackagistClient:
    """Look up Composer packages on Packagist."""

    def __init__(self, base_url: Optional[str] = None, checker: Optional[ConstraintChecker] = None):
        self.base_url = (base_url or Constants.PACKAGIST_API_BASE).rstrip("/")
        self.checker = checker or ConstraintChecker()

    def get_package(self, package_name: str) -> Optional[Dict[str, Any]]:
        """The ``package`` document, or None when Packagist does not know it.

        Raises:
            RegistryError: no response at all (network failure)
        """
        url = f"{self.base_url}/{package_name}.json"
        status, _, data = get_json(url, headers={"Accept": "application/json"})
        if status == 0:
            raise RegistryError(SOURCE, f"Packagist request failed: {safe_url(url)}")
        if status != 200 or not isinstance(data, dict):
            logger.debug(
                "Package not available",
                extra=extra_context(
                    event="http_response",
                    component="packagist",
                    outcome="not_found",
                    status_code=status,
                    target=safe_url(url),
                ),
            )
            return None
        package = data.get("package")
        return package if isinstance(package, dict) else None

    def _versions(self, package_name: str) -> Dict[str, Any]:
        package = self.get_package(package_name)
        versions = (package or {}).get("versions")
        return versions if isinstance(versions, dict) else {}

    def is_version_compatible(self, version_data: Mapping[str, Any], target: Version) -> bool:
        """Decide whether one Packagist version document supports ``target``."""
        if not isinstance(version_data, Mapping):
            return False
        requirements = version_data.get("require")
        if not isinstance(requirements, Mapping):
            return False
        if version_data.get("name") == Constants.PLATFORM_CORE_PACKAGE:
            return _core_version_compatible(str(version_data.get("version") or ""), target)

        platform = self.checker.find_typo3_requirements(requirements)
        if not platform:
            # nothing pins the platform
            return True
        return any(
            self.checker.is_constraint_compatible(constraint, target)
            for constraint in platform.values()
        )

    def has_version_for(self, package_name: str, target: Version) -> bool:
        return any(
            self.is_version_compatible(data, target)
            for data in self._versions(package_name).values()
        )

    def _compatible_numbers(self, package_name: str, target: Version) -> List[str]:
        return [
            number
            for number, data in self._versions(package_name).items()
            if self.is_version_compatible(data, target)
        ]

    def get_latest_version(self, package_name: str, target: Version) -> Optional[str]:
        """Latest compatible version; stable releases win over dev/pre-releases."""
        return _latest_preferring_stable(self._compatible_numbers(package_name, target))

    def check_availability(self, package_name: str, target: Version) -> Tuple[bool, Optional[str]]:
        """Availability and latest compatible version from one fetch."""
        compatible = self._compatible_numbers(package_name, target)
        return bool(compatible), _latest_preferring_stable(compatible)

    def get_repository_url(self, package_name: str) -> Optional[str]:
        """Normalized source repository URL declared on Packagist."""
        try:
            package = self.get_package(package_name)
        except RegistryError as exc:
            logger.debug("Failed to get repository URL from Packagist: %s", exc)
            return None
        repository = (package or {}).get("repository")
        if not isinstance(repository, str) or not repository:
            return None
        ref = normalize_repo_url(repository)
        return ref.normalized_url if ref else repository


def _core_version_compatible(package_version: str, target: Version) -> bool:
    """typo3/cms-core: its own version is the platform version."""
    normalized = package_version.lstrip("vV")
    if "dev" in normalized.lower():
        return False
    parts = normalized.split(".")
    if len(parts) < 2:
        return False
    if parts[0] != str(target.major) or parts[1] != str(target.minor):
        return False
    if len(parts) >= 3:
        try:
            return int(parts[2]) >= target.patch
        except ValueError:
            return False
    return True
