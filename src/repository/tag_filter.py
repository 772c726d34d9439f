"""Select the tags that are candidates for a target platform version."""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from versioning.constraints import ConstraintChecker
from versioning.version import Version
from .models import GitTag

logger = logging.getLogger(__name__)


class GitTagFilter:
    """Filter repository tags by manifest compatibility.

    The manifest (composer.json) is a single gate: when it does not admit the
    target, no tag is compatible. When it does, every stable version tag is
    returned. Tags are not evaluated individually against the manifest.
    """

    def __init__(self, constraint_checker: Optional[ConstraintChecker] = None):
        self.constraint_checker = constraint_checker or ConstraintChecker()

    def is_composer_compatible(self, manifest: Optional[Mapping[str, Any]], target: Version) -> bool:
        return self.constraint_checker.is_composer_json_compatible(manifest, target)

    def filter_compatible(
        self,
        tags: Iterable[GitTag],
        target: Version,
        manifest: Optional[Mapping[str, Any]] = None,
    ) -> List[GitTag]:
        """Stable version tags in input order, or [] when the gate fails."""
        if manifest is None:
            logger.debug("No manifest available; no tag is considered compatible with %s", target)
            return []
        if not self.is_composer_compatible(manifest, target):
            logger.debug("Manifest does not admit %s", target)
            return []

        compatible: List[GitTag] = []
        for tag in tags or []:
            version = tag.version
            if version is None or not version.is_stable:
                continue
            compatible.append(tag)
        return compatible
