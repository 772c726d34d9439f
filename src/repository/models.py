"""Immutable data carried from Git hosting providers into the analysis."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from constants import Constants
from common.time_utils import age_days
from versioning.version import Version

# Same prefixes the tag matcher strips: v1.0.0, version-1.0.0, release_1.0.0
_TAG_PREFIX_RE = re.compile(r"^(?:version|release|v)[-_]?", re.IGNORECASE)
_TAG_VERSION_RE = re.compile(r"^\d+\.\d+(?:\.\d+)?(?:-[\w.\-]+)?(?:\+[\w.\-]+)?$")


@dataclass(frozen=True)
class GitTag:
    """A tag as reported by a provider."""

    name: str
    created_at: Optional[datetime] = None
    commit: Optional[str] = None

    @property
    def semantic_version(self) -> Optional[str]:
        """Version part of the tag name, or None for non-version tags."""
        candidate = _TAG_PREFIX_RE.sub("", self.name, count=1)
        if _TAG_VERSION_RE.match(candidate):
            return candidate
        return None

    @property
    def version(self) -> Optional[Version]:
        text = self.semantic_version
        return Version.try_parse(text) if text is not None else None

    @property
    def is_semantic_version(self) -> bool:
        return self.version is not None

    @property
    def is_pre_release(self) -> bool:
        parsed = self.version
        return parsed is not None and not parsed.is_stable

    @property
    def major_version(self) -> Optional[int]:
        parsed = self.version
        return parsed.major if parsed else None

    @property
    def minor_version(self) -> Optional[int]:
        parsed = self.version
        return parsed.minor if parsed else None

    def is_newer_than(self, other: "GitTag") -> bool:
        """Compare by creation date, falling back to version order."""
        if self.created_at and other.created_at:
            return self.created_at > other.created_at
        mine, theirs = self.version, other.version
        if mine is not None and theirs is not None:
            return mine.is_greater_than(theirs)
        return self.name > other.name


@dataclass(frozen=True)
class GitRepositoryMetadata:
    """Basic repository facts."""

    name: str
    description: str = ""
    is_archived: bool = False
    is_fork: bool = False
    star_count: int = 0
    fork_count: int = 0
    last_updated: Optional[datetime] = None
    default_branch: str = Constants.DEFAULT_BRANCH

    def days_since_last_update(self, now: Optional[datetime] = None) -> Optional[int]:
        return age_days(self.last_updated, now)

    def is_recently_updated(self, now: Optional[datetime] = None) -> bool:
        days = self.days_since_last_update(now)
        return days is not None and days <= Constants.HEALTH_ACTIVE_DAYS

    @property
    def is_popular(self) -> bool:
        return self.star_count >= Constants.HEALTH_POPULAR_STARS


@dataclass(frozen=True)
class GitRepositoryHealth:
    """Repository activity signals. Derived values are computed on access."""

    last_commit_date: Optional[datetime] = None
    star_count: int = 0
    fork_count: int = 0
    open_issues_count: int = 0
    closed_issues_count: int = 0
    is_archived: bool = False
    has_readme: bool = False
    has_license: bool = False
    contributor_count: int = 0

    @property
    def total_issues_count(self) -> int:
        return self.open_issues_count + self.closed_issues_count

    @property
    def issue_resolution_rate(self) -> float:
        """Closed / total issues; 1.0 when there are no issues at all."""
        total = self.total_issues_count
        if total == 0:
            return 1.0
        return self.closed_issues_count / total

    def days_since_last_commit(self, now: Optional[datetime] = None) -> Optional[int]:
        return age_days(self.last_commit_date, now)

    def is_actively_maintained(self, now: Optional[datetime] = None) -> bool:
        days = self.days_since_last_commit(now)
        return days is not None and days <= Constants.HEALTH_ACTIVE_DAYS

    @property
    def has_good_issue_management(self) -> bool:
        return self.issue_resolution_rate >= Constants.HEALTH_GOOD_ISSUE_RATE

    @property
    def is_popular(self) -> bool:
        return self.star_count >= Constants.HEALTH_POPULAR_STARS

    @property
    def has_good_documentation(self) -> bool:
        return self.has_readme and self.has_license

    def health_score(self, now: Optional[Callable[[], datetime]] = None) -> float:
        """Bounded health score, see :class:`repository.health.GitHealthScorer`."""
        from repository.health import GitHealthScorer  # pylint: disable=import-outside-toplevel

        return GitHealthScorer(now=now).score(self)
