"""Repository health scoring.

Turns activity signals into one number in [0, 1]. Each signal is scored on
its own in [0, 1], weighted, and summed:

* recency of the last commit (heaviest; an unknown date scores 0),
* popularity: stars + forks on a log scale,
* issue resolution rate,
* contributor count on a log scale,
* README and license presence,
* not being archived.

Archived repositories are capped into the low end of the range no matter
how good the other signals look.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable, Dict, Optional

from constants import Constants
from common.time_utils import age_days, utc_now
from .models import GitRepositoryHealth

logger = logging.getLogger(__name__)

# (max age in days, sub-score); older than the last step scores RECENCY_FLOOR
RECENCY_STEPS = (
    (30, 1.0),
    (90, 0.8),
    (180, 0.6),
    (365, 0.4),
    (730, 0.2),
)
RECENCY_FLOOR = 0.05


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _log_scale(count: int, saturation: int) -> float:
    """Diminishing returns: 0 for 0, 1.0 at ``saturation`` and above."""
    if count <= 0:
        return 0.0
    return _clamp(math.log10(count + 1) / math.log10(saturation + 1))


def recency_score(days: Optional[int]) -> float:
    if days is None:
        return 0.0
    for limit, score in RECENCY_STEPS:
        if days <= limit:
            return score
    return RECENCY_FLOOR


class GitHealthScorer:
    """Compute a bounded health score from :class:`GitRepositoryHealth`.

    Holds only its configuration (weights and clock), so one instance can be
    shared between threads.
    """

    def __init__(
        self,
        weights: Optional[Dict[str, float]] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.weights = dict(weights) if weights is not None else dict(Constants.HEALTH_WEIGHTS)
        self._now = now or utc_now

    def components(self, health: GitRepositoryHealth, now: Optional[datetime] = None) -> Dict[str, float]:
        """Unweighted sub-scores, each in [0, 1]."""
        reference = now or self._now()
        return {
            "recency": recency_score(age_days(health.last_commit_date, reference)),
            "popularity": _log_scale(
                max(0, health.star_count) + max(0, health.fork_count),
                Constants.HEALTH_POPULARITY_SATURATION,
            ),
            "issues": _clamp(health.issue_resolution_rate),
            "contributors": _log_scale(health.contributor_count, Constants.HEALTH_CONTRIBUTOR_SATURATION),
            "readme": 1.0 if health.has_readme else 0.0,
            "license": 1.0 if health.has_license else 0.0,
            "not_archived": 0.0 if health.is_archived else 1.0,
        }

    def score(self, health: GitRepositoryHealth, now: Optional[datetime] = None) -> float:
        parts = self.components(health, now)
        base = sum(
            self.weights.get(name, 0.0) * value
            for name, value in parts.items()
            if name != "not_archived"
        )
        if health.is_archived:
            total = min(base * Constants.HEALTH_ARCHIVED_FACTOR, Constants.HEALTH_ARCHIVED_CAP)
        else:
            total = base + self.weights.get("not_archived", 0.0)
        total = _clamp(total)
        logger.debug("Health score %.3f from %s", total, parts)
        return total
