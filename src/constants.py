"""Constants used in the project."""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


class ExtensionTypes(Enum):
    """Extension origins known to the analyzer.

    Args:
        Enum (string): Extension origin.
    """

    SYSTEM = "system"
    LOCAL = "local"
    TER = "ter"
    COMPOSER = "composer"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "EXTCOMPAT_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests

    # Registry API constants
    TER_API_BASE = "https://extensions.typo3.org/api/v1"
    PACKAGIST_API_BASE = "https://packagist.org/packages"

    # Repository API constants
    GITHUB_API_BASE = "https://api.github.com"
    GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"
    GITLAB_API_BASE = "https://gitlab.com/api/v4"
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
    ENV_GITLAB_TOKEN = "GITLAB_TOKEN"
    ENV_TER_TOKEN = "TER_TOKEN"
    REPO_API_PER_PAGE = 100
    GITHUB_TAGS_LIMIT = 100
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    # Host platform packages whose constraints decide compatibility
    PLATFORM_PACKAGES = ["typo3/cms-core", "typo3/cms", "typo3/minimal"]
    PLATFORM_PACKAGE_PREFIX = "typo3/cms-"
    PLATFORM_CORE_PACKAGE = "typo3/cms-core"

    # Metadata keys that may carry a repository URL, in lookup order
    REPOSITORY_URL_KEYS = [
        "repository_url",
        "repositoryUrl",
        "repository",
        "vcs_url",
        "source_url",
        "git_url",
    ]
    MANIFEST_KEYS = ["composer_json", "composer", "manifest"]
    DEFAULT_BRANCH = "main"

    # Repository health thresholds
    HEALTH_ACTIVE_DAYS = 90
    HEALTH_POPULAR_STARS = 50
    HEALTH_GOOD_ISSUE_RATE = 0.7
    HEALTH_HEALTHY_THRESHOLD = 0.6
    HEALTH_WELL_MAINTAINED_THRESHOLD = 0.8
    HEALTH_POPULARITY_SATURATION = 1000
    HEALTH_CONTRIBUTOR_SATURATION = 20
    HEALTH_ARCHIVED_FACTOR = 0.25
    HEALTH_ARCHIVED_CAP = 0.2
    # Weights of the repository health sub-scores; they sum to 1.0
    HEALTH_WEIGHTS: Dict[str, float] = {
        "recency": 0.35,
        "popularity": 0.15,
        "issues": 0.20,
        "contributors": 0.15,
        "readme": 0.05,
        "license": 0.05,
        "not_archived": 0.05,
    }

    # Availability analysis
    ANALYSIS_MAX_WORKERS = 4
    PRE_RELEASE_MARKERS = ["dev", "alpha", "beta", "rc", "snapshot"]

    CONFIG_ENV = "EXTCOMPAT_CONFIG"
    CONFIG_LOCATIONS = [
        "extcompat.yml",
        "extcompat.yaml",
        os.path.join("~", ".config", "extcompat", "extcompat.yml"),
    ]


def _string_list(value: Any) -> List[str]:
    """A single package name or a list of them."""
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"expected a string or a list, got {type(value).__name__}")
    return [str(item) for item in value]


# Dotted config path -> Constants attribute
_CONFIG_KEYS = {
    "http.timeout": ("REQUEST_TIMEOUT", float),
    "http.retries": ("HTTP_RETRY_MAX", int),
    "http.retry_delay": ("HTTP_RETRY_BASE_DELAY_SEC", float),
    "github.api_base": ("GITHUB_API_BASE", str),
    "github.graphql_url": ("GITHUB_GRAPHQL_URL", str),
    "gitlab.api_base": ("GITLAB_API_BASE", str),
    "ter.api_base": ("TER_API_BASE", str),
    "packagist.api_base": ("PACKAGIST_API_BASE", str),
    "platform.packages": ("PLATFORM_PACKAGES", _string_list),
    "analysis.max_workers": ("ANALYSIS_MAX_WORKERS", int),
}


def _lookup(cfg: Mapping[str, Any], dot_path: str) -> Any:
    cur: Any = cfg
    for part in dot_path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return None
        cur = cur[part]
    return cur


def apply_config(cfg: Optional[Mapping[str, Any]]) -> None:
    """Copy recognised configuration values onto Constants.

    Unknown keys are ignored; values that cannot be coerced are logged and skipped.
    """
    if not isinstance(cfg, Mapping):
        return
    for dot_path, (attr, kind) in _CONFIG_KEYS.items():
        value = _lookup(cfg, dot_path)
        if value is None:
            continue
        try:
            setattr(Constants, attr, kind(value))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value for %s: %r", dot_path, value)

    weights = _lookup(cfg, "health.weights")
    if isinstance(weights, Mapping):
        merged = dict(Constants.HEALTH_WEIGHTS)
        for name, value in weights.items():
            if name not in merged:
                continue
            try:
                merged[name] = float(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid health weight %s: %r", name, value)
        Constants.HEALTH_WEIGHTS = merged


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first YAML config found; returns {} when none is usable."""
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = [path] if path else []
    env_path = os.environ.get(Constants.CONFIG_ENV)
    if env_path:
        candidates.append(env_path)
    candidates.extend(Constants.CONFIG_LOCATIONS)

    for candidate in candidates:
        full = os.path.expanduser(candidate)
        if not os.path.isfile(full):
            continue
        try:
            with open(full, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not read config file %s: %s", full, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: top level is not a mapping", full)
            return {}
        logger.debug("Loaded config from %s", full)
        return data
    return {}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML config (if any) and apply it to Constants."""
    cfg = _load_yaml_config(path)
    apply_config(cfg)
    return cfg
