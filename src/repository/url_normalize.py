"""Repository URL normalization.

Accepts the URL shapes found in extension metadata and Composer manifests
(https, ``git@host:``, ``ssh://``, ``git://``, ``git+https://``, with or
without ``.git``, tree/blob deep links) and reduces them to
``https://host/owner/repo``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlsplit

from constants import Constants
from .providers import ProviderType, map_host_to_type

_SCP_RE = re.compile(r"^(?:[\w.\-]+@)?(?P<host>[\w.\-]+):(?P<path>(?!//)[^\s]+)$")
_KNOWN_REPO_RE = re.compile(r"(github\.com|gitlab\.com|bitbucket\.org)[:/]([^/]+)/([^/.]+)")
_GIT_HOST_RE = re.compile(r"^https?://(?:git\.|[^/]*\.git\.[^/]*/|[^/]*git[^/]*\.com/)")
_DEEP_LINK_MARKERS = ("tree", "blob", "src")


@dataclass(frozen=True)
class RepoRef:
    """Normalized repository reference.

    Attributes:
        normalized_url: ``https://host/owner/repo``
        host: Lower-cased hostname
        owner: Owner, organisation or (GitLab) namespace path
        repo: Repository name without ``.git``
        directory: Sub-directory from a deep link, if any
    """

    normalized_url: str
    host: str
    owner: str
    repo: str
    directory: Optional[str] = None

    @property
    def provider_type(self) -> ProviderType:
        return map_host_to_type(self.host)

    def api_url(self, api_type: str = "rest") -> str:
        """REST (or GitHub GraphQL) API endpoint for this repository.

        Raises:
            ValueError: unsupported provider or API type
        """
        ptype = self.provider_type
        if ptype == ProviderType.GITHUB:
            if api_type == "graphql":
                return Constants.GITHUB_GRAPHQL_URL
            if api_type == "rest":
                return f"{Constants.GITHUB_API_BASE}/repos/{self.owner}/{self.repo}"
            raise ValueError(f"Unsupported API type: {api_type}")
        if ptype == ProviderType.GITLAB:
            project_path = quote(f"{self.owner}/{self.repo}", safe="")
            return f"{gitlab_api_base(self.host)}/projects/{project_path}"
        if ptype == ProviderType.BITBUCKET:
            return f"https://api.bitbucket.org/2.0/repositories/{self.owner}/{self.repo}"
        raise ValueError(f"Unsupported repository provider: {ptype.value}")


def gitlab_api_base(host: Optional[str]) -> str:
    """REST API base of the GitLab instance serving ``host``.

    The configured host uses ``Constants.GITLAB_API_BASE``; self-hosted
    instances (``gitlab.typo3.org``) are reached at ``https://{host}/api/v4``.
    """
    default_host = (urlsplit(Constants.GITLAB_API_BASE).hostname or "").lower()
    if not host or host.lower() == default_host:
        return Constants.GITLAB_API_BASE
    return f"https://{host.lower()}/api/v4"


def _split_host_path(url: str):
    if url.startswith("git+"):
        url = url[4:]
    if "://" in url:
        parts = urlsplit(url)
        return (parts.hostname or "").lower(), parts.path
    scp = _SCP_RE.match(url)
    if scp:
        return scp.group("host").lower(), scp.group("path")
    if "/" in url and "." in url.split("/", 1)[0]:
        # scheme-less "github.com/owner/repo"
        return _split_host_path(f"https://{url}")
    return "", ""


def normalize_repo_url(url: Optional[str]) -> Optional[RepoRef]:
    """Normalize a repository URL.

    Args:
        url: Repository URL in any supported form

    Returns:
        RepoRef, or None when no host and owner/repo path can be extracted
    """
    if not isinstance(url, str) or not url.strip():
        return None
    host, path = _split_host_path(url.strip())
    if not host:
        return None

    segments = [s for s in path.strip("/").split("/") if s]
    if segments and segments[-1].endswith(".git"):
        segments[-1] = segments[-1][:-4]
    segments = [s for s in segments if s]

    directory = None
    if map_host_to_type(host) == ProviderType.GITLAB:
        # GitLab namespaces nest; deep links start at the "-" separator
        if "-" in segments:
            cut = segments.index("-")
            rest = segments[cut + 1:]
            segments = segments[:cut]
            if len(rest) > 2 and rest[0] in _DEEP_LINK_MARKERS:
                directory = "/".join(rest[2:])
        if len(segments) < 2:
            return None
        owner, repo = "/".join(segments[:-1]), segments[-1]
    else:
        if len(segments) < 2:
            return None
        owner, repo = segments[0], segments[1]
        rest = segments[2:]
        if len(rest) > 2 and rest[0] in _DEEP_LINK_MARKERS:
            directory = "/".join(rest[2:])

    return RepoRef(
        normalized_url=f"https://{host}/{owner}/{repo}",
        host=host,
        owner=owner,
        repo=repo,
        directory=directory or None,
    )


def is_git_repository(url: Optional[str]) -> bool:
    """Heuristic check that a URL points at a Git repository."""
    if not isinstance(url, str) or not url.strip():
        return False
    url = url.strip()
    if url.endswith(".git"):
        return True
    if _KNOWN_REPO_RE.search(url):
        return True
    if url.startswith(("git://", "ssh://", "git+")):
        return True
    return bool(_GIT_HOST_RE.match(url))
