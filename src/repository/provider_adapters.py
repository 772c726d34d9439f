"""Adapters that expose the GitHub and GitLab clients through the provider port.

Each adapter takes a repository URL, resolves owner/repo, calls its client
and converts the raw API dictionaries into the immutable repository models.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from constants import Constants
from common.time_utils import parse_iso8601
from .github import GitHubClient
from .gitlab import GitLabClient
from .models import GitRepositoryHealth, GitRepositoryMetadata, GitTag
from .providers import GitProviderError, ProviderType
from .url_normalize import RepoRef, gitlab_api_base, normalize_repo_url

logger = logging.getLogger(__name__)


def _to_tags(raw: List[Dict[str, Any]]) -> List[GitTag]:
    return [
        GitTag(name=item["name"], created_at=parse_iso8601(item.get("date")), commit=item.get("commit"))
        for item in raw or []
        if isinstance(item, dict) and item.get("name")
    ]


class _BaseAdapter:
    """Shared URL handling for the concrete adapters."""

    provider_type = ProviderType.UNKNOWN

    def _ref(self, url: str) -> RepoRef:
        ref = normalize_repo_url(url)
        if ref is None or ref.provider_type != self.provider_type:
            raise GitProviderError(self.provider_type.value, f"Not a {self.provider_type.value} repository URL: {url}")
        return ref


class GitHubProviderAdapter(_BaseAdapter):
    """Provider port implementation backed by :class:`GitHubClient`."""

    provider_type = ProviderType.GITHUB

    def __init__(self, client: Optional[GitHubClient] = None):
        self.client = client or GitHubClient()

    def get_metadata(self, url: str) -> GitRepositoryMetadata:
        ref = self._ref(url)
        data = self.client.get_repo(ref.owner, ref.repo)
        return GitRepositoryMetadata(
            name=data.get("name") or ref.repo,
            description=data.get("description") or "",
            is_archived=bool(data.get("archived")),
            is_fork=bool(data.get("fork")),
            star_count=data.get("stargazers_count") or 0,
            fork_count=data.get("forks_count") or 0,
            last_updated=parse_iso8601(data.get("pushed_at") or data.get("updated_at")),
            default_branch=data.get("default_branch") or Constants.DEFAULT_BRANCH,
        )

    def get_health(self, url: str) -> GitRepositoryHealth:
        ref = self._ref(url)
        data = self.client.get_repo(ref.owner, ref.repo)
        open_issues, closed_issues = self.client.get_issue_counts(ref.owner, ref.repo)
        return GitRepositoryHealth(
            last_commit_date=parse_iso8601(self.client.get_last_commit(ref.owner, ref.repo)),
            star_count=data.get("stargazers_count") or 0,
            fork_count=data.get("forks_count") or 0,
            open_issues_count=open_issues,
            closed_issues_count=closed_issues,
            is_archived=bool(data.get("archived")),
            has_readme=self.client.has_readme(ref.owner, ref.repo),
            has_license=bool(data.get("license")),
            contributor_count=self.client.get_contributors_count(ref.owner, ref.repo) or 0,
        )

    def get_tags(self, url: str) -> List[GitTag]:
        ref = self._ref(url)
        return _to_tags(self.client.get_tags(ref.owner, ref.repo))

    def get_composer_json(self, url: str, ref: Optional[str] = None) -> Optional[Dict[str, Any]]:
        repo_ref = self._ref(url)
        return self.client.get_composer_json(repo_ref.owner, repo_ref.repo, ref)


class GitLabProviderAdapter(_BaseAdapter):
    """Provider port implementation backed by :class:`GitLabClient`.

    ``client`` serves the configured GitLab host. Self-hosted instances get a
    client of their own, created on first use and sent no token.
    """

    provider_type = ProviderType.GITLAB

    def __init__(self, client: Optional[GitLabClient] = None):
        self.client = client or GitLabClient()
        self._instance_clients: Dict[str, GitLabClient] = {}
        self._lock = threading.Lock()

    def _client_for(self, ref: RepoRef) -> GitLabClient:
        base_url = gitlab_api_base(ref.host)
        if base_url == Constants.GITLAB_API_BASE:
            return self.client
        with self._lock:
            client = self._instance_clients.get(ref.host)
            if client is None:
                client = GitLabClient(base_url=base_url, token="")
                self._instance_clients[ref.host] = client
            return client

    def get_metadata(self, url: str) -> GitRepositoryMetadata:
        ref = self._ref(url)
        client = self._client_for(ref)
        project = client.get_project(ref.owner, ref.repo)
        return GitRepositoryMetadata(
            name=project.get("name") or ref.repo,
            description=project.get("description") or "",
            is_archived=bool(project.get("archived")),
            is_fork=bool(project.get("fork")),
            star_count=project.get("star_count") or 0,
            fork_count=project.get("forks_count") or 0,
            last_updated=parse_iso8601(project.get("last_activity_at")),
            default_branch=project.get("default_branch") or Constants.DEFAULT_BRANCH,
        )

    def get_health(self, url: str) -> GitRepositoryHealth:
        ref = self._ref(url)
        client = self._client_for(ref)
        project = client.get_project(ref.owner, ref.repo)
        open_issues, closed_issues = client.get_issue_counts(ref.owner, ref.repo)
        return GitRepositoryHealth(
            last_commit_date=parse_iso8601(
                client.get_last_commit(ref.owner, ref.repo) or project.get("last_activity_at")
            ),
            star_count=project.get("star_count") or 0,
            fork_count=project.get("forks_count") or 0,
            open_issues_count=open_issues,
            closed_issues_count=closed_issues,
            is_archived=bool(project.get("archived")),
            has_readme=bool(project.get("has_readme")),
            has_license=bool(project.get("has_license")),
            contributor_count=client.get_contributors_count(ref.owner, ref.repo) or 0,
        )

    def get_tags(self, url: str) -> List[GitTag]:
        ref = self._ref(url)
        return _to_tags(self._client_for(ref).get_tags(ref.owner, ref.repo))

    def get_composer_json(self, url: str, ref: Optional[str] = None) -> Optional[Dict[str, Any]]:
        repo_ref = self._ref(url)
        return self._client_for(repo_ref).get_composer_json(repo_ref.owner, repo_ref.repo, ref)
