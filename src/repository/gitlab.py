"""GitLab API client for repository information.

Provides a lightweight REST client for fetching GitLab project metadata,
tags with commit dates, activity signals and composer.json.
"""
from __future__ import annotations

import json
import logging
import os
from typing import List, Optional, Dict, Any, Tuple
from urllib.parse import quote

from constants import Constants
from common.http_client import get_json, robust_get
from .providers import GitProviderError

logger = logging.getLogger(__name__)

PROVIDER = "gitlab"


class GitLabClient:
    """Lightweight REST client for GitLab API operations.

    Supports optional authentication via GITLAB_TOKEN environment variable.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None):
        """Initialize GitLab client.

        Args:
            base_url: Base URL for GitLab API (defaults to Constants.GITLAB_API_BASE)
            token: GitLab personal access token (defaults to GITLAB_TOKEN env var;
                an empty string sends no token)
        """
        self.base_url = base_url or Constants.GITLAB_API_BASE
        self.token = os.environ.get(Constants.ENV_GITLAB_TOKEN) if token is None else token

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers including authorization if token is available."""
        headers = {}
        if self.token:
            headers['Private-Token'] = self.token
        return headers

    def _project_url(self, owner: str, repo: str) -> str:
        project_path = quote(f"{owner}/{repo}", safe='')
        return f"{self.base_url}/projects/{project_path}"

    def get_project(self, owner: str, repo: str) -> Dict[str, Any]:
        """Fetch project metadata.

        Args:
            owner: Project owner/namespace
            repo: Project name

        Returns:
            Dict with name, description, archived, fork, star_count,
            forks_count, last_activity_at, default_branch, has_readme,
            has_license and open_issues_count

        Raises:
            GitProviderError: project missing or API unavailable
        """
        url = f"{self._project_url(owner, repo)}?license=true"
        status, _, data = get_json(url, headers=self._get_headers())

        if status == 200 and isinstance(data, dict):
            return {
                'name': data.get('name') or repo,
                'description': data.get('description') or '',
                'archived': bool(data.get('archived')),
                'fork': data.get('forked_from_project') is not None,
                'star_count': data.get('star_count') or 0,
                'forks_count': data.get('forks_count') or 0,
                'last_activity_at': data.get('last_activity_at'),
                'default_branch': data.get('default_branch'),
                'has_readme': bool(data.get('readme_url')),
                'has_license': bool(data.get('license') or data.get('license_url')),
                'open_issues_count': data.get('open_issues_count'),
            }
        if status == 404:
            raise GitProviderError(PROVIDER, f"Project not found: {owner}/{repo}")
        raise GitProviderError(PROVIDER, f"Project request for {owner}/{repo} failed (status {status})")

    def get_tags(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Fetch project tags with pagination.

        Args:
            owner: Project owner/namespace
            repo: Project name

        Returns:
            List of ``{"name", "date", "commit"}`` dicts

        Raises:
            GitProviderError: the first page could not be fetched
        """
        raw = self._get_paginated_results(
            f"{self._project_url(owner, repo)}/repository/tags",
            required=True,
        )
        tags = []
        for item in raw:
            if not isinstance(item, dict) or not item.get('name'):
                continue
            commit = item.get('commit') or {}
            tags.append({
                'name': item['name'],
                'date': commit.get('committed_date') or commit.get('created_at'),
                'commit': commit.get('id'),
            })
        return tags

    def get_contributors_count(self, owner: str, repo: str) -> Optional[int]:
        """Get contributor count for project.

        Note: GitLab contributor statistics may be inaccurate on very large repos
        due to API limitations.

        Args:
            owner: Project owner/namespace
            repo: Project name

        Returns:
            Contributor count or None on error
        """
        url = f"{self._project_url(owner, repo)}/repository/contributors"

        status, headers, data = get_json(url, headers=self._get_headers())

        if status == 200:
            total = headers.get('x-total')
            if total:
                try:
                    return int(total)
                except ValueError:
                    pass
            if isinstance(data, list):
                return len(data)

        return None

    def get_last_commit(self, owner: str, repo: str) -> Optional[str]:
        """Get last commit timestamp for project.

        Args:
            owner: Project owner/namespace
            repo: Project name

        Returns:
            ISO 8601 timestamp or None on error
        """
        url = f"{self._project_url(owner, repo)}/repository/commits?per_page=1"
        status, _, data = get_json(url, headers=self._get_headers())
        if status == 200 and isinstance(data, list) and data:
            first = data[0] if isinstance(data[0], dict) else {}
            return first.get("committed_date") or first.get("created_at")
        return None

    def get_issue_counts(self, owner: str, repo: str) -> Tuple[int, int]:
        """Open and closed issue counts from the issues statistics endpoint.

        Returns:
            (open, closed); (0, 0) when statistics are unavailable
        """
        url = f"{self._project_url(owner, repo)}/issues_statistics"
        status, _, data = get_json(url, headers=self._get_headers())
        if status == 200 and isinstance(data, dict):
            counts = (data.get('statistics') or {}).get('counts') or {}
            try:
                return int(counts.get('opened') or 0), int(counts.get('closed') or 0)
            except (TypeError, ValueError):
                pass
        logger.debug("Issue statistics unavailable for %s/%s (status %s)", owner, repo, status)
        return 0, 0

    def get_composer_json(self, owner: str, repo: str, ref: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Read composer.json from the repository files API.

        Returns:
            Parsed manifest, or None when missing or not JSON

        Raises:
            GitProviderError: API failure other than "not found"
        """
        url = f"{self._project_url(owner, repo)}/repository/files/composer.json/raw"
        url += f"?ref={quote(ref or 'HEAD', safe='')}"
        status, _, text = robust_get(url, headers=self._get_headers())
        if status == 404:
            return None
        if status != 200:
            raise GitProviderError(PROVIDER, f"composer.json request for {owner}/{repo} failed (status {status})")
        try:
            manifest = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("composer.json in %s/%s is not valid JSON", owner, repo)
            return None
        return manifest if isinstance(manifest, dict) else None

    def _get_paginated_results(self, url: str, required: bool = False) -> List[Dict[str, Any]]:
        """Fetch all pages of a paginated endpoint.

        Args:
            url: Base URL for paginated endpoint
            required: Raise when the first page fails instead of returning []

        Returns:
            List of all results across pages
        """
        results = []
        current_url = f"{url}?per_page={Constants.REPO_API_PER_PAGE}"
        first = True

        while current_url:
            status, headers, data = get_json(current_url, headers=self._get_headers())

            if status != 200 or not data:
                if first and required and status != 200:
                    raise GitProviderError(PROVIDER, f"Listing {url} failed (status {status})")
                break
            first = False

            results.extend(data)

            # Check for next page
            current_page = self._get_current_page(headers)
            total_pages = self._get_total_pages(headers)

            if current_page and total_pages and current_page < total_pages:
                next_page = current_page + 1
                current_url = f"{url}?per_page={Constants.REPO_API_PER_PAGE}&page={next_page}"
            else:
                current_url = None

        return results

    def _get_current_page(self, headers: Dict[str, str]) -> Optional[int]:
        """Extract current page from response headers.

        Args:
            headers: Response headers

        Returns:
            Current page number or None
        """
        page_str = headers.get('x-page')
        if page_str:
            try:
                return int(page_str)
            except ValueError:
                pass
        return None

    def _get_total_pages(self, headers: Dict[str, str]) -> Optional[int]:
        """Extract total pages from response headers.

        Args:
            headers: Response headers

        Returns:
            Total pages or None
        """
        total_str = headers.get('x-total-pages')
        if total_str:
            try:
                return int(total_str)
            except ValueError:
                pass
        return None
