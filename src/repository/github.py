"""GitHub API client for repository information.

Provides a lightweight REST client (with a GraphQL path for dated tags) for
fetching GitHub repository metadata, tags, activity and composer.json.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from constants import Constants
from common.http_client import get_json, post_json
from common.logging_utils import extra_context
from .providers import GitProviderError

logger = logging.getLogger(__name__)

PROVIDER = "github"

_LAST_PAGE_RE = re.compile(r'[?&]page=(\d+)>;\s*rel="last"')

_TAGS_QUERY = """
query($owner: String!, $name: String!, $first: Int!) {
  repository(owner: $owner, name: $name) {
    refs(refPrefix: "refs/tags/", first: $first, orderBy: {field: TAG_COMMIT_DATE, direction: DESC}) {
      nodes {
        name
        target {
          ... on Tag { tagger { date } target { oid } }
          ... on Commit { committedDate oid }
        }
      }
    }
  }
}
"""


class GitHubClient:
    """Lightweight client for GitHub API operations.

    Supports optional authentication via GITHUB_TOKEN environment variable.
    Tag creation dates need the GraphQL API, which only answers authenticated
    requests; without a token tags come from REST and carry no date.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        graphql_url: Optional[str] = None,
        token: Optional[str] = None,
    ):
        """Initialize GitHub client.

        Args:
            base_url: Base URL for the REST API (defaults to Constants.GITHUB_API_BASE)
            graphql_url: GraphQL endpoint (defaults to Constants.GITHUB_GRAPHQL_URL)
            token: Personal access token (defaults to GITHUB_TOKEN env var)
        """
        self.base_url = base_url or Constants.GITHUB_API_BASE
        self.graphql_url = graphql_url or Constants.GITHUB_GRAPHQL_URL
        self.token = token or os.environ.get(Constants.ENV_GITHUB_TOKEN)

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers including authorization if token is available."""
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        """Fetch repository metadata.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            Raw repository document

        Raises:
            GitProviderError: repository missing or API unavailable
        """
        url = f"{self.base_url}/repos/{owner}/{repo}"
        status, _, data = get_json(url, headers=self._get_headers())
        if status == 200 and isinstance(data, dict):
            return data
        if status == 404:
            raise GitProviderError(PROVIDER, f"Repository not found: {owner}/{repo}")
        raise GitProviderError(PROVIDER, f"Repository request for {owner}/{repo} failed (status {status})")

    def get_tags(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Fetch tags as ``{"name", "date", "commit"}`` dicts, newest first when dated.

        Raises:
            GitProviderError: the tag listing could not be fetched
        """
        if self.token:
            return self._get_tags_graphql(owner, repo)
        return self._get_tags_rest(owner, repo)

    def _get_tags_graphql(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        payload = {
            "query": _TAGS_QUERY,
            "variables": {"owner": owner, "name": repo, "first": Constants.GITHUB_TAGS_LIMIT},
        }
        status, _, data = post_json(self.graphql_url, payload, headers=self._get_headers())
        if status != 200 or not isinstance(data, dict):
            raise GitProviderError(PROVIDER, f"GraphQL tag query for {owner}/{repo} failed (status {status})")
        if data.get("errors"):
            raise GitProviderError(PROVIDER, f"GitHub GraphQL errors: {json.dumps(data['errors'])}")

        repository = (data.get("data") or {}).get("repository")
        if repository is None:
            raise GitProviderError(PROVIDER, f"Repository not found: {owner}/{repo}")

        tags = []
        for node in ((repository.get("refs") or {}).get("nodes") or []):
            if not isinstance(node, dict) or not node.get("name"):
                continue
            target = node.get("target") or {}
            date = (target.get("tagger") or {}).get("date") or target.get("committedDate")
            commit = target.get("oid") or (target.get("target") or {}).get("oid")
            tags.append({"name": node["name"], "date": date, "commit": commit})
        return tags

    def _get_tags_rest(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/repos/{owner}/{repo}/tags?per_page={Constants.GITHUB_TAGS_LIMIT}"
        status, _, data = get_json(url, headers=self._get_headers())
        if status != 200 or not isinstance(data, list):
            raise GitProviderError(PROVIDER, f"Tag listing for {owner}/{repo} failed (status {status})")
        return [
            {
                "name": item.get("name"),
                "date": None,
                "commit": (item.get("commit") or {}).get("sha"),
            }
            for item in data
            if isinstance(item, dict) and item.get("name")
        ]

    def get_last_commit(self, owner: str, repo: str) -> Optional[str]:
        """Get last commit timestamp on the default branch.

        Returns:
            ISO 8601 timestamp or None on error
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/commits?per_page=1"
        status, _, data = get_json(url, headers=self._get_headers())
        if status == 200 and isinstance(data, list) and data:
            commit = (data[0] or {}).get("commit") or {}
            return (commit.get("committer") or {}).get("date") or (commit.get("author") or {}).get("date")
        return None

    def get_issue_counts(self, owner: str, repo: str) -> Tuple[int, int]:
        """Open and closed issue counts (pull requests excluded) via the search API."""
        return (
            self._search_issue_count(owner, repo, "open"),
            self._search_issue_count(owner, repo, "closed"),
        )

    def _search_issue_count(self, owner: str, repo: str, state: str) -> int:
        url = f"{self.base_url}/search/issues?q=repo:{owner}/{repo}+type:issue+state:{state}&per_page=1"
        status, _, data = get_json(url, headers=self._get_headers())
        if status == 200 and isinstance(data, dict):
            try:
                return int(data.get("total_count") or 0)
            except (TypeError, ValueError):
                return 0
        logger.debug(
            "Issue search unavailable",
            extra=extra_context(event="issue_search", component="github", outcome="unavailable", status_code=status),
        )
        return 0

    def has_readme(self, owner: str, repo: str) -> bool:
        url = f"{self.base_url}/repos/{owner}/{repo}/readme"
        status, _, _ = get_json(url, headers=self._get_headers())
        return status == 200

    def get_contributors_count(self, owner: str, repo: str) -> Optional[int]:
        """Get contributor count for repository.

        Reads the last page number from the Link header of a one-per-page
        listing; falls back to the length of the returned page.

        Returns:
            Contributor count or None on error
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/contributors?per_page=1&anon=1"
        status, headers, data = get_json(url, headers=self._get_headers())
        if status != 200:
            return None
        match = _LAST_PAGE_RE.search(headers.get("link", ""))
        if match:
            return int(match.group(1))
        return len(data) if isinstance(data, list) else 0

    def get_composer_json(self, owner: str, repo: str, ref: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Read composer.json through the contents API.

        Returns:
            Parsed manifest, or None when the file does not exist or is not JSON

        Raises:
            GitProviderError: API failure other than "not found"
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/contents/composer.json"
        if ref:
            url += f"?ref={quote(ref, safe='')}"
        status, _, data = get_json(url, headers=self._get_headers())
        if status == 404:
            return None
        if status != 200 or not isinstance(data, dict):
            raise GitProviderError(PROVIDER, f"composer.json request for {owner}/{repo} failed (status {status})")
        content = data.get("content")
        if not content:
            return None
        try:
            manifest = json.loads(base64.b64decode(content).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("composer.json in %s/%s is not valid JSON", owner, repo)
            return None
        return manifest if isinstance(manifest, dict) else None
