"""Tests for provider adapters."""
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from repository.models import GitRepositoryHealth, GitRepositoryMetadata
from repository.provider_adapters import GitHubProviderAdapter, GitLabProviderAdapter
from repository.providers import GitProviderError

GITHUB_URL = "https://github.com/owner/repo"
GITLAB_URL = "https://gitlab.com/group/project"


class TestGitHubProviderAdapter:
    """Test GitHubProviderAdapter."""

    @pytest.fixture
    def client(self):
        client = Mock()
        client.get_repo.return_value = {
            'name': 'repo',
            'description': 'An extension',
            'archived': False,
            'fork': True,
            'stargazers_count': 100,
            'forks_count': 25,
            'pushed_at': '2024-01-01T00:00:00Z',
            'default_branch': 'develop',
            'license': {'key': 'gpl-2.0'},
        }
        client.get_issue_counts.return_value = (1, 3)
        client.get_last_commit.return_value = '2024-02-01T12:00:00Z'
        client.has_readme.return_value = True
        client.get_contributors_count.return_value = 7
        return client

    def test_get_metadata(self, client):
        """Test that repository documents become metadata."""
        adapter = GitHubProviderAdapter(client=client)
        meta = adapter.get_metadata(GITHUB_URL)

        assert isinstance(meta, GitRepositoryMetadata)
        assert meta.name == 'repo'
        assert meta.is_fork is True
        assert meta.star_count == 100
        assert meta.fork_count == 25
        assert meta.default_branch == 'develop'
        assert meta.last_updated == datetime(2024, 1, 1, tzinfo=timezone.utc)
        client.get_repo.assert_called_once_with('owner', 'repo')

    def test_get_health(self, client):
        """Test that activity signals are collected."""
        adapter = GitHubProviderAdapter(client=client)
        health = adapter.get_health("git@github.com:owner/repo.git")

        assert isinstance(health, GitRepositoryHealth)
        assert health.last_commit_date == datetime(2024, 2, 1, 12, tzinfo=timezone.utc)
        assert (health.open_issues_count, health.closed_issues_count) == (1, 3)
        assert health.has_readme and health.has_license
        assert health.contributor_count == 7
        assert health.star_count == 100

    def test_get_health_without_contributors(self, client):
        """Test that an unknown contributor count becomes 0."""
        client.get_contributors_count.return_value = None
        health = GitHubProviderAdapter(client=client).get_health(GITHUB_URL)
        assert health.contributor_count == 0

    def test_get_tags(self, client):
        """Test that raw tags become GitTag objects."""
        client.get_tags.return_value = [
            {'name': 'v1.0.0', 'date': '2023-05-01T00:00:00Z', 'commit': 'abc'},
            {'name': 'v0.9.0', 'date': None, 'commit': None},
            {'date': 'no name'},
        ]
        tags = GitHubProviderAdapter(client=client).get_tags(GITHUB_URL)

        assert [t.name for t in tags] == ['v1.0.0', 'v0.9.0']
        assert tags[0].created_at == datetime(2023, 5, 1, tzinfo=timezone.utc)
        assert tags[0].commit == 'abc'
        assert tags[1].created_at is None

    def test_get_composer_json_passes_ref(self, client):
        """Test composer.json delegation."""
        client.get_composer_json.return_value = {'require': {}}
        adapter = GitHubProviderAdapter(client=client)
        assert adapter.get_composer_json(GITHUB_URL, ref='main') == {'require': {}}
        client.get_composer_json.assert_called_once_with('owner', 'repo', 'main')

    def test_rejects_foreign_urls(self, client):
        """Test that a GitLab URL is not served by the GitHub adapter."""
        with pytest.raises(GitProviderError):
            GitHubProviderAdapter(client=client).get_metadata(GITLAB_URL)

    def test_propagates_client_errors(self, client):
        """Test that client failures are not swallowed."""
        client.get_repo.side_effect = GitProviderError('github', 'boom')
        with pytest.raises(GitProviderError):
            GitHubProviderAdapter(client=client).get_health(GITHUB_URL)


class TestGitLabProviderAdapter:
    """Test GitLabProviderAdapter."""

    @pytest.fixture
    def client(self):
        client = Mock()
        client.get_project.return_value = {
            'name': 'project',
            'description': '',
            'archived': True,
            'fork': False,
            'star_count': 50,
            'forks_count': 10,
            'last_activity_at': '2024-01-01T00:00:00Z',
            'default_branch': 'main',
            'has_readme': True,
            'has_license': False,
            'open_issues_count': 5,
        }
        client.get_issue_counts.return_value = (5, 15)
        client.get_last_commit.return_value = None
        client.get_contributors_count.return_value = 3
        return client

    def test_get_metadata(self, client):
        """Test that project documents become metadata."""
        meta = GitLabProviderAdapter(client=client).get_metadata(GITLAB_URL)
        assert meta.name == 'project'
        assert meta.is_archived is True
        assert meta.star_count == 50
        assert meta.is_popular
        client.get_project.assert_called_once_with('group', 'project')

    def test_get_health_falls_back_to_last_activity(self, client):
        """Test that project activity stands in for a missing commit date."""
        health = GitLabProviderAdapter(client=client).get_health(GITLAB_URL)
        assert health.last_commit_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert health.is_archived
        assert health.issue_resolution_rate == pytest.approx(0.75)
        assert health.has_readme and not health.has_license

    def test_get_tags(self, client):
        """Test tag conversion."""
        client.get_tags.return_value = [{'name': 'v2.0.0', 'date': '2024-03-01T10:00:00.000+01:00', 'commit': 'f00'}]
        tags = GitLabProviderAdapter(client=client).get_tags(GITLAB_URL)
        assert tags[0].name == 'v2.0.0'
        assert tags[0].created_at == datetime(2024, 3, 1, 9, tzinfo=timezone.utc)

    def test_nested_namespace(self, client):
        """Test that subgroup paths reach the client intact."""
        GitLabProviderAdapter(client=client).get_metadata("https://gitlab.com/group/sub/project")
        client.get_project.assert_called_once_with('group/sub', 'project')

    @patch('repository.gitlab.get_json')
    def test_self_hosted_instance_uses_its_own_api(self, mock_get_json, client, monkeypatch):
        """Test that gitlab.typo3.org is queried on its own host without the gitlab.com token."""
        monkeypatch.setenv("GITLAB_TOKEN", "glpat-for-gitlab-com")
        mock_get_json.return_value = (200, {}, {'name': 'foo', 'default_branch': 'main'})
        adapter = GitLabProviderAdapter(client=client)

        meta = adapter.get_metadata("https://gitlab.typo3.org/ext/foo")

        assert meta.name == 'foo'
        url = mock_get_json.call_args[0][0]
        assert url == 'https://gitlab.typo3.org/api/v4/projects/ext%2Ffoo?license=true'
        assert mock_get_json.call_args[1]['headers'] == {}
        client.get_project.assert_not_called()

    @patch('repository.gitlab.get_json')
    def test_instance_client_is_reused(self, mock_get_json, client):
        """Test one client per self-hosted instance."""
        mock_get_json.return_value = (200, {}, [])
        adapter = GitLabProviderAdapter(client=client)
        adapter.get_tags("https://gitlab.typo3.org/ext/foo")
        adapter.get_tags("https://gitlab.typo3.org/ext/bar")
        assert list(adapter._instance_clients) == ['gitlab.typo3.org']
        assert mock_get_json.call_args[0][0].startswith('https://gitlab.typo3.org/api/v4/projects/ext%2Fbar/')
