"""Tests for the GitHub API client."""
import base64
import json
from unittest.mock import patch

import pytest

from repository.github import GitHubClient
from repository.providers import GitProviderError


@pytest.fixture
def anonymous(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return GitHubClient()


class TestGitHubClientRepo:
    """Test repository metadata calls."""

    @patch('repository.github.get_json')
    def test_get_repo(self, mock_get_json, anonymous):
        """Test a successful repository fetch."""
        mock_get_json.return_value = (200, {}, {'name': 'repo', 'stargazers_count': 3})
        assert anonymous.get_repo('owner', 'repo')['stargazers_count'] == 3
        url = mock_get_json.call_args[0][0]
        assert url == 'https://api.github.com/repos/owner/repo'
        assert 'Authorization' not in mock_get_json.call_args[1]['headers']

    @patch('repository.github.get_json')
    @pytest.mark.parametrize("status", [404, 500, 0])
    def test_get_repo_failure_raises(self, mock_get_json, status, anonymous):
        """Test that missing repositories and API failures raise."""
        mock_get_json.return_value = (status, {}, None)
        with pytest.raises(GitProviderError) as excinfo:
            anonymous.get_repo('owner', 'repo')
        assert excinfo.value.provider == 'github'

    @patch('repository.github.get_json')
    def test_token_is_sent(self, mock_get_json):
        """Test bearer authentication."""
        mock_get_json.return_value = (200, {}, {})
        GitHubClient(token='ghp_test').get_repo('owner', 'repo')
        assert mock_get_json.call_args[1]['headers']['Authorization'] == 'Bearer ghp_test'


class TestGitHubClientTags:
    """Test tag listing."""

    @patch('repository.github.get_json')
    def test_rest_tags_without_token(self, mock_get_json, anonymous):
        """Test the unauthenticated REST path."""
        mock_get_json.return_value = (200, {}, [
            {'name': 'v1.0.0', 'commit': {'sha': 'abc'}},
            {'name': 'v0.9.0', 'commit': {'sha': 'def'}},
        ])
        tags = anonymous.get_tags('owner', 'repo')
        assert tags == [
            {'name': 'v1.0.0', 'date': None, 'commit': 'abc'},
            {'name': 'v0.9.0', 'date': None, 'commit': 'def'},
        ]

    @patch('repository.github.get_json')
    def test_rest_tags_failure_raises(self, mock_get_json, anonymous):
        """Test that a failed listing raises."""
        mock_get_json.return_value = (403, {}, None)
        with pytest.raises(GitProviderError):
            anonymous.get_tags('owner', 'repo')

    @patch('repository.github.post_json')
    def test_graphql_tags_with_token(self, mock_post_json):
        """Test dated tags from GraphQL for annotated and lightweight tags."""
        mock_post_json.return_value = (200, {}, {'data': {'repository': {'refs': {'nodes': [
            {'name': 'v2.0.0', 'target': {'tagger': {'date': '2024-02-01T00:00:00Z'}, 'target': {'oid': 'aaa'}}},
            {'name': 'v1.0.0', 'target': {'committedDate': '2023-01-01T00:00:00Z', 'oid': 'bbb'}},
        ]}}}})
        tags = GitHubClient(token='ghp_test').get_tags('owner', 'repo')

        assert tags == [
            {'name': 'v2.0.0', 'date': '2024-02-01T00:00:00Z', 'commit': 'aaa'},
            {'name': 'v1.0.0', 'date': '2023-01-01T00:00:00Z', 'commit': 'bbb'},
        ]
        payload = mock_post_json.call_args[0][1]
        assert payload['variables'] == {'owner': 'owner', 'name': 'repo', 'first': 100}

    @patch('repository.github.post_json')
    def test_graphql_errors_raise(self, mock_post_json):
        """Test that GraphQL error payloads raise."""
        mock_post_json.return_value = (200, {}, {'errors': [{'message': 'bad'}]})
        with pytest.raises(GitProviderError):
            GitHubClient(token='ghp_test').get_tags('owner', 'repo')

    @patch('repository.github.post_json')
    def test_graphql_missing_repository_raises(self, mock_post_json):
        """Test a null repository in the GraphQL answer."""
        mock_post_json.return_value = (200, {}, {'data': {'repository': None}})
        with pytest.raises(GitProviderError):
            GitHubClient(token='ghp_test').get_tags('owner', 'repo')


class TestGitHubClientActivity:
    """Test activity signal calls."""

    @patch('repository.github.get_json')
    def test_get_last_commit(self, mock_get_json, anonymous):
        """Test the committer date of the newest commit."""
        mock_get_json.return_value = (200, {}, [{'commit': {'committer': {'date': '2024-05-01T00:00:00Z'}}}])
        assert anonymous.get_last_commit('owner', 'repo') == '2024-05-01T00:00:00Z'

    @patch('repository.github.get_json')
    def test_get_last_commit_failure(self, mock_get_json, anonymous):
        """Test that failures give None."""
        mock_get_json.return_value = (409, {}, None)
        assert anonymous.get_last_commit('owner', 'repo') is None

    @patch('repository.github.get_json')
    def test_get_issue_counts(self, mock_get_json, anonymous):
        """Test open and closed counts from the search API."""
        mock_get_json.side_effect = [
            (200, {}, {'total_count': 4}),
            (200, {}, {'total_count': 12}),
        ]
        assert anonymous.get_issue_counts('owner', 'repo') == (4, 12)
        urls = [c[0][0] for c in mock_get_json.call_args_list]
        assert 'state:open' in urls[0] and 'state:closed' in urls[1]

    @patch('repository.github.get_json')
    def test_get_issue_counts_unavailable(self, mock_get_json, anonymous):
        """Test that a rate-limited search counts as no issues."""
        mock_get_json.return_value = (403, {}, None)
        assert anonymous.get_issue_counts('owner', 'repo') == (0, 0)

    @patch('repository.github.get_json')
    def test_has_readme(self, mock_get_json, anonymous):
        """Test README detection."""
        mock_get_json.return_value = (200, {}, {'name': 'README.md'})
        assert anonymous.has_readme('owner', 'repo') is True
        mock_get_json.return_value = (404, {}, None)
        assert anonymous.has_readme('owner', 'repo') is False

    @patch('repository.github.get_json')
    def test_contributors_from_link_header(self, mock_get_json, anonymous):
        """Test the last-page trick."""
        link = (
            '<https://api.github.com/repositories/1/contributors?per_page=1&anon=1&page=2>; rel="next", '
            '<https://api.github.com/repositories/1/contributors?per_page=1&anon=1&page=42>; rel="last"'
        )
        mock_get_json.return_value = (200, {'link': link}, [{'login': 'a'}])
        assert anonymous.get_contributors_count('owner', 'repo') == 42

    @patch('repository.github.get_json')
    def test_contributors_without_link_header(self, mock_get_json, anonymous):
        """Test a single page of contributors."""
        mock_get_json.return_value = (200, {}, [{'login': 'a'}])
        assert anonymous.get_contributors_count('owner', 'repo') == 1
        mock_get_json.return_value = (500, {}, None)
        assert anonymous.get_contributors_count('owner', 'repo') is None


class TestGitHubClientComposerJson:
    """Test composer.json retrieval."""

    @patch('repository.github.get_json')
    def test_decodes_content(self, mock_get_json, anonymous):
        """Test base64 content decoding."""
        manifest = {'require': {'typo3/cms-core': '^12.4'}}
        content = base64.b64encode(json.dumps(manifest).encode()).decode()
        mock_get_json.return_value = (200, {}, {'content': content, 'encoding': 'base64'})

        assert anonymous.get_composer_json('owner', 'repo', 'main') == manifest
        assert mock_get_json.call_args[0][0].endswith('/contents/composer.json?ref=main')

    @patch('repository.github.get_json')
    def test_ref_is_url_encoded(self, mock_get_json, anonymous):
        """Test branch names with reserved characters."""
        mock_get_json.return_value = (404, {}, None)
        anonymous.get_composer_json('owner', 'repo', 'feature/a+b#1&x')
        assert mock_get_json.call_args[0][0].endswith('/contents/composer.json?ref=feature%2Fa%2Bb%231%26x')

    @patch('repository.github.get_json')
    def test_missing_file(self, mock_get_json, anonymous):
        """Test that a missing composer.json is None."""
        mock_get_json.return_value = (404, {}, None)
        assert anonymous.get_composer_json('owner', 'repo') is None

    @patch('repository.github.get_json')
    def test_invalid_json(self, mock_get_json, anonymous):
        """Test that broken JSON is None."""
        content = base64.b64encode(b'{not json').decode()
        mock_get_json.return_value = (200, {}, {'content': content})
        assert anonymous.get_composer_json('owner', 'repo') is None

    @patch('repository.github.get_json')
    def test_api_failure_raises(self, mock_get_json, anonymous):
        """Test that other failures raise."""
        mock_get_json.return_value = (500, {}, None)
        with pytest.raises(GitProviderError):
            anonymous.get_composer_json('owner', 'repo')
