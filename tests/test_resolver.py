"""Tests for the extension compatibility resolver."""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from analysis.errors import AnalysisFailed, GitAnalysisError, NoRepositoryUrl, UnsupportedRepository
from analysis.models import Extension, ExtensionAnalysisResult
from analysis.resolver import ExtensionCompatibilityResolver, find_repository_url
from repository.models import GitRepositoryHealth, GitRepositoryMetadata, GitTag
from repository.provider_adapters import GitHubProviderAdapter, GitLabProviderAdapter
from repository.providers import ComposerJsonSource, GitProviderError, NoSuitableProvider
from versioning.version import Version

TARGET = Version(12, 4, 0)
URL = "https://github.com/vendor/ext"
MANIFEST = {"require": {"typo3/cms-core": "^12.4"}}


class _Provider:
    """Provider double without the optional composer.json capability."""

    def __init__(self, tags=None):
        self.tags = tags or []

    def get_metadata(self, url):
        return GitRepositoryMetadata(name="ext", default_branch="main")

    def get_health(self, url):
        return GitRepositoryHealth(star_count=10)

    def get_tags(self, url):
        return list(self.tags)


def _lookup(provider):
    lookup = Mock()
    lookup.resolve_provider.return_value = provider
    return lookup


def _tags():
    return [
        GitTag("v12.4.0", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        GitTag("v12.5.0", created_at=datetime(2024, 6, 1, tzinfo=timezone.utc)),
        GitTag("v12.6.0-beta", created_at=datetime(2024, 9, 1, tzinfo=timezone.utc)),
    ]


class TestFindRepositoryUrl:
    """Test repository URL discovery."""

    def test_explicit_url_wins(self):
        """Test that the explicit field has precedence over metadata."""
        ext = Extension(key="ext", repository_url=URL, metadata={"repository": "https://gitlab.com/a/b"})
        assert find_repository_url(ext) == URL

    @pytest.mark.parametrize("metadata", [
        {"repository_url": URL},
        {"repositoryUrl": URL},
        {"repository": {"type": "git", "url": URL}},
        {"vcs_url": URL},
        {"source_url": URL},
        {"git_url": URL},
        {"support": {"source": URL}},
    ])
    def test_metadata_keys(self, metadata):
        """Test every metadata key shape."""
        assert find_repository_url(Extension(key="ext", metadata=metadata)) == URL

    def test_no_url(self):
        """Test that blank and missing values give None."""
        assert find_repository_url(Extension(key="ext", repository_url="  ", metadata={"repository": ""})) is None


class TestResolve:
    """Test single resolutions."""

    def test_no_repository_url_never_calls_lookup(self):
        """Test NoRepositoryUrl before any provider interaction."""
        lookup = Mock()
        resolver = ExtensionCompatibilityResolver(provider_lookup=lookup)
        with pytest.raises(NoRepositoryUrl) as excinfo:
            resolver.resolve(Extension(key="ext"), TARGET)
        assert excinfo.value.extension_key == "ext"
        lookup.resolve_provider.assert_not_called()

    def test_unsupported_repository(self):
        """Test that lookup failures become UnsupportedRepository."""
        lookup = Mock()
        lookup.resolve_provider.side_effect = NoSuitableProvider(URL)
        resolver = ExtensionCompatibilityResolver(provider_lookup=lookup)
        with pytest.raises(UnsupportedRepository) as excinfo:
            resolver.resolve(Extension(key="ext", repository_url=URL), TARGET)
        assert excinfo.value.repository_url == URL
        assert isinstance(excinfo.value.__cause__, NoSuitableProvider)
        lookup.resolve_provider.assert_called_once_with(URL)

    @pytest.mark.parametrize("failing", ["get_metadata", "get_health", "get_tags"])
    def test_provider_failure_is_analysis_failed(self, failing):
        """Test that any provider failure aborts with the cause attached."""
        provider = Mock(wraps=_Provider())
        error = GitProviderError("github", "rate limited")
        getattr(provider, failing).side_effect = error
        resolver = ExtensionCompatibilityResolver(provider_lookup=_lookup(provider))

        with pytest.raises(AnalysisFailed) as excinfo:
            resolver.resolve(Extension(key="ext", repository_url=URL), TARGET)
        assert excinfo.value.cause is error
        assert excinfo.value.__cause__ is error
        assert isinstance(excinfo.value, GitAnalysisError)

    def test_embedded_manifest(self):
        """Test a full resolution with the manifest from the extension metadata."""
        provider = Mock(wraps=_Provider(_tags()))
        provider.get_composer_json = Mock()
        resolver = ExtensionCompatibilityResolver(provider_lookup=_lookup(provider))
        ext = Extension(key="ext", repository_url=URL, metadata={"composer_json": MANIFEST})

        result = resolver.resolve(ext, TARGET)

        assert isinstance(result, ExtensionAnalysisResult)
        assert result.repository_url == URL
        assert [t.name for t in result.compatible_tags] == ["v12.4.0", "v12.5.0"]
        assert len(result.all_tags) == 3
        assert result.latest_compatible_version.name == "v12.5.0"
        assert result.latest_tag.name == "v12.6.0-beta"
        assert result.composer_json == MANIFEST
        provider.get_composer_json.assert_not_called()

    def test_manifest_from_provider_default_branch(self):
        """Test the optional composer.json capability."""
        provider = Mock(wraps=_Provider(_tags()))
        provider.get_composer_json = Mock(return_value=MANIFEST)
        resolver = ExtensionCompatibilityResolver(provider_lookup=_lookup(provider))

        result = resolver.resolve(Extension(key="ext", repository_url=URL), TARGET)

        provider.get_composer_json.assert_called_once_with(URL, ref="main")
        assert result.has_compatible_version

    def test_provider_without_manifest_capability(self):
        """Test that providers lacking composer.json support give no tags."""
        resolver = ExtensionCompatibilityResolver(provider_lookup=_lookup(_Provider(_tags())))
        result = resolver.resolve(Extension(key="ext", repository_url=URL), TARGET)
        assert result.compatible_tags == ()
        assert result.composer_json is None
        assert not result.has_compatible_version

    def test_manifest_fetch_failure_means_no_manifest(self):
        """Test that composer.json errors are not fatal."""
        provider = Mock(wraps=_Provider(_tags()))
        provider.get_composer_json = Mock(side_effect=GitProviderError("github", "boom"))
        resolver = ExtensionCompatibilityResolver(provider_lookup=_lookup(provider))

        result = resolver.resolve(Extension(key="ext", repository_url=URL), TARGET)
        assert result.compatible_tags == ()

    def test_result_is_frozen(self):
        """Test that results cannot be modified."""
        resolver = ExtensionCompatibilityResolver(provider_lookup=_lookup(_Provider()))
        result = resolver.resolve(Extension(key="ext", repository_url=URL), TARGET)
        with pytest.raises(AttributeError):
            result.repository_url = "other"


class TestResolveAll:
    """Test batch resolution."""

    def test_failures_do_not_abort_siblings(self):
        """Test per-extension outcomes in input order."""
        lookup = Mock()

        def resolve_provider(url):
            if "broken" in url:
                raise NoSuitableProvider(url)
            return _Provider(_tags())

        lookup.resolve_provider.side_effect = resolve_provider
        resolver = ExtensionCompatibilityResolver(provider_lookup=lookup)
        extensions = [
            Extension(key="a", repository_url=URL, metadata={"composer": MANIFEST}),
            Extension(key="b"),
            Extension(key="c", repository_url="https://example.com/broken/repo"),
        ]

        outcomes = resolver.resolve_all(extensions, TARGET, max_workers=2)

        assert [o.extension_key for o in outcomes] == ["a", "b", "c"]
        assert outcomes[0].ok and outcomes[0].result.has_compatible_version
        assert isinstance(outcomes[1].error, NoRepositoryUrl)
        assert isinstance(outcomes[2].error, UnsupportedRepository)

    def test_empty_batch(self):
        """Test that no extensions give no outcomes."""
        assert ExtensionCompatibilityResolver(provider_lookup=Mock()).resolve_all([], TARGET) == []


class TestResultHealth:
    """Test the health shortcuts on results."""

    def _result(self, health):
        return ExtensionAnalysisResult(
            repository_url=URL,
            metadata=GitRepositoryMetadata(name="ext"),
            health=health,
        )

    def test_healthy_and_well_maintained(self):
        """Test a repository with every signal maxed out."""
        health = GitRepositoryHealth(
            last_commit_date=datetime.now(timezone.utc),
            star_count=1000,
            closed_issues_count=10,
            has_readme=True,
            has_license=True,
            contributor_count=20,
        )
        result = self._result(health)
        assert result.health_score == pytest.approx(1.0)
        assert result.is_healthy
        assert result.is_well_maintained

    def test_neglected_repository(self):
        """Test a repository without activity."""
        result = self._result(GitRepositoryHealth(open_issues_count=3))
        assert not result.is_healthy
        assert not result.is_well_maintained


class TestComposerJsonCapability:
    """Test detection of the optional composer.json capability."""

    def test_adapters_provide_composer_json(self):
        """Test that both shipped adapters are recognised."""
        assert isinstance(GitHubProviderAdapter(client=Mock()), ComposerJsonSource)
        assert isinstance(GitLabProviderAdapter(client=Mock()), ComposerJsonSource)

    def test_plain_provider_does_not(self):
        """Test a provider implementing only the required methods."""
        assert not isinstance(_Provider(), ComposerJsonSource)
