"""Provider port for Git hosting services.

Defines the interface the resolver talks to, the provider type enum used for
host-keyed dispatch, and the errors raised by provider clients.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import GitRepositoryHealth, GitRepositoryMetadata, GitTag


class ProviderType(Enum):
    """Supported repository hosting providers."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    UNKNOWN = "unknown"


def map_host_to_type(host: Optional[str]) -> ProviderType:
    """Map a hostname to its provider type.

    Args:
        host: Hostname such as ``github.com`` (case-insensitive)

    Returns:
        ProviderType; UNKNOWN for anything unrecognised
    """
    if not host:
        return ProviderType.UNKNOWN
    host = host.lower().strip()
    if host == "github.com" or host.endswith(".github.com"):
        return ProviderType.GITHUB
    if host == "gitlab.com" or host.startswith("gitlab."):
        return ProviderType.GITLAB
    if host == "bitbucket.org" or host.endswith(".bitbucket.org"):
        return ProviderType.BITBUCKET
    return ProviderType.UNKNOWN


class GitProviderError(Exception):
    """Raised by provider clients when the hosting API cannot answer."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class NoSuitableProvider(GitProviderError):
    """No registered provider can handle the repository URL."""

    def __init__(self, repository_url: str):
        super().__init__("none", f"No suitable Git provider found for repository: {repository_url}")
        self.repository_url = repository_url


@runtime_checkable
class ProviderClient(Protocol):
    """Read-only access to one hosting provider.

    Every method takes the full repository URL. Implementations raise
    :class:`GitProviderError` (or any other exception) on failure.
    """

    def get_metadata(self, url: str) -> "GitRepositoryMetadata":
        ...

    def get_health(self, url: str) -> "GitRepositoryHealth":
        ...

    def get_tags(self, url: str) -> List["GitTag"]:
        ...


@runtime_checkable
class ComposerJsonSource(Protocol):
    """Optional capability: read composer.json at a ref."""

    def get_composer_json(self, url: str, ref: Optional[str] = None) -> Optional[Dict[str, Any]]:
        ...


class ProviderLookup(Protocol):  # pylint: disable=too-few-public-methods
    """Select a provider client for a repository URL."""

    def resolve_provider(self, url: str) -> ProviderClient:
        """Return a client or raise :class:`NoSuitableProvider`."""
        ...
