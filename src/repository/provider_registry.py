"""Provider lookup keyed by hosting provider type."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from common.logging_utils import extra_context, safe_url
from .provider_adapters import GitHubProviderAdapter, GitLabProviderAdapter
from .providers import NoSuitableProvider, ProviderClient, ProviderType, map_host_to_type
from .url_normalize import normalize_repo_url

logger = logging.getLogger(__name__)

# Only these hosts have adapters; Bitbucket and unknown hosts are unsupported
_FACTORIES: Dict[ProviderType, Callable[[], ProviderClient]] = {
    ProviderType.GITHUB: GitHubProviderAdapter,
    ProviderType.GITLAB: GitLabProviderAdapter,
}


class ProviderRegistry:
    """Resolve repository URLs to provider clients.

    Clients passed in take precedence; missing GitHub/GitLab clients are
    created on first use and reused afterwards.
    """

    def __init__(
        self,
        clients: Optional[Dict[ProviderType, ProviderClient]] = None,
        create_missing: bool = True,
    ):
        self._clients: Dict[ProviderType, ProviderClient] = dict(clients or {})
        self._create_missing = create_missing
        self._lock = threading.Lock()

    def register(self, ptype: ProviderType, client: ProviderClient) -> None:
        with self._lock:
            self._clients[ptype] = client

    def get(self, ptype: ProviderType) -> Optional[ProviderClient]:
        """Client for a provider type, or None when unsupported."""
        with self._lock:
            client = self._clients.get(ptype)
            if client is None and self._create_missing and ptype in _FACTORIES:
                client = _FACTORIES[ptype]()
                self._clients[ptype] = client
            return client

    def resolve_provider(self, url: str) -> ProviderClient:
        """Return the client able to serve ``url``.

        Raises:
            NoSuitableProvider: URL cannot be normalized or its host is unsupported
        """
        ref = normalize_repo_url(url)
        if ref is None:
            raise NoSuitableProvider(url)
        ptype = map_host_to_type(ref.host)
        client = self.get(ptype)
        if client is None:
            raise NoSuitableProvider(url)
        logger.debug(
            "Selected Git provider",
            extra=extra_context(
                event="provider_selected",
                component="provider_registry",
                provider=ptype.value,
                target=safe_url(ref.normalized_url),
            ),
        )
        return client
