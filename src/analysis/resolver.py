"""Resolve an extension to its Git repository and compatible tags.

One resolution is a linear pipeline: find the repository URL, select a
provider, read metadata/health/tags, obtain a manifest, filter tags. Errors
stop the pipeline; there is no partial result.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, Mapping, Optional

from constants import Constants
from common.logging_utils import extra_context, safe_url, Timer
from repository.provider_registry import ProviderRegistry
from repository.providers import ComposerJsonSource, ProviderClient, ProviderLookup
from repository.tag_filter import GitTagFilter
from versioning.version import Version
from .errors import AnalysisFailed, GitAnalysisError, NoRepositoryUrl, UnsupportedRepository
from .models import Extension, ExtensionAnalysisResult, ResolutionOutcome

logger = logging.getLogger(__name__)


def _url_value(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        value = value.get("url")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def find_repository_url(extension: Extension) -> Optional[str]:
    """Explicit URL first, then the known metadata keys, then ``support.source``."""
    explicit = _url_value(extension.repository_url)
    if explicit:
        return explicit
    metadata = extension.metadata or {}
    for key in Constants.REPOSITORY_URL_KEYS:
        url = _url_value(metadata.get(key))
        if url:
            return url
    support = metadata.get("support")
    if isinstance(support, Mapping):
        return _url_value(support.get("source"))
    return None


class ExtensionCompatibilityResolver:
    """Decide which tags of an extension's repository fit a target version.

    Holds only collaborators; safe to share between threads as long as the
    provider lookup is.
    """

    def __init__(self, provider_lookup: Optional[ProviderLookup] = None, tag_filter: Optional[GitTagFilter] = None):
        self.provider_lookup = provider_lookup or ProviderRegistry()
        self.tag_filter = tag_filter or GitTagFilter()

    def resolve(self, extension: Extension, target: Version) -> ExtensionAnalysisResult:
        """Resolve one extension.

        Raises:
            NoRepositoryUrl: no URL could be found; the lookup is not consulted
            UnsupportedRepository: the lookup has no provider for the URL
            AnalysisFailed: a provider call failed
        """
        url = find_repository_url(extension)
        if url is None:
            raise NoRepositoryUrl(extension.key)

        logger.info(
            "Resolving extension %s against %s",
            extension.key,
            target,
            extra=extra_context(event="resolve_start", component="resolver", target=safe_url(url)),
        )

        try:
            provider = self.provider_lookup.resolve_provider(url)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise UnsupportedRepository(extension.key, url) from exc

        with Timer() as timer:
            try:
                metadata = provider.get_metadata(url)
                health = provider.get_health(url)
                tags = list(provider.get_tags(url) or [])
            except Exception as exc:  # pylint: disable=broad-exception-caught
                raise AnalysisFailed(extension.key, exc) from exc

            manifest = extension.manifest
            if manifest is None:
                manifest = self._fetch_manifest(provider, url, metadata.default_branch)

            compatible = self.tag_filter.filter_compatible(tags, target, manifest)

        result = ExtensionAnalysisResult(
            repository_url=url,
            metadata=metadata,
            health=health,
            compatible_tags=tuple(compatible),
            all_tags=tuple(tags),
            composer_json=manifest,
        )
        logger.info(
            "Resolved extension %s: %d of %d tags compatible",
            extension.key,
            len(compatible),
            len(tags),
            extra=extra_context(event="resolve_finish", component="resolver", duration_ms=timer.duration_ms()),
        )
        return result

    def _fetch_manifest(self, provider: ProviderClient, url: str, ref: Optional[str]) -> Optional[Mapping[str, Any]]:
        if not isinstance(provider, ComposerJsonSource):
            return None
        try:
            manifest = provider.get_composer_json(url, ref=ref)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.debug("Could not read composer.json from %s: %s", safe_url(url), exc)
            return None
        return manifest if isinstance(manifest, Mapping) else None

    def resolve_all(
        self,
        extensions: Iterable[Extension],
        target: Version,
        max_workers: Optional[int] = None,
    ) -> List[ResolutionOutcome]:
        """Resolve many extensions concurrently; outcomes keep input order."""
        extensions = list(extensions)
        if not extensions:
            return []
        workers = max(1, min(max_workers or Constants.ANALYSIS_MAX_WORKERS, len(extensions)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.resolve, ext, target) for ext in extensions]
            return [self._outcome(ext, future) for ext, future in zip(extensions, futures)]

    @staticmethod
    def _outcome(extension: Extension, future) -> ResolutionOutcome:
        try:
            return ResolutionOutcome(extension.key, result=future.result())
        except (NoRepositoryUrl, UnsupportedRepository) as exc:
            logger.info("Git analysis skipped for extension %s: %s", extension.key, exc)
            return ResolutionOutcome(extension.key, error=exc)
        except GitAnalysisError as exc:
            logger.error("Git analysis failed for extension %s: %s", extension.key, exc)
            return ResolutionOutcome(extension.key, error=exc)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Unexpected error resolving extension %s: %s", extension.key, exc, exc_info=True)
            return ResolutionOutcome(extension.key, error=exc)
