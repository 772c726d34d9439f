"""Extension descriptor and analysis result types."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from constants import Constants, ExtensionTypes
from repository.models import GitRepositoryHealth, GitRepositoryMetadata, GitTag


@dataclass(frozen=True)
class Extension:
    """An installed extension as handed over by discovery.

    ``metadata`` is free-form (ext_emconf / composer data); the resolver looks
    in it for repository URLs and an embedded composer manifest.
    """

    key: str
    repository_url: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)
    composer_name: Optional[str] = None
    version: Optional[str] = None
    extension_type: Union[ExtensionTypes, str] = ExtensionTypes.LOCAL
    title: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.extension_type, ExtensionTypes):
            object.__setattr__(self, "extension_type", ExtensionTypes(str(self.extension_type).lower()))
        if self.metadata is None:
            object.__setattr__(self, "metadata", {})

    @property
    def has_composer_name(self) -> bool:
        return bool(self.composer_name)

    @property
    def is_system_extension(self) -> bool:
        return self.extension_type == ExtensionTypes.SYSTEM

    @property
    def is_local_extension(self) -> bool:
        return self.extension_type == ExtensionTypes.LOCAL

    @property
    def manifest(self) -> Optional[Mapping[str, Any]]:
        """Composer manifest embedded in the metadata, if any."""
        for key in Constants.MANIFEST_KEYS:
            value = self.metadata.get(key)
            if isinstance(value, Mapping):
                return value
        return None


@dataclass(frozen=True)
class ExtensionAnalysisResult:
    """Outcome of resolving one extension against its Git repository."""

    repository_url: str
    metadata: GitRepositoryMetadata
    health: GitRepositoryHealth
    compatible_tags: Tuple[GitTag, ...] = ()
    all_tags: Tuple[GitTag, ...] = ()
    composer_json: Optional[Mapping[str, Any]] = field(default=None, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "compatible_tags", tuple(self.compatible_tags or ()))
        object.__setattr__(self, "all_tags", tuple(self.all_tags or ()))

    @property
    def has_compatible_version(self) -> bool:
        return bool(self.compatible_tags)

    @property
    def latest_compatible_version(self) -> Optional[GitTag]:
        return _newest(self.compatible_tags)

    @property
    def latest_tag(self) -> Optional[GitTag]:
        return _newest(self.all_tags)

    @property
    def health_score(self) -> float:
        return self.health.health_score()

    @property
    def is_healthy(self) -> bool:
        return self.health_score > Constants.HEALTH_HEALTHY_THRESHOLD

    @property
    def is_well_maintained(self) -> bool:
        return self.health_score > Constants.HEALTH_WELL_MAINTAINED_THRESHOLD


def _newest(tags: Tuple[GitTag, ...]) -> Optional[GitTag]:
    newest = None
    for tag in tags:
        if newest is None or tag.is_newer_than(newest):
            newest = tag
    return newest


@dataclass(frozen=True)
class ResolutionOutcome:
    """One entry of a batch resolution: a result or the error that stopped it."""

    extension_key: str
    result: Optional[ExtensionAnalysisResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AvailabilityReport:
    """Where a compatible release of an extension can be found, and how risky the upgrade is."""

    extension_key: str
    ter_available: bool = False
    packagist_available: bool = False
    git_available: bool = False
    git_repository_health: Optional[float] = None
    git_repository_url: Optional[str] = None
    git_latest_version: Optional[str] = None
    ter_latest_version: Optional[str] = None
    packagist_latest_version: Optional[str] = None
    risk_score: Optional[float] = None
    recommendations: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def successful(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
