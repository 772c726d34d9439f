"""Version availability across TER, Packagist and Git, with an upgrade risk score."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Tuple

from constants import Constants
from registry.packagist import PackagistClient
from registry.ter import TerClient
from versioning.version import Version
from .errors import NoRepositoryUrl, UnsupportedRepository
from .models import AvailabilityReport, Extension
from .resolver import ExtensionCompatibilityResolver

logger = logging.getLogger(__name__)

# (minimum availability points, risk score); below the last step scores NO_AVAILABILITY_RISK
RISK_STEPS = (
    (6, 1.5),
    (4, 2.5),
    (2, 5.0),
    (1, 7.0),
)
NO_AVAILABILITY_RISK = 9.0
SYSTEM_EXTENSION_RISK = 1.0

TER_POINTS = 4
PACKAGIST_POINTS = 3
GIT_HEALTH_FACTOR = 2
GIT_UNKNOWN_HEALTH_POINTS = 1

WELL_MAINTAINED_HEALTH = 0.7
POOR_HEALTH = 0.3


class VersionAvailabilityAnalyzer:
    """Check every source for a compatible release of an extension."""

    name = "version_availability"

    def __init__(
        self,
        ter_client: Optional[TerClient] = None,
        packagist_client: Optional[PackagistClient] = None,
        resolver: Optional[ExtensionCompatibilityResolver] = None,
    ):
        self.ter_client = ter_client or TerClient()
        self.packagist_client = packagist_client or PackagistClient()
        self.resolver = resolver or ExtensionCompatibilityResolver()

    def analyze(self, extension: Extension, target: Version) -> AvailabilityReport:
        """Build the availability report; failures end up in ``report.error``."""
        report = AvailabilityReport(extension_key=extension.key)
        try:
            logger.info("Analyzing version availability for extension %s (target %s)", extension.key, target)

            report.ter_available, report.ter_latest_version = self._check_ter(extension, target)
            if extension.has_composer_name:
                report.packagist_available, report.packagist_latest_version = self._check_packagist(
                    extension, target
                )
            self._check_git(extension, target, report)

            report.risk_score = calculate_risk_score(report, extension)
            report.recommendations = build_recommendations(report, extension)

            logger.info(
                "Version availability analysis completed for %s: risk %.1f",
                extension.key,
                report.risk_score,
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Version availability analysis failed for %s: %s", extension.key, exc)
            report.error = f"Analysis failed: {exc}"
        return report

    def analyze_all(
        self,
        extensions: Iterable[Extension],
        target: Version,
        max_workers: Optional[int] = None,
    ) -> List[AvailabilityReport]:
        extensions = list(extensions)
        if not extensions:
            return []
        workers = max(1, min(max_workers or Constants.ANALYSIS_MAX_WORKERS, len(extensions)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda ext: self.analyze(ext, target), extensions))

    def _check_ter(self, extension: Extension, target: Version) -> Tuple[bool, Optional[str]]:
        try:
            return self.ter_client.check_availability(extension.key, target)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("TER availability check failed for %s, checking fallback sources: %s", extension.key, exc)
            return False, None

    def _check_packagist(self, extension: Extension, target: Version) -> Tuple[bool, Optional[str]]:
        try:
            return self.packagist_client.check_availability(extension.composer_name, target)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning(
                "Packagist availability check failed for %s (%s): %s",
                extension.key,
                extension.composer_name,
                exc,
            )
            return False, None

    def _check_git(self, extension: Extension, target: Version, report: AvailabilityReport) -> None:
        try:
            result = self.resolver.resolve(extension, target)
        except (NoRepositoryUrl, UnsupportedRepository) as exc:
            logger.info("Git analysis skipped for extension %s: %s", extension.key, exc)
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Git availability check failed for %s: %s", extension.key, exc)
            return

        latest = result.latest_compatible_version
        report.git_available = result.has_compatible_version
        report.git_repository_health = result.health_score
        report.git_repository_url = result.repository_url
        report.git_latest_version = latest.name if latest else None


def calculate_risk_score(report: AvailabilityReport, extension: Extension) -> float:
    """Map availability to a 1 (safe) .. 9 (nothing available) risk score."""
    if extension.is_system_extension:
        return SYSTEM_EXTENSION_RISK

    points = 0.0
    if report.ter_available:
        points += TER_POINTS
    if report.packagist_available:
        points += PACKAGIST_POINTS
    if report.git_available:
        health = report.git_repository_health
        points += GIT_HEALTH_FACTOR * health if health else GIT_UNKNOWN_HEALTH_POINTS

    for minimum, risk in RISK_STEPS:
        if points >= minimum:
            return risk
    return NO_AVAILABILITY_RISK


def build_recommendations(report: AvailabilityReport, extension: Extension) -> List[str]:
    ter, packagist, git = report.ter_available, report.packagist_available, report.git_available
    health = report.git_repository_health

    if not (ter or packagist or git):
        return [
            "Extension not available in any known repository. "
            "Consider finding alternative or contacting author."
        ]

    recommendations = []
    if git and not ter and not packagist:
        if health and health > WELL_MAINTAINED_HEALTH:
            recommendations.append(
                "Extension only available via Git repository. Repository appears well-maintained."
            )
        else:
            recommendations.append(
                "Extension only available via Git repository. "
                "Consider repository maintenance status before upgrade."
            )
        if report.git_repository_url:
            recommendations.append(f"Git repository: {report.git_repository_url}")

    if git and (ter or packagist):
        recommendations.append(
            "Extension available in multiple sources. Consider using most stable source for production."
        )

    if not ter and packagist and not git:
        recommendations.append("Extension is only available via Composer/Packagist. Ensure Composer mode is used.")
    elif ter and not packagist and not git and extension.has_composer_name:
        recommendations.append("Extension is only available in TER. Consider migrating to Composer if needed.")

    if git and health and health < POOR_HEALTH:
        recommendations.append(
            "Git repository shows signs of poor maintenance. Consider alternative sources or extensions."
        )

    if extension.is_local_extension:
        recommendations.append("Local extension has public alternatives available. Consider using official version.")

    return recommendations
