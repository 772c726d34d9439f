"""Version model and compatibility checkers."""

from .version import InvalidVersionFormat, Version
from .constraints import ConstraintChecker
from .compatibility import RegistryCompatibilityChecker, RegistryReleaseEntry

__all__ = [
    "InvalidVersionFormat",
    "Version",
    "ConstraintChecker",
    "RegistryCompatibilityChecker",
    "RegistryReleaseEntry",
]
