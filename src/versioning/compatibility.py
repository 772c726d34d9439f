"""Compatibility of first-party registry (TER) releases with a target version.

TER advertises, per release, the TYPO3 generations it supports as a list of
loosely typed tokens: integers (``12``, sometimes sent as ``"12"``), dotted
strings (``"12.4"``), wildcards (``"12.*"``) or the universal ``"*"``. Unknown
token shapes never match; a release without tokens is never compatible.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from .version import Version

_DOTTED_RE = re.compile(r"^(\d+)\.(\d+)$")
_WILDCARD_RE = re.compile(r"^(\d+)\.\*$")
_MAJOR_RE = re.compile(r"^(\d+)$")

UNIVERSAL_TOKEN = "*"


@dataclass(frozen=True)
class RegistryReleaseEntry:
    """One registry release and the targets it declares."""

    number: Optional[str]
    compatible_targets: Optional[Tuple[Any, ...]]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RegistryReleaseEntry":
        """Build from the TER wire shape ``{"number", "typo3_versions"}``."""
        targets = data.get("typo3_versions")
        if targets is None:
            targets = data.get("compatible_targets")
        if isinstance(targets, (list, tuple)):
            targets = tuple(targets)
        elif targets is not None:
            targets = (targets,)
        number = data.get("number")
        return cls(number=str(number) if number is not None else None, compatible_targets=targets)


EntryLike = Union[RegistryReleaseEntry, Mapping[str, Any]]


def _coerce(entry: EntryLike) -> Optional[RegistryReleaseEntry]:
    if isinstance(entry, RegistryReleaseEntry):
        return entry
    if isinstance(entry, Mapping):
        return RegistryReleaseEntry.from_dict(entry)
    return None


def token_matches(token: Any, target: Version) -> bool:
    """Return True if a single compatibility token admits ``target``."""
    # bool is an int subclass but never a version token
    if isinstance(token, bool):
        return False
    if isinstance(token, int):
        return token == target.major
    if not isinstance(token, str):
        return False
    text = token.strip()
    if text == UNIVERSAL_TOKEN:
        return True
    dotted = _DOTTED_RE.match(text)
    if dotted:
        return int(dotted.group(1)) == target.major and int(dotted.group(2)) == target.minor
    wildcard = _WILDCARD_RE.match(text)
    if wildcard:
        return int(wildcard.group(1)) == target.major
    # TER sometimes sends the bare major as a string
    major = _MAJOR_RE.match(text)
    if major:
        return int(major.group(1)) == target.major
    return False


class RegistryCompatibilityChecker:
    """Evaluate registry release lists against a target version.

    Stateless; a single instance can be shared between threads.
    """

    def is_version_compatible(self, entry: EntryLike, target: Version) -> bool:
        """A release is compatible iff any of its tokens matches."""
        release = _coerce(entry)
        if release is None or not release.compatible_targets:
            return False
        return any(token_matches(token, target) for token in release.compatible_targets)

    def has_compatible_version(self, entries: Iterable[EntryLike], target: Version) -> bool:
        return any(self.is_version_compatible(entry, target) for entry in entries or [])

    def find_compatible_versions(self, entries: Iterable[EntryLike], target: Version) -> List[str]:
        """Release numbers of compatible entries, in input order."""
        numbers: List[str] = []
        for entry in entries or []:
            release = _coerce(entry)
            if release is None or not release.number:
                continue
            if self.is_version_compatible(release, target):
                numbers.append(release.number)
        return numbers

    def get_latest_compatible_version(self, entries: Iterable[EntryLike], target: Version) -> Optional[str]:
        """Compatible release number that parses to the greatest Version."""
        best: Optional[Tuple[Version, str]] = None
        for number in self.find_compatible_versions(entries, target):
            parsed = Version.try_parse(number)
            if parsed is None:
                continue
            if best is None or parsed.is_greater_than(best[0]):
                best = (parsed, number)
        return best[1] if best else None
