"""Composer-style constraint evaluation against a target platform version.

Every decision here is a plain boolean. A constraint that cannot be parsed
is incompatible; nothing in this module raises on bad input.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Optional

from constants import Constants
from .version import InvalidVersionFormat, Version

logger = logging.getLogger(__name__)

_OR_SPLIT_RE = re.compile(r"\s*\|\|?\s*")
_AND_SPLIT_RE = re.compile(r"\s*,\s*|\s+")
_COMPARATOR_RE = re.compile(r"^(>=|<=|>|<|!=)\s*(.+)$")
_EXACT_OP_RE = re.compile(r"^(==|=)\s*")
_WILDCARD_RE = re.compile(r"^[vV]?(\d+)(?:\.(\d+))?\.[*xX]$")
_TWO_PART_RE = re.compile(r"^[vV]?\d+(?:\.\d+)?$")
_MAJOR_ONLY_RE = re.compile(r"^[vV]?\d+$")
_HAS_SUFFIX_RE = re.compile(r"-[0-9A-Za-z]")


def _parse(text: str) -> Optional[Version]:
    """Parse a constraint operand; a bare major (``12``) means ``12.0.0``."""
    text = text.strip()
    if _MAJOR_ONLY_RE.match(text):
        text += ".0"
    try:
        return Version.parse(text)
    except InvalidVersionFormat:
        return None


def _numeric(version: Version) -> tuple:
    return (version.major, version.minor, version.patch)


def _check_exact(body: str, target: Version) -> bool:
    parsed = _parse(body)
    if parsed is None:
        return False
    if _TWO_PART_RE.match(body):
        return target.is_compatible_with(parsed)
    if _HAS_SUFFIX_RE.search(body):
        return target.is_equal(parsed)
    return _numeric(target) == _numeric(parsed)


def _check_caret(body: str, target: Version) -> bool:
    floor = _parse(body)
    if floor is None:
        return False
    return target.major == floor.major and not target.is_less_than(floor)


def _check_tilde(body: str, target: Version) -> bool:
    floor = _parse(body)
    if floor is None:
        return False
    if _TWO_PART_RE.match(body):
        # ~X.Y allows any later minor of the same major
        return target.major == floor.major and not target.is_less_than(floor)
    return (
        target.major == floor.major
        and target.minor == floor.minor
        and target.patch >= floor.patch
    )


def _check_wildcard(match: "re.Match[str]", target: Version) -> bool:
    if target.major != int(match.group(1)):
        return False
    minor = match.group(2)
    return minor is None or target.minor == int(minor)


def _check_comparator(op: str, body: str, target: Version) -> bool:
    bound = _parse(body)
    if bound is None:
        return False
    cmp = target.compare(bound)
    if op == ">=":
        return cmp >= 0
    if op == ">":
        return cmp > 0
    if op == "<=":
        return cmp <= 0
    if op == "<":
        return cmp < 0
    return cmp != 0


def _check_term(term: str, target: Version) -> bool:
    """Evaluate a single operator+version term."""
    # stability flags (``^12.4@dev``) do not change the range
    term = term.split("@", 1)[0]
    if term == "*":
        return True
    wildcard = _WILDCARD_RE.match(term)
    if wildcard:
        return _check_wildcard(wildcard, target)
    if term.startswith("^"):
        return _check_caret(term[1:], target)
    if term.startswith("~"):
        return _check_tilde(term[1:], target)
    comparator = _COMPARATOR_RE.match(term)
    if comparator:
        return _check_comparator(comparator.group(1), comparator.group(2), target)
    return _check_exact(_EXACT_OP_RE.sub("", term), target)


def _join_operators(terms):
    """Re-attach operators separated from their version by whitespace (``>= 12.0``)."""
    joined = []
    pending = ""
    for term in terms:
        if term in (">=", "<=", ">", "<", "!=", "=", "==", "^", "~"):
            pending += term
            continue
        joined.append(pending + term)
        pending = ""
    if pending:
        joined.append(pending)
    return joined


class ConstraintChecker:
    """Decide whether dependency constraints admit a target version.

    Stateless; a single instance can be shared between threads.
    """

    def is_constraint_compatible(self, constraint: Optional[str], target: Version) -> bool:
        """Return True if ``target`` satisfies ``constraint``.

        Alternatives separated by ``||`` are OR-ed; comparators inside one
        alternative (comma or whitespace separated) are AND-ed.
        """
        if not isinstance(constraint, str) or not constraint.strip():
            return False
        for alternative in _OR_SPLIT_RE.split(constraint.strip()):
            terms = _join_operators([t for t in _AND_SPLIT_RE.split(alternative) if t])
            if terms and all(_check_term(term, target) for term in terms):
                return True
        logger.debug("Constraint %r does not admit %s", constraint, target)
        return False

    def find_typo3_requirements(self, requirements: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        """Filter a ``require`` map down to the host platform packages."""
        if not isinstance(requirements, Mapping):
            return {}
        found: Dict[str, str] = {}
        for package in Constants.PLATFORM_PACKAGES:
            if package in requirements:
                found[package] = requirements[package]
        for package, constraint in requirements.items():
            if (
                isinstance(package, str)
                and package.startswith(Constants.PLATFORM_PACKAGE_PREFIX)
                and package not in found
            ):
                found[package] = constraint
        return found

    def is_composer_json_compatible(self, manifest: Optional[Mapping[str, Any]], target: Version) -> bool:
        """True iff at least one platform requirement admits ``target``."""
        if not isinstance(manifest, Mapping):
            return False
        platform = self.find_typo3_requirements(manifest.get("require"))
        if not platform:
            return False
        return any(
            self.is_constraint_compatible(constraint, target)
            for constraint in platform.values()
        )

    def normalize_version(self, version: Version) -> str:
        """Four-part normal form, e.g. ``12.4.0.0`` or ``12.4.0.0-beta``."""
        text = f"{version.major}.{version.minor}.{version.patch}.0"
        if version.suffix is not None:
            text += f"-{version.suffix}"
        return text
