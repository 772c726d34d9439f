"""Version value object and its comparison algebra.

Parsing is tolerant of the shapes found in the wild (``v12.4.0``,
``^12.4``, ``>=11.5``): leading range operators and a ``v`` prefix are
stripped, not interpreted. Everything that compares versions in this
project goes through :class:`Version`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional

_PREFIX_RE = re.compile(r"^(?:\^|~|>=|<=|==|!=|>|<|=)*\s*[vV]?")
_VERSION_RE = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<suffix>[0-9A-Za-z][0-9A-Za-z.\-]*))?"
    r"(?:\+[0-9A-Za-z.\-]+)?$"
)


class InvalidVersionFormat(ValueError):
    """Raised when a string cannot be parsed into a Version."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Invalid version format: {version}")


@total_ordering
@dataclass(frozen=True)
class Version:
    """Immutable ``major.minor.patch[-suffix]`` version.

    A version without suffix ranks above any version with the same numeric
    triple and a suffix; two suffixes compare as plain strings.
    """

    major: int
    minor: int
    patch: int = 0
    suffix: Optional[str] = None

    def __post_init__(self):
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidVersionFormat(f"{name}={value!r}")
        if self.suffix == "":
            object.__setattr__(self, "suffix", None)

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse a version string.

        Raises:
            InvalidVersionFormat: if the numeric body is missing or malformed.
        """
        if not isinstance(text, str):
            raise InvalidVersionFormat(repr(text))
        body = _PREFIX_RE.sub("", text.strip(), count=1).strip()
        match = _VERSION_RE.match(body)
        if not match:
            raise InvalidVersionFormat(text)
        patch = match.group("patch")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(patch) if patch is not None else 0,
            suffix=match.group("suffix"),
        )

    @classmethod
    def from_string(cls, text: str) -> "Version":
        """Alias of :meth:`parse`."""
        return cls.parse(text)

    @classmethod
    def try_parse(cls, text: Optional[str]) -> Optional["Version"]:
        """Parse ``text`` or return None instead of raising."""
        if text is None:
            return None
        try:
            return cls.parse(text)
        except InvalidVersionFormat:
            return None

    @property
    def is_stable(self) -> bool:
        return self.suffix is None

    def compare(self, other: "Version") -> int:
        """Return -1, 0 or 1."""
        left = (self.major, self.minor, self.patch)
        right = (other.major, other.minor, other.patch)
        if left != right:
            return -1 if left < right else 1
        if self.suffix == other.suffix:
            return 0
        if self.suffix is None:
            return 1
        if other.suffix is None:
            return -1
        return -1 if self.suffix < other.suffix else 1

    def is_greater_than(self, other: "Version") -> bool:
        return self.compare(other) > 0

    def is_less_than(self, other: "Version") -> bool:
        return self.compare(other) < 0

    def is_equal(self, other: "Version") -> bool:
        return self.compare(other) == 0

    def is_compatible_with(self, other: "Version") -> bool:
        """Same major generation."""
        return self.major == other.major

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.suffix is not None:
            text += f"-{self.suffix}"
        return text

    def to_string(self) -> str:
        return str(self)
