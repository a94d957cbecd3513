"""
Semantic version parsing and incrementing.

Release tags look like ``v3.2.1``. The versioner only understands the
three numeric components; a tag with a pre-release or build suffix, a
missing component or a non-numeric one is rejected rather than guessed
at. A repository without any tag starts from ``0.0.0``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from squash_release.grammar.rules import ReleaseSeverity


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


_VERSION_RE = re.compile(r"(?P<major>[0-9]+)\.(?P<minor>[0-9]+)\.(?P<patch>[0-9]+)")


class VersionError(Exception):
    """Raised when a tag cannot be parsed or no release action is available."""

    pass


@dataclass(frozen=True, order=True)
class SemanticVersion:
    """A ``MAJOR.MINOR.PATCH`` version without pre-release or build metadata."""

    major: int = 0
    minor: int = 0
    patch: int = 0

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise VersionError(f"Version component '{name}' must be a non-negative integer, got {value!r}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def tag(self, prefix: str = "v") -> str:
        """Render the version as a release tag, e.g. ``v1.4.3``."""
        return f"{prefix}{self}"

    def bump(self, severity: ReleaseSeverity) -> "SemanticVersion":
        """Return the version following this one for the given severity.

        Raises
        ------
        VersionError
            If ``severity`` is ``ReleaseSeverity.NONE``.
        """
        if severity is ReleaseSeverity.MAJOR:
            return SemanticVersion(self.major + 1, 0, 0)
        if severity is ReleaseSeverity.MINOR:
            return SemanticVersion(self.major, self.minor + 1, 0)
        if severity is ReleaseSeverity.PATCH:
            return SemanticVersion(self.major, self.minor, self.patch + 1)
        raise VersionError(f"No release action computed for version {self}")


INITIAL_VERSION = SemanticVersion(0, 0, 0)


def parse_version(text: str) -> SemanticVersion:
    """Parse a bare ``MAJOR.MINOR.PATCH`` string."""
    match = _VERSION_RE.fullmatch(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise VersionError(f"Malformed version '{text}': expected MAJOR.MINOR.PATCH")
    return SemanticVersion(int(match["major"]), int(match["minor"]), int(match["patch"]))


def parse_tag(tag: Optional[str], prefix: str = "v") -> Optional[SemanticVersion]:
    """Parse a release tag such as ``v3.2.1``.

    Parameters
    ----------
    tag : str or None
        The tag name. ``None`` or an empty string means no release exists yet.
    prefix : str
        Literal prefix every release tag carries.

    Returns
    -------
    SemanticVersion or None
        The parsed version, or ``None`` when there is no prior release.

    Raises
    ------
    VersionError
        If the tag is present but malformed.
    """
    if tag is None or not tag.strip():
        return None
    if prefix and not tag.startswith(prefix):
        raise VersionError(f"Malformed release tag '{tag}': expected prefix '{prefix}'")
    try:
        return parse_version(tag[len(prefix):])
    except VersionError:
        raise VersionError(
            f"Malformed release tag '{tag}': expected {prefix}MAJOR.MINOR.PATCH"
        ) from None


def next_version(current: Optional[SemanticVersion], severity: ReleaseSeverity) -> SemanticVersion:
    """Compute the version to release.

    ``current`` is ``None`` for a repository that has never been released;
    it is then treated as ``0.0.0``, so a minor first release is ``0.1.0``.
    """
    if severity is ReleaseSeverity.NONE:
        raise VersionError("No release action computed; refusing to compute a new version")
    base = current if current is not None else INITIAL_VERSION
    new = base.bump(severity)
    logger.debug("Bumping %s by %s to %s", base, severity.label, new)
    return new
