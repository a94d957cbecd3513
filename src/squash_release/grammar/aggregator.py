"""
Fold per-commit severities into one release decision.

Only the highest severity of a release window matters: a window holding
a single breaking commit is a major release no matter how many patches
come with it. Taking the maximum makes the result independent of the
order in which a provider returns inner commits.
"""

from __future__ import annotations

from typing import Iterable

from squash_release.grammar.rules import ReleaseSeverity


def aggregate(severities: Iterable[ReleaseSeverity]) -> ReleaseSeverity:
    """Return the highest severity, or ``NONE`` for an empty window."""
    return max(severities, default=ReleaseSeverity.NONE)


def is_release_due(severity: ReleaseSeverity) -> bool:
    return severity > ReleaseSeverity.NONE
