"""
Repository source capability.

The release pipeline never talks to a hosting provider directly. It
consumes any object that satisfies :class:`RepositorySource`: one call to
list the main-line commits since the last release tag, and one call to
expand a squashed commit into the inner commits of its pull request.
Both calls return fully materialised sequences in chronological order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence, runtime_checkable


class RepositoryError(Exception):
    """Raised when commits or tags cannot be retrieved from a repository."""

    pass


@dataclass(frozen=True)
class Commit:
    """A commit as retrieved from the repository source."""

    identifier: str
    message: str
    author: str
    timestamp: datetime

    @property
    def summary(self) -> str:
        """First line of the message."""
        lines = self.message.strip().splitlines()
        return lines[0].strip() if lines else ""

    @property
    def short_id(self) -> str:
        return self.identifier[:8]


@runtime_checkable
class RepositorySource(Protocol):
    """Capabilities the release pipeline needs from a repository."""

    def latest_tag(self) -> Optional[str]:
        """Return the most recent release tag, or ``None`` before the first release."""
        ...

    def list_commits_since(self, last_tag: Optional[str]) -> Sequence[Commit]:
        """Return main-line commits after ``last_tag``, oldest first."""
        ...

    def expand_squashed(self, commit: Commit) -> Sequence[Commit]:
        """Return the inner commits squashed into ``commit``, oldest first."""
        ...
