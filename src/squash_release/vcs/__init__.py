"""
Repository sources.

This package defines the :class:`RepositorySource` capability used by the
release pipeline and two implementations of it: one backed by the GitHub
REST API and one backed by a local Git clone, which also writes the
release commit and tag back.
"""

from .source import Commit, RepositoryError, RepositorySource  # noqa: F401
from .git_client import GitError, LocalGitSource, squashed_messages  # noqa: F401
from .github_client import GitHubSource, pull_request_number  # noqa: F401
