"""
Changelog synthesis.

:mod:`squash_release.changelog.synthesizer` builds and renders the
section of a single release; :mod:`squash_release.changelog.document`
merges it into the changelog file.
"""

from .document import CHANGELOG_TITLE, latest_version, merge, read_changelog, write_changelog  # noqa: F401
from .synthesizer import (  # noqa: F401
    ChangelogConflictError,
    ChangelogError,
    ChangelogSection,
    render_section,
    synthesize,
)
