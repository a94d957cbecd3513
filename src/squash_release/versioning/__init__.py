"""
Semantic versioning for release tags.

See :mod:`squash_release.versioning.semver` for details.
"""

from .semver import (  # noqa: F401
    INITIAL_VERSION,
    SemanticVersion,
    VersionError,
    next_version,
    parse_tag,
    parse_version,
)
