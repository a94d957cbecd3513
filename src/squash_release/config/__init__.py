"""
Configuration loading for squash_release.

Provides a loader for the optional ``.squash_release.json`` file at the
repository root. See :mod:`squash_release.config.loader` for
implementation details.
"""

from .loader import (  # noqa: F401
    CONFIG_FILE_NAME,
    ConfigError,
    NotifierConfig,
    ReleaseConfig,
    RepositoryConfig,
    default_config,
    load_config,
    parse_config,
)
