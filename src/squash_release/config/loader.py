"""
Configuration loader for squash_release.

The tool reads an optional JSON configuration file named
``.squash_release.json`` from the repository root. It holds the ordered
release rules, where the changelog lives, how release tags are spelled,
which repository provider to read history from and, optionally, where to
announce releases. A missing file means "use the defaults".

Release rules are compiled into a :class:`~squash_release.grammar.Grammar`
while loading, so an invalid pattern stops the tool before any commit is
looked at. If the configuration file is malformed, has fields of the
wrong type or contains invalid rules, a :class:`ConfigError` is raised.

Example::

    {
        "changelog_path": "changelogs/CHANGELOG.md",
        "tag_prefix": "v",
        "repository": {"provider": "github", "owner": "acme", "repo": "rocket"},
        "release_rules": [
            {"pattern": "^break(\\\\(\\\\S+\\\\))?: .+", "severity": "major", "category": "Production"},
            {"pattern": "^feat(\\\\(\\\\S+\\\\))?: .+", "severity": "minor", "category": "Production"},
            {"pattern": "^fix(\\\\(\\\\S+\\\\))?: .+", "severity": "patch", "category": "Production"}
        ],
        "notifier": {"url": "https://chat.acme.io", "channel_id": "abc123", "message": "New release"}
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from squash_release.grammar.rules import DEFAULT_RELEASE_RULES, Grammar, GrammarError, compile_grammar


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings or logging errors in
# environments where the root logger may be closed. Propagation is
# disabled until the CLI configures logging.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILE_NAME = ".squash_release.json"
PROVIDERS = ("git", "github")


class ConfigError(Exception):
    """Raised when the configuration file is malformed or invalid."""

    pass


@dataclass(frozen=True)
class RepositoryConfig:
    """Where commit history is read from."""

    provider: str = "git"
    owner: Optional[str] = None
    repo: Optional[str] = None
    api_url: str = "https://api.github.com"

    @property
    def url(self) -> Optional[str]:
        """Web URL used for changelog links, when known."""
        if self.owner and self.repo:
            return f"https://github.com/{self.owner}/{self.repo}"
        return None


@dataclass(frozen=True)
class NotifierConfig:
    """Mattermost channel releases are announced on."""

    url: str
    channel_id: str
    message: str = "New release"


@dataclass(frozen=True)
class ReleaseConfig:
    """Validated, read-only configuration passed to every pipeline stage."""

    grammar: Grammar
    changelog_path: str = "CHANGELOG.md"
    tag_prefix: str = "v"
    branch: Optional[str] = None
    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    notifier: Optional[NotifierConfig] = None
    request_timeout: float = 30.0


def default_config() -> ReleaseConfig:
    return ReleaseConfig(grammar=compile_grammar(DEFAULT_RELEASE_RULES))


def _require_str(data: Dict[str, Any], key: str, where: str, required: bool = False) -> Optional[str]:
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigError(f"Missing required configuration key: {where}{key}")
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{where}{key}' must be a non-empty string")
    return value


def _parse_repository(data: Any) -> RepositoryConfig:
    if data is None:
        return RepositoryConfig()
    if not isinstance(data, dict):
        raise ConfigError("'repository' must be an object")
    provider = _require_str(data, "provider", "repository.") or "git"
    if provider not in PROVIDERS:
        raise ConfigError(f"'repository.provider' must be one of: {', '.join(PROVIDERS)}")
    owner = _require_str(data, "owner", "repository.", required=provider == "github")
    repo = _require_str(data, "repo", "repository.", required=provider == "github")
    api_url = _require_str(data, "api_url", "repository.") or RepositoryConfig.api_url
    return RepositoryConfig(provider=provider, owner=owner, repo=repo, api_url=api_url)


def _parse_notifier(data: Any) -> Optional[NotifierConfig]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError("'notifier' must be an object")
    url = _require_str(data, "url", "notifier.", required=True)
    channel_id = _require_str(data, "channel_id", "notifier.", required=True)
    message = _require_str(data, "message", "notifier.") or NotifierConfig.message
    return NotifierConfig(url=url, channel_id=channel_id, message=message)


def parse_config(data: Dict[str, Any]) -> ReleaseConfig:
    """Validate a decoded configuration mapping.

    Raises
    ------
    ConfigError
        If a key has the wrong type or the release rules cannot be compiled.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    raw_rules = data.get("release_rules", DEFAULT_RELEASE_RULES)
    if not isinstance(raw_rules, (list, tuple)):
        raise ConfigError("'release_rules' must be a list")
    try:
        grammar = compile_grammar(raw_rules)
    except GrammarError as exc:
        logger.error("Invalid release rules: %s", exc)
        raise ConfigError(f"Invalid release rules: {exc}") from exc

    changelog_path = _require_str(data, "changelog_path", "") or ReleaseConfig.changelog_path
    tag_prefix = data.get("tag_prefix", ReleaseConfig.tag_prefix)
    if not isinstance(tag_prefix, str):
        raise ConfigError("'tag_prefix' must be a string")
    branch = _require_str(data, "branch", "")
    timeout = data.get("request_timeout", ReleaseConfig.request_timeout)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("'request_timeout' must be a positive number")

    return ReleaseConfig(
        grammar=grammar,
        changelog_path=changelog_path,
        tag_prefix=tag_prefix,
        branch=branch,
        repository=_parse_repository(data.get("repository")),
        notifier=_parse_notifier(data.get("notifier")),
        request_timeout=float(timeout),
    )


def load_config(repo_root: Path, config_path: Optional[Path] = None) -> ReleaseConfig:
    """Load the configuration for the repository at ``repo_root``.

    Args:
        repo_root: Root of the repository; the default configuration file
                   is looked up there.
        config_path: Explicit configuration file. Unlike the default file it
                     must exist.

    Returns:
        The validated :class:`ReleaseConfig`.

    Raises:
        ConfigError: If the configuration file is missing (when given
            explicitly), malformed, or invalid.
    """
    path = config_path if config_path is not None else repo_root / CONFIG_FILE_NAME

    if not path.exists():
        if config_path is not None:
            logger.error("Configuration file '%s' does not exist", path)
            raise ConfigError(f"Missing configuration file: {path}")
        logger.debug("No configuration file at %s; using defaults", path)
        return default_config()

    try:
        content = path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {path.name}: {exc}") from exc

    config = parse_config(data)
    logger.debug("Loaded configuration from: %s", path)
    logger.debug("Release rules: %d, categories: %s", len(config.grammar), config.grammar.categories)
    return config
