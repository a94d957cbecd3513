"""
Release-decision pipeline.

Data flows strictly forward through the stages::

    repository source -> classifier -> aggregator -> versioner -> changelog

:func:`collect_window` is the only stage doing I/O: it materialises the
whole release window (main-line commits and their inner commits) before
any decision is made. :func:`plan_release` is a pure function of that
window, the configuration and the release date. When the window holds no
release-relevant commit it returns ``None`` and the versioner is never
called.

Fatal conditions are raised as :class:`ReleaseError` naming the release
window and the offending input so that runs stay auditable. Repository
errors are not wrapped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from squash_release.changelog.document import merge
from squash_release.changelog.synthesizer import ChangelogConflictError, ChangelogSection, synthesize
from squash_release.config.loader import ReleaseConfig
from squash_release.grammar.aggregator import aggregate, is_release_due
from squash_release.grammar.commit_classifier import ClassifiedCommit, classify_commits
from squash_release.grammar.rules import ReleaseSeverity
from squash_release.vcs.source import Commit, RepositorySource
from squash_release.versioning.semver import SemanticVersion, VersionError, next_version, parse_tag


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class ReleaseError(Exception):
    """Raised when a release window cannot be turned into a release."""

    def __init__(self, window: "ReleaseWindow", message: str) -> None:
        super().__init__(f"Release window {window.label}: {message}")
        self.window = window


@dataclass(frozen=True)
class ReleaseWindow:
    """Commits between the last release tag and the evaluation point.

    Attributes
    ----------
    last_tag : str, optional
        Tag of the previous release; ``None`` before the first release.
    squashed : Tuple[Commit, ...]
        Main-line commits of the window, oldest first.
    commits : Tuple[Commit, ...]
        Inner commits of all squashed commits, oldest first.
    """

    last_tag: Optional[str]
    squashed: Tuple[Commit, ...] = ()
    commits: Tuple[Commit, ...] = ()

    @property
    def label(self) -> str:
        return f"since {self.last_tag}" if self.last_tag else "since first commit"


@dataclass(frozen=True)
class ReleasePlan:
    """Outcome of a release window that warrants a release."""

    window: ReleaseWindow
    severity: ReleaseSeverity
    current_version: Optional[SemanticVersion]
    version: SemanticVersion
    tag: str
    section: ChangelogSection
    classified: Tuple[ClassifiedCommit, ...]

    @property
    def commit_message(self) -> str:
        return f"Release {self.tag}"


def collect_window(source: RepositorySource, last_tag: Optional[str]) -> ReleaseWindow:
    """Retrieve the full release window from ``source``.

    Repository errors propagate unchanged to the caller.
    """
    squashed = tuple(source.list_commits_since(last_tag))
    inner: List[Commit] = []
    for commit in squashed:
        inner.extend(source.expand_squashed(commit))
    window = ReleaseWindow(last_tag=last_tag, squashed=squashed, commits=tuple(inner))
    logger.info(
        "Release window %s: %d squashed commit(s), %d inner commit(s)",
        window.label,
        len(window.squashed),
        len(window.commits),
    )
    return window


def decide(window: ReleaseWindow, config: ReleaseConfig) -> Tuple[ReleaseSeverity, List[ClassifiedCommit]]:
    """Classify the window's commits and aggregate their severities."""
    classified = classify_commits(window.commits, config.grammar)
    for item in classified:
        logger.debug("%s %-5s %s", item.commit.short_id, item.severity.label, item.commit.summary)
    severity = aggregate(item.severity for item in classified)
    return severity, classified


def plan_release(
    window: ReleaseWindow,
    config: ReleaseConfig,
    release_date: date,
) -> Optional[ReleasePlan]:
    """Compute the release for ``window``, or ``None`` if no release is due.

    Raises
    ------
    ReleaseError
        If the last tag is malformed.
    """
    severity, classified = decide(window, config)
    if not is_release_due(severity):
        logger.info("No release due for window %s", window.label)
        return None

    try:
        current = parse_tag(window.last_tag, config.tag_prefix)
        version = next_version(current, severity)
    except VersionError as exc:
        logger.error("Version computation failed for window %s: %s", window.label, exc)
        raise ReleaseError(window, str(exc)) from exc

    section = synthesize(
        version,
        release_date,
        classified,
        config.grammar,
        tag_prefix=config.tag_prefix,
        previous=current,
        repository_url=config.repository.url,
    )
    tag = version.tag(config.tag_prefix)
    logger.info("Window %s: %s release %s -> %s", window.label, severity.label, current or "none", tag)
    return ReleasePlan(
        window=window,
        severity=severity,
        current_version=current,
        version=version,
        tag=tag,
        section=section,
        classified=tuple(classified),
    )


def apply_plan(plan: ReleasePlan, existing_document: str) -> str:
    """Merge the plan's changelog section into ``existing_document``.

    Raises
    ------
    ReleaseError
        If the changelog already holds conflicting content for the version.
    """
    try:
        return merge(existing_document, plan.section)
    except ChangelogConflictError as exc:
        raise ReleaseError(plan.window, str(exc)) from exc
