"""
Merge release sections into the cumulative changelog document.

The document keeps the newest release first. Every release starts with a
level-two heading (``## v1.2.0 (2024-01-31)`` or the linked form
``## [v1.2.0](...) (2024-01-31)``); anything before the first heading is
the preamble and is left untouched.

Merging is idempotent for a given version. If the most recent section
already describes the target version with identical content the document
is returned as is; any other collision means the pipeline ran twice with
different input or the file was edited by hand, and is reported instead
of overwritten.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from squash_release.changelog.synthesizer import (
    ChangelogConflictError,
    ChangelogError,
    ChangelogSection,
    render_section,
)
from squash_release.versioning.semver import SemanticVersion, VersionError, parse_tag


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CHANGELOG_TITLE = "# Changelog"

_HEADING_RE = re.compile(r"^## \[?(?P<tag>[^\]\s(]+)")


@dataclass(frozen=True)
class _Heading:
    line: int
    tag: str
    version: Optional[SemanticVersion]


def _headings(lines: List[str], tag_prefix: str) -> List[_Heading]:
    found = []
    for index, line in enumerate(lines):
        if not line.startswith("## "):
            continue
        match = _HEADING_RE.match(line)
        tag = match["tag"] if match else line[3:].strip()
        try:
            version = parse_tag(tag, tag_prefix)
        except VersionError:
            # e.g. "## Unreleased"; kept as content, never compared
            version = None
        found.append(_Heading(line=index, tag=tag, version=version))
    return found


def latest_version(document: str, tag_prefix: str = "v") -> Optional[SemanticVersion]:
    """Return the version of the most recent release section, if any."""
    for heading in _headings(document.splitlines(), tag_prefix):
        if heading.version is not None:
            return heading.version
    return None


def merge(existing_document: str, section: ChangelogSection) -> str:
    """Return ``existing_document`` with ``section`` inserted as the newest release.

    The section goes right above the most recent release, so an
    ``## Unreleased`` block at the top stays there; without any release
    it is appended to the document. The document's line
    endings (``\\n`` or ``\\r\\n``) are kept.

    Raises
    ------
    ChangelogConflictError
        If the version is already present with different content, appears
        further down the document, or is older than the most recent release.
    """
    rendered = render_section(section)
    if not existing_document.strip():
        return f"{CHANGELOG_TITLE}\n\n{rendered}"

    newline = "\r\n" if "\r\n" in existing_document else "\n"
    lines = existing_document.splitlines(keepends=True)
    headings = _headings(lines, section.tag_prefix)
    versioned = [heading for heading in headings if heading.version is not None]

    if versioned:
        latest = versioned[0]
        if latest.version == section.version:
            following = [h.line for h in headings if h.line > latest.line]
            end = following[0] if following else len(lines)
            present = "".join(lines[latest.line:end]).replace("\r\n", "\n")
            if present.rstrip() == rendered.rstrip():
                logger.info("Changelog already contains %s; nothing to merge", section.tag)
                return existing_document
            raise ChangelogConflictError(
                f"Changelog already contains a different section for {section.tag} "
                f"(line {latest.line + 1})"
            )
        if section.version < latest.version:
            raise ChangelogConflictError(
                f"Cannot add {section.tag}: the most recent changelog section is {latest.tag}"
            )
        for heading in versioned[1:]:
            if heading.version == section.version:
                raise ChangelogConflictError(
                    f"Changelog already contains {section.tag} at line {heading.line + 1}"
                )

    rendered = rendered.replace("\n", newline)
    anchor = versioned[0] if versioned else None
    if anchor is not None:
        head = "".join(lines[:anchor.line])
        tail = "".join(lines[anchor.line:])
        # the section must start a new paragraph
        if head.strip() and not head.endswith(newline * 2):
            head += newline
        return f"{head}{rendered}{newline}{tail}"
    return f"{existing_document.rstrip()}{newline}{newline}{rendered}"


def read_changelog(path: Path) -> str:
    """Read the changelog, returning an empty document if it does not exist."""
    if not path.exists():
        logger.debug("Changelog '%s' does not exist yet", path)
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to read changelog '%s': %s", path, exc)
        raise ChangelogError(f"Failed to read changelog {path}: {exc}") from exc


def write_changelog(path: Path, document: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(document)
    except OSError as exc:
        logger.error("Failed to write changelog '%s': %s", path, exc)
        raise ChangelogError(f"Failed to write changelog {path}: {exc}") from exc
    logger.debug("Wrote changelog to %s", path)
