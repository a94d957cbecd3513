"""
Build and render the changelog section of a release.

A section lists the classified commits of one release window under the
category headings of the grammar, in the order the categories first
appear in the rules. Commits keep the chronological order given by the
repository source and unclassified commits are left out. Rendering is
deterministic: the same inputs always produce the same bytes, so the
changelog file can be committed reproducibly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from squash_release.grammar.commit_classifier import ClassifiedCommit
from squash_release.grammar.rules import Grammar
from squash_release.versioning.semver import SemanticVersion


class ChangelogError(Exception):
    """Raised when the changelog cannot be read, written or updated."""

    pass


class ChangelogConflictError(ChangelogError):
    """Raised when the changelog already holds a different entry for a version."""

    pass


@dataclass(frozen=True)
class ChangelogSection:
    """Changelog content for one release.

    Attributes
    ----------
    version : SemanticVersion
        The released version.
    date : datetime.date
        Release date printed in the heading.
    groups : Tuple[Tuple[str, Tuple[str, ...]], ...]
        Ordered ``(category, descriptions)`` pairs.
    tag_prefix : str
        Prefix used to render the version as a tag.
    compare_url : str, optional
        Link target of the heading, usually a compare view between tags.
    """

    version: SemanticVersion
    date: date
    groups: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    tag_prefix: str = "v"
    compare_url: Optional[str] = None

    @property
    def tag(self) -> str:
        return self.version.tag(self.tag_prefix)

    @property
    def entry_count(self) -> int:
        return sum(len(descriptions) for _, descriptions in self.groups)


def describe_commit(classified: ClassifiedCommit, repository_url: Optional[str] = None) -> str:
    """Render one changelog entry: summary line plus short commit link."""
    commit = classified.commit
    if repository_url:
        link = f"{repository_url}/commit/{commit.identifier}"
        return f"{commit.summary} ([{commit.short_id}]({link}))"
    return f"{commit.summary} ({commit.short_id})"


def compare_link(
    repository_url: Optional[str],
    tag: str,
    previous_tag: Optional[str] = None,
) -> Optional[str]:
    if not repository_url:
        return None
    if previous_tag:
        return f"{repository_url}/compare/{previous_tag}..{tag}"
    return f"{repository_url}/releases/tag/{tag}"


def synthesize(
    version: SemanticVersion,
    release_date: date,
    classified_commits: Iterable[ClassifiedCommit],
    grammar: Grammar,
    *,
    tag_prefix: str = "v",
    previous: Optional[SemanticVersion] = None,
    repository_url: Optional[str] = None,
) -> ChangelogSection:
    """Group classified commits into a new :class:`ChangelogSection`."""
    repository_url = repository_url.rstrip("/") if repository_url else None
    buckets: Dict[str, List[str]] = {category: [] for category in grammar.categories}
    for classified in classified_commits:
        category = classified.category
        if category is None:
            continue
        buckets.setdefault(category, []).append(describe_commit(classified, repository_url))
    groups = tuple(
        (category, tuple(descriptions)) for category, descriptions in buckets.items() if descriptions
    )
    tag = version.tag(tag_prefix)
    previous_tag = previous.tag(tag_prefix) if previous is not None else None
    return ChangelogSection(
        version=version,
        date=release_date,
        groups=groups,
        tag_prefix=tag_prefix,
        compare_url=compare_link(repository_url, tag, previous_tag),
    )


def render_heading(section: ChangelogSection) -> str:
    released = section.date.isoformat()
    if section.compare_url:
        return f"## [{section.tag}]({section.compare_url}) ({released})"
    return f"## {section.tag} ({released})"


def render_section(section: ChangelogSection) -> str:
    """Render a section as Markdown, ending with a single newline."""
    lines = [render_heading(section), ""]
    for category, descriptions in section.groups:
        lines.append(f"### {category}")
        lines.append("")
        lines.extend(f"* {description}" for description in descriptions)
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"
