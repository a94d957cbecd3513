"""
Local Git repository source for squash_release.

This module reads release tags and commit history straight from a local
clone by running ``git`` in a subprocess, and writes the release back
(stage, commit, tag, push). All subprocess calls go through
:meth:`LocalGitSource._run` so that unit tests can mock them easily.

In a local clone the inner commits of a squash merge survive only as the
bullet list GitHub writes into the squash commit body, so they are read
back from there. A true merge commit expands to the commits it brought
into the main line.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from squash_release.vcs.source import Commit, RepositoryError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"--format=%H{_FIELD_SEP}%an{_FIELD_SEP}%aI{_FIELD_SEP}%B{_RECORD_SEP}"


_PULL_REQUEST_SUFFIX_RE = re.compile(r"\s*\(#[0-9]+\)$")


def squashed_messages(message: str) -> List[str]:
    """Recover the inner commit messages of a squash commit.

    GitHub writes a squash commit as the pull request title followed by
    one ``* <message>`` bullet per squashed commit::

        Remove endpoint (#14)

        * break(api): remove endpoint

        * docs: typo fix

    The bullets are returned in order. Without any bullet the summary line
    alone is returned, with its ``(#N)`` suffix stripped.

    >>> squashed_messages("feat: add login form (#15)")
    ['feat: add login form']
    """
    summary, _, body = message.strip().partition("\n")
    bullets = [line[2:].strip() for line in body.splitlines() if line.startswith("* ") and line[2:].strip()]
    if bullets:
        return bullets
    return [_PULL_REQUEST_SUFFIX_RE.sub("", summary.strip())]


class GitError(RepositoryError):
    """Raised when a Git command fails."""

    pass


class LocalGitSource:
    """Repository source backed by a local Git clone."""

    def __init__(self, repo_root: Path, tag_prefix: str = "v", remote: str = "origin") -> None:
        self.repo_root = repo_root
        self.tag_prefix = tag_prefix
        self.remote = remote

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is the root of a Git repository."""
        return (path / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` directory is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                # reached filesystem root
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            logger.error("Unable to run git: %s", exc)
            raise GitError(f"Unable to run git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    @staticmethod
    def _parse_log(output: str) -> List[Commit]:
        commits = []
        for record in output.split(_RECORD_SEP):
            record = record.lstrip("\n")
            if not record.strip():
                continue
            parts = record.split(_FIELD_SEP, 3)
            if len(parts) != 4:
                raise GitError(f"Unexpected git log record: {record[:80]!r}")
            identifier, author, stamp, message = parts
            try:
                timestamp = datetime.fromisoformat(stamp.strip())
            except ValueError as exc:
                raise GitError(f"Invalid commit date {stamp!r} for commit {identifier}") from exc
            commits.append(
                Commit(
                    identifier=identifier.strip(),
                    message=message.strip(),
                    author=author,
                    timestamp=timestamp,
                )
            )
        return commits

    # ------------------------------------------------------------------
    # Repository source capability
    # ------------------------------------------------------------------
    def latest_tag(self) -> Optional[str]:
        """Return the nearest release tag reachable from HEAD, or ``None``."""
        result = self._run(
            ["describe", "--tags", "--abbrev=0", "--match", f"{self.tag_prefix}*"],
            check=False,
        )
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if "No names found" in stderr or "No tags can describe" in stderr or "cannot describe" in stderr:
                logger.info("No release tag found in %s", self.repo_root)
                return None
            raise GitError(stderr or "git describe failed")
        return result.stdout.strip() or None

    def list_commits_since(self, last_tag: Optional[str]) -> List[Commit]:
        """Return first-parent commits after ``last_tag`` up to HEAD, oldest first."""
        revision = f"{last_tag}..HEAD" if last_tag else "HEAD"
        try:
            result = self._run(["log", "--first-parent", "--reverse", _LOG_FORMAT, revision])
        except GitError as exc:
            raise GitError(f"Failed to list commits since {last_tag or 'the first commit'}: {exc}") from exc
        return self._parse_log(result.stdout)

    def _parents(self, identifier: str) -> Tuple[str, ...]:
        result = self._run(["rev-list", "--parents", "-n", "1", identifier])
        hashes = result.stdout.split()
        return tuple(hashes[1:])

    def expand_squashed(self, commit: Commit) -> List[Commit]:
        """Return the commits folded into ``commit``, oldest first.

        A merge commit expands to the commits it brought into the main
        line. A squash commit keeps its inner commits only as text, see
        :func:`squashed_messages`; each of them becomes a :class:`Commit`
        sharing the squash commit's identifier, author and date.
        """
        try:
            parents = self._parents(commit.identifier)
            if len(parents) >= 2:
                result = self._run(["log", "--reverse", _LOG_FORMAT, f"{parents[0]}..{parents[1]}"])
            else:
                result = None
        except GitError as exc:
            raise GitError(f"Failed to expand commit {commit.identifier}: {exc}") from exc
        if result is not None:
            return self._parse_log(result.stdout)
        messages = squashed_messages(commit.message)
        if messages == [commit.message]:
            return [commit]
        return [replace(commit, message=message) for message in messages]

    # ------------------------------------------------------------------
    # Staging, committing, tagging, pushing
    # ------------------------------------------------------------------
    def stage_files(self, files: List[str]) -> None:
        """Stage the given files for commit."""
        for file in files:
            self._run(["add", "--", file], check=True)

    def commit(self, message: str) -> None:
        """Create a commit with the given message."""
        self._run(["commit", "-m", message], check=True)

    def tag_exists(self, tag: str) -> bool:
        result = self._run(["tag", "--list", tag], check=False)
        return bool(result.stdout.strip())

    def create_tag(self, tag: str, message: Optional[str] = None) -> None:
        """Create an annotated tag on HEAD."""
        self._run(["tag", "-a", tag, "-m", message or tag], check=True)

    def push(self, tag: Optional[str] = None) -> None:
        """Push the current branch and, if given, the release tag.

        Raises
        ------
        GitError
            If pushing fails.
        """
        self._run(["push", self.remote, "HEAD"], check=True)
        if tag:
            self._run(["push", self.remote, tag], check=True)
