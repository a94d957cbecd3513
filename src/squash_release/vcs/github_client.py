"""
GitHub repository source for squash_release.

This client wraps the GitHub REST API with ``requests``. The main line of
a squash-and-merge repository is a list of squashed pull requests whose
summary line ends with the pull request number, e.g.
``Add login form (#42)``. Each of them is expanded into the inner commits
of pull request #42, which carry the real conventional-commit messages.
Commits without a pull request number (direct pushes, release commits)
have no inner commits and are skipped.

On error conditions (HTTP errors, timeouts, unexpected payloads), a
:class:`~squash_release.vcs.source.RepositoryError` is raised. No retries
are attempted here.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import requests

from squash_release.vcs.source import Commit, RepositoryError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid errors when the root logger is missing a
# stream. Messages will still propagate to the root logger if configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


_PULL_REQUEST_RE = re.compile(r"\(#(?P<number>[0-9]+)\)$")

# GitHub never returns more than 250 commits for a pull request.
_MAX_PULL_REQUEST_PAGES = 3


def pull_request_number(commit: Commit) -> Optional[int]:
    """Return the pull request number of a squashed commit, if any.

    >>> pull_request_number(Commit("abc", "Add login form (#42)", "me", datetime(2024, 1, 1)))
    42
    """
    match = _PULL_REQUEST_RE.search(commit.summary)
    return int(match["number"]) if match else None


@dataclass
class GitHubSource:
    """Repository source backed by the GitHub REST API.

    Parameters
    ----------
    owner : str
        Owner (user or organisation) of the repository.
    repo : str
        Repository name.
    token : str, optional
        Personal access token sent as a bearer token.
    api_url : str, optional
        Base URL of the API. Defaults to ``https://api.github.com``.
    branch : str, optional
        Branch whose history is released. Defaults to the repository's
        default branch.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests.
    per_page : int, optional
        Page size used when listing commits.
    """

    owner: str
    repo: str
    token: Optional[str] = None
    api_url: str = "https://api.github.com"
    branch: Optional[str] = None
    request_timeout: float = 30.0
    per_page: int = 100

    @property
    def repository_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"

    def _endpoint(self, path: str) -> str:
        return f"{self.api_url.rstrip('/')}/repos/{self.owner}/{self.repo}{path}"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Issue a GET request and return the decoded JSON payload.

        Raises
        ------
        RepositoryError
            If the request fails, GitHub answers with a non-200 status, or
            the body is not valid JSON.
        """
        url = self._endpoint(path)
        logger.debug("GET %s params=%s", url, params)
        try:
            response = requests.get(
                url,
                headers=self._headers(),
                params=dict(params or {}),
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to reach GitHub: %s", exc)
            raise RepositoryError(f"GET {path} failed: {exc}") from exc
        if response.status_code != 200:
            logger.error("GitHub returned status %s for %s: %s", response.status_code, url, response.text)
            raise RepositoryError(
                f"GitHub returned status {response.status_code} for GET {path}: {response.text}"
            )
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Failed to parse GitHub response for %s: %s", url, exc)
            raise RepositoryError(f"Invalid JSON returned for GET {path}") from exc

    @staticmethod
    def _to_commit(item: Mapping[str, Any]) -> Commit:
        try:
            details = item["commit"]
            author = details.get("author") or {}
            stamp = author.get("date") or details["committer"]["date"]
            return Commit(
                identifier=item["sha"],
                message=details["message"],
                author=author.get("name", ""),
                timestamp=datetime.fromisoformat(stamp.replace("Z", "+00:00")),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise RepositoryError(f"Unexpected commit payload: {exc!r}") from exc

    # ------------------------------------------------------------------
    # Repository source capability
    # ------------------------------------------------------------------
    def latest_tag(self) -> Optional[str]:
        """Return the first tag listed by GitHub, or ``None``."""
        tags = self._get("/tags", params={"per_page": 1})
        if not tags:
            return None
        try:
            return tags[0]["name"]
        except (KeyError, TypeError, IndexError) as exc:
            raise RepositoryError(f"Unexpected tag payload: {exc!r}") from exc

    def resolve_tag(self, tag: str) -> str:
        """Return the SHA of the commit a tag points to."""
        payload = self._get(f"/commits/{tag}")
        try:
            return payload["sha"]
        except (KeyError, TypeError) as exc:
            raise RepositoryError(f"Cannot resolve tag {tag}: unexpected payload") from exc

    def list_commits_since(self, last_tag: Optional[str]) -> List[Commit]:
        """Return main-line commits after ``last_tag``, oldest first."""
        stop_sha = self.resolve_tag(last_tag) if last_tag else None
        collected: List[Commit] = []
        reached = False
        page = 1
        while not reached:
            params: Dict[str, Any] = {"per_page": self.per_page, "page": page}
            if self.branch:
                params["sha"] = self.branch
            items = self._get("/commits", params=params)
            if not items:
                break
            for item in items:
                if stop_sha is not None and item.get("sha") == stop_sha:
                    reached = True
                    break
                collected.append(self._to_commit(item))
            if len(items) < self.per_page:
                break
            page += 1
        if stop_sha is not None and not reached:
            raise RepositoryError(
                f"Tag {last_tag} ({stop_sha[:8]}) was not found in the history of "
                f"{self.branch or 'the default branch'}"
            )
        collected.reverse()
        logger.debug("Found %d commit(s) since %s", len(collected), last_tag or "the first commit")
        return collected

    def expand_squashed(self, commit: Commit) -> List[Commit]:
        """Return the inner commits of the pull request squashed into ``commit``."""
        number = pull_request_number(commit)
        if number is None:
            logger.debug("Commit %s is not a squashed pull request; skipping", commit.short_id)
            return []
        inner: List[Commit] = []
        try:
            for page in range(1, _MAX_PULL_REQUEST_PAGES + 1):
                items = self._get(f"/pulls/{number}/commits", params={"per_page": 100, "page": page})
                inner.extend(self._to_commit(item) for item in items)
                if len(items) < 100:
                    break
        except RepositoryError as exc:
            raise RepositoryError(
                f"Failed to expand commit {commit.identifier} (pull request #{number}): {exc}"
            ) from exc
        return inner
