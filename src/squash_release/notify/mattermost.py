"""
Client for announcing a release on a Mattermost channel.

This client wraps the ``/api/v4/posts`` endpoint of the Mattermost REST
API. The post reads ``"<message> (<tag>) !"``, e.g.
``"New release (v1.2.0) !"``. On error conditions (HTTP errors,
timeouts), a :class:`NotifierError` is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_MESSAGE = "New release"


class NotifierError(Exception):
    """Raised when the release announcement cannot be posted."""

    pass


def release_message(message: str, tag: str) -> str:
    """Build the announcement text for a release tag."""
    return f"{message} ({tag}) !"


@dataclass
class MattermostNotifier:
    """Post release announcements to a Mattermost channel.

    Parameters
    ----------
    url : str
        Base URL of the Mattermost instance, e.g. ``"https://chat.example.com"``.
    channel_id : str
        Identifier of the channel to post in. The token's user needs the
        ``create_post`` permission on it.
    token : str
        Personal access token.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 30 seconds.
    """

    url: str
    channel_id: str
    token: Optional[str]
    request_timeout: float = 30.0

    def _endpoint(self) -> str:
        return f"{self.url.rstrip('/')}/api/v4/posts"

    def notify_release(self, tag: str, message: str = DEFAULT_MESSAGE) -> None:
        """Post the announcement for ``tag``.

        Raises
        ------
        NotifierError
            If no token is configured or the post is rejected.
        """
        if not self.token:
            raise NotifierError("No Mattermost token configured (set MATTERMOST_TOKEN)")
        payload: Dict[str, Any] = {
            "channel_id": self.channel_id,
            "message": release_message(message, tag),
        }
        url = self._endpoint()
        logger.debug("Posting release notification to %s: %s", url, payload)
        try:
            response = requests.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to Mattermost: %s", exc)
            raise NotifierError(str(exc)) from exc
        if response.status_code not in (200, 201):
            logger.error(
                "Mattermost returned status %s: %s", response.status_code, response.text
            )
            raise NotifierError(f"Mattermost returned status {response.status_code}: {response.text}")
        logger.info("Release %s announced on channel %s", tag, self.channel_id)
