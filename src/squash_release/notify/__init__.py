"""
Release notifications.

See :mod:`squash_release.notify.mattermost`.
"""

from .mattermost import MattermostNotifier, NotifierError, release_message  # noqa: F401
