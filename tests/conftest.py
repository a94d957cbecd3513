import os

import pytest


@pytest.fixture(autouse=True)
def isolate_tokens():
    """Keep real GitHub and Mattermost tokens out of the tests.

    Tokens found in the developer's environment are removed for the
    duration of each test and restored afterwards.
    """
    saved = {}
    for name in ("GITHUB_TOKEN", "MATTERMOST_TOKEN"):
        if name in os.environ:
            saved[name] = os.environ.pop(name)
    try:
        yield
    finally:
        for name in ("GITHUB_TOKEN", "MATTERMOST_TOKEN"):
            os.environ.pop(name, None)
        os.environ.update(saved)
