# tests/conftest.py
import os
import sys

import pytest

# path to the repo root (one level up from tests/)
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ensure repo root is importable so `import spotbar.*` works without installing
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from spotbar.config import BridgeConfig  # noqa: E402
from spotbar.errors import BackendError  # noqa: E402


class FakePlayer:
    """Stands in for mpris.Player; never touches the bus."""

    def __init__(self, metadata=None, status="Playing"):
        self.metadata_value = metadata if metadata is not None else {
            "xesam:artist": ["Daft Punk"],
            "xesam:title": "Digital Love",
            "xesam:album": "Discovery",
        }
        self.status = status
        self.calls = []
        self.fail_status = False
        self.fail_metadata = False
        self.fail_call = False

    def ping(self):
        pass

    def metadata(self):
        if self.fail_metadata:
            raise BackendError("metadata read failed")
        return self.metadata_value

    def playback_status(self):
        if self.fail_status:
            raise BackendError("status read failed")
        return self.status

    def call(self, method):
        if self.fail_call:
            raise BackendError(f"{method} failed")
        self.calls.append(method)


class FakeConnection:
    """Stands in for mpris.BackendConnection with a scripted liveness."""

    def __init__(self, handle=None, live=True):
        self.handle = handle
        self.live = live
        self.ensure_calls = 0
        self.connect_calls = 0

    def connect(self):
        self.connect_calls += 1
        return self.handle

    def ensure_live(self):
        self.ensure_calls += 1
        return self.live and self.handle is not None


@pytest.fixture
def config():
    return BridgeConfig()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def connection(player):
    return FakeConnection(handle=player)
