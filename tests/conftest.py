"""
Shared fixtures: sample payloads, a temp-dir store and fake collaborators
"""
import copy

import pytest
from fastapi.testclient import TestClient

from construct_api.core.rate_guard import InMemoryRateGuard
from construct_api.main import create_app
from construct_api.models import (
    AdminSettings, BotVerdict, Settings, StorageSettings, TeamRegistration,
)
from construct_api.services.bot_verification import BotVerifier
from construct_api.services.notifier import Notifier
from construct_api.services.store import LocalJsonStore
from construct_api.state import build_services


SCENARIO_PAYLOAD = {
    "teamName": "Testers United",
    "teamSize": 3,
    "lead": {"name": "Alex Lead", "email": "ALEX.LEAD@example.edu", "gender": "female"},
    "members": [
        {"name": "Member One", "email": "m1@example.edu", "gender": "male"},
        {"name": "Member Two", "email": "m2@example.edu", "gender": "female"},
    ],
}


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def notify(self, record: TeamRegistration) -> None:
        self.sent.append(record)


class FailingNotifier(Notifier):
    def notify(self, record: TeamRegistration) -> None:
        raise RuntimeError("SMTP server exploded")


class FakeBotVerifier(BotVerifier):
    def __init__(self, verdict: BotVerdict):
        self.verdict = verdict
        self.calls = []

    def verify(self, token, client_ip=None) -> BotVerdict:
        self.calls.append((token, client_ip))
        return self.verdict


@pytest.fixture
def payload():
    """Factory for a valid registration payload with optional overrides"""
    def make(**overrides):
        data = copy.deepcopy(SCENARIO_PAYLOAD)
        data.update(overrides)
        return data
    return make


@pytest.fixture
def store(tmp_path):
    return LocalJsonStore(str(tmp_path / "data"))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        admin=AdminSettings(password="s3cret"),
        storage=StorageSettings(backend="local", data_dir=str(tmp_path / "data")),
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def services(settings, store, notifier):
    # Generous limits so flow tests are not throttled
    guard = InMemoryRateGuard(window_seconds=3600, max_per_window=1000, min_interval_seconds=0)
    return build_services(settings, store=store, notifier=notifier, rate_guard=guard)


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services))


@pytest.fixture
def admin_auth():
    return ("admin", "s3cret")
