import json
from datetime import datetime, timedelta

import pytest
import pytz
from fastapi.testclient import TestClient

from caption_relay.core.config import Settings
from caption_relay.main import create_app


class FakeClock:
    """Callable clock the tests move by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class FakeClient:
    """Stands in for a WebSocket; records every payload it is sent."""

    def __init__(self):
        self.received = []

    async def send_text(self, data: str):
        self.received.append(json.loads(data))


class BrokenClient:
    async def send_text(self, data: str):
        raise ConnectionResetError("peer went away")


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 9, 0, 0, tzinfo=pytz.UTC))


@pytest.fixture
def sessions_dir(tmp_path):
    return tmp_path / "sessions"


@pytest.fixture
def settings(tmp_path, sessions_dir):
    return Settings(
        SESSIONS_DIR=str(sessions_dir),
        SSL_CERTFILE=str(tmp_path / "missing-cert.pem"),
        SSL_KEYFILE=str(tmp_path / "missing-key.pem"),
        TIMEZONE="UTC",
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
