"""Shared pytest fixtures for carpool-sync tests."""

from datetime import datetime

import pytest

from carpool_sync.config import Config
from carpool_sync.sync.models import AppData
from carpool_sync.sync.remote import RemoteRead, RemoteStatus

# Fixed clock so generated participant ids are predictable.
FIXED_NOW = datetime(2024, 6, 3, 9, 30, 0, 123000)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer env vars from leaking into config tests."""
    for key in (
        "CARPOOL_SUPABASE_URL",
        "CARPOOL_SUPABASE_KEY",
        "CARPOOL_TABLE",
        "CARPOOL_ROW_ID",
        "CARPOOL_STATE_DIR",
        "CARPOOL_STORAGE_KEY",
        "CARPOOL_DEBOUNCE_SECONDS",
        "CARPOOL_PING_INTERVAL",
        "CARPOOL_PAYMENT_VALUE",
        "CARPOOL_REQUEST_TIMEOUT",
        "CARPOOL_DEBUG",
        "CARPOOL_SYNC_CONFIG",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def mock_config(tmp_path):
    """Create a Config pointing at a fake remote and a temp cache dir."""
    return Config(
        supabase_url="https://project.example.com",
        supabase_key="anon-key",
        state_dir=str(tmp_path / "state"),
        debounce_seconds=0.05,
    )


@pytest.fixture
def now():
    return FIXED_NOW


class FakeRemoteStore:
    """In-memory stand-in for RemoteStore.

    ``status`` controls what ``read`` reports; every successful write
    updates ``payload`` and is recorded in ``writes``.
    """

    def __init__(
        self,
        status: RemoteStatus = RemoteStatus.ABSENT,
        payload=None,
        write_ok: bool = True,
        online: bool = True,
    ) -> None:
        self.status = status
        self.payload = payload
        self.write_ok = write_ok
        self.online = online
        self.writes: list[AppData] = []
        self.reads = 0

    def read(self) -> RemoteRead:
        self.reads += 1
        if self.status == RemoteStatus.FOUND:
            return RemoteRead(status=self.status, payload=self.payload)
        return RemoteRead(status=self.status)

    def write(self, doc: AppData) -> bool:
        self.writes.append(doc)
        if self.write_ok:
            self.payload = doc.to_payload()
            self.status = RemoteStatus.FOUND
        return self.write_ok

    def ping(self) -> bool:
        return self.online

    async def read_async(self) -> RemoteRead:
        return self.read()

    async def write_async(self, doc: AppData) -> bool:
        return self.write(doc)

    async def ping_async(self) -> bool:
        return self.ping()


@pytest.fixture
def fake_remote():
    return FakeRemoteStore()


@pytest.fixture
def make_remote():
    """Factory for FakeRemoteStore instances with a given read outcome."""
    return FakeRemoteStore
