from datetime import datetime, timedelta, timezone

import pytest

from activation_server.services.arbitration import SessionArbiter
from activation_server.services.keys import KeyAdministration
from activation_server.store import MemoryRecordStore

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
FP_A = "a" * 64
FP_B = "b" * 64


@pytest.fixture
def store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def arbiter(store) -> SessionArbiter:
    return SessionArbiter(
        store,
        stale_timeout=timedelta(minutes=10),
        heartbeat_interval=timedelta(minutes=5),
        sleep=lambda _: None,
    )


@pytest.fixture
def keys(store) -> KeyAdministration:
    return KeyAdministration(store, stale_timeout=timedelta(minutes=10), sleep=lambda _: None)


@pytest.fixture
def key(keys) -> str:
    return keys.create_key(label="test", now=T0 - timedelta(days=1)).key
