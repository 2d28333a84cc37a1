from datetime import timedelta

import pytest

from activation_server.records import KeyStatus, is_valid_activation_key
from activation_server.services.keys import KeyNotFound
from tests.conftest import FP_A, T0


def test_create_key_is_active_without_session(keys):
    record = keys.create_key(label="  office laptop ", now=T0)

    assert is_valid_activation_key(record.key, "NGAJ")
    assert record.created_at == T0
    assert record.status == KeyStatus.active
    assert record.label == "office laptop"
    assert record.current_session is None


def test_create_key_generates_unique_keys(keys):
    created = {keys.create_key(now=T0).key for _ in range(20)}

    assert len(created) == 20


def test_get_key_missing(keys):
    with pytest.raises(KeyNotFound):
        keys.get_key("NGAJ-00000000-0000-0000-0000-000000000000")


def test_list_keys_projects_staleness(keys, arbiter):
    idle = keys.create_key(label="idle", now=T0).key
    fresh = keys.create_key(label="fresh", now=T0 + timedelta(seconds=1)).key
    stale = keys.create_key(label="stale", now=T0 + timedelta(seconds=2)).key
    now = T0 + timedelta(minutes=30)
    arbiter.try_acquire_or_renew(fresh, FP_A, now=now - timedelta(minutes=1))
    arbiter.try_acquire_or_renew(stale, FP_A, now=now - timedelta(minutes=11))

    summaries = {summary.record.key: summary for summary in keys.list_keys(now=now)}

    assert summaries[idle].is_stale is None
    assert summaries[fresh].is_stale is False
    assert summaries[stale].is_stale is True
    assert [summary.record.label for summary in keys.list_keys(now=now)] == ["idle", "fresh", "stale"]


def test_revoke_keeps_session_and_is_idempotent(keys, arbiter, store):
    key = keys.create_key(now=T0).key
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    revoked = keys.revoke_key(key)
    again = keys.revoke_key(key)

    assert revoked.status == KeyStatus.revoked
    assert again.status == KeyStatus.revoked
    assert store.get(key).current_session.device_fingerprint == FP_A


def test_revoke_missing_key(keys):
    with pytest.raises(KeyNotFound):
        keys.revoke_key("NGAJ-00000000-0000-0000-0000-000000000000")
