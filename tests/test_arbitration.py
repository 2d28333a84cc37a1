import threading
from datetime import timedelta

import pytest

from activation_server.records import ActiveSession
from activation_server.services.arbitration import Accepted, Rejected, RejectionReason, Released, SessionArbiter
from activation_server.services.keys import KeyAdministration
from activation_server.store import MemoryRecordStore, StoreUnavailable
from tests.conftest import FP_A, FP_B, T0


def keys_for(store) -> KeyAdministration:
    return KeyAdministration(store, sleep=lambda _: None)


def test_first_device_accepted_second_rejected(arbiter, store, key):
    assert arbiter.try_acquire_or_renew(key, FP_A, now=T0) == Accepted()

    outcome = arbiter.try_acquire_or_renew(key, FP_B, now=T0 + timedelta(seconds=1))

    assert isinstance(outcome, Rejected)
    assert outcome.reason == RejectionReason.concurrent_session
    assert outcome.retry_after_seconds == 599
    assert store.get(key).current_session.device_fingerprint == FP_A


def test_stale_session_is_reclaimed_by_another_device(arbiter, store, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)
    later = T0 + timedelta(minutes=11)

    outcome = arbiter.try_acquire_or_renew(key, FP_B, now=later)

    assert outcome == Accepted()
    session = store.get(key).current_session
    assert session.device_fingerprint == FP_B
    assert session.started_at == later
    assert session.last_heartbeat_at == later


def test_session_at_exact_timeout_is_not_stale(arbiter, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    outcome = arbiter.try_acquire_or_renew(key, FP_B, now=T0 + timedelta(minutes=10))

    assert outcome == Rejected(RejectionReason.concurrent_session, retry_after_seconds=1)


def test_renewals_preserve_started_at(arbiter, store, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    for minutes in range(4, 30, 4):
        outcome = arbiter.renew(key, FP_A, now=T0 + timedelta(minutes=minutes))
        assert outcome == Accepted(next_interval_seconds=300)

    session = store.get(key).current_session
    assert session.started_at == T0
    assert session.last_heartbeat_at == T0 + timedelta(minutes=28)


def test_reacquire_by_holder_preserves_started_at(arbiter, store, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    assert arbiter.try_acquire_or_renew(key, FP_A, now=T0 + timedelta(minutes=3)) == Accepted()

    session = store.get(key).current_session
    assert session.started_at == T0
    assert session.last_heartbeat_at == T0 + timedelta(minutes=3)


def test_revoked_key_rejects_acquire_and_renew(arbiter, keys, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)
    keys.revoke_key(key)

    later = T0 + timedelta(seconds=30)
    assert arbiter.renew(key, FP_A, now=later) == Rejected(RejectionReason.revoked)
    assert arbiter.try_acquire_or_renew(key, FP_A, now=later) == Rejected(RejectionReason.revoked)
    assert arbiter.try_acquire_or_renew(key, FP_B, now=T0 + timedelta(hours=1)) == Rejected(
        RejectionReason.revoked
    )


def test_release_allows_immediate_takeover(arbiter, store, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    assert arbiter.release(key, FP_A) == Released(cleared=True)
    assert store.get(key).current_session is None

    assert arbiter.try_acquire_or_renew(key, FP_B, now=T0 + timedelta(seconds=5)) == Accepted()
    assert store.get(key).current_session.started_at == T0 + timedelta(seconds=5)


def test_release_by_other_device_is_noop(arbiter, store, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    assert arbiter.release(key, FP_B) == Released(cleared=False)

    assert store.get(key).current_session.device_fingerprint == FP_A


def test_release_of_unknown_key_is_noop(arbiter):
    assert arbiter.release("NGAJ-00000000-0000-0000-0000-000000000000", FP_A) == Released()
    assert arbiter.release("not-a-key", FP_A) == Released()


def test_renew_without_session_is_expired(arbiter, key):
    assert arbiter.renew(key, FP_A, now=T0) == Rejected(RejectionReason.session_expired)


def test_renew_by_other_device_is_expired(arbiter, store, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    assert arbiter.renew(key, FP_B, now=T0 + timedelta(minutes=1)) == Rejected(RejectionReason.session_expired)
    assert store.get(key).current_session.device_fingerprint == FP_A


def test_renew_of_stale_session_by_holder_is_accepted(arbiter, store, key):
    arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    outcome = arbiter.renew(key, FP_A, now=T0 + timedelta(minutes=15))

    assert outcome == Accepted(next_interval_seconds=300)
    assert store.get(key).current_session.started_at == T0


def test_unknown_and_malformed_keys_are_invalid(arbiter):
    unknown = "NGAJ-00000000-0000-0000-0000-000000000000"

    assert arbiter.try_acquire_or_renew(unknown, FP_A, now=T0) == Rejected(RejectionReason.invalid_key)
    assert arbiter.try_acquire_or_renew("garbage", FP_A, now=T0) == Rejected(RejectionReason.invalid_key)
    assert arbiter.renew(unknown, FP_A, now=T0) == Rejected(RejectionReason.invalid_key)


class RacingStore(MemoryRecordStore):
    """Lets a competing device write between our read and our write, once."""

    def __init__(self, competitor: str) -> None:
        super().__init__()
        self.competitor = competitor
        self.raced = False

    def put(self, record):
        if not self.raced:
            self.raced = True
            current = super().get(record.key)
            current.current_session = ActiveSession(self.competitor, T0, T0)
            super().put(current)
        return super().put(record)


def test_conflicting_write_is_retried_on_fresh_state():
    store = RacingStore(competitor=FP_B)
    key = keys_for(store).create_key(now=T0).key
    arbiter = SessionArbiter(store, sleep=lambda _: None)

    outcome = arbiter.try_acquire_or_renew(key, FP_A, now=T0)

    assert outcome == Rejected(RejectionReason.concurrent_session, retry_after_seconds=600)
    assert store.get(key).current_session.device_fingerprint == FP_B


def test_concurrent_acquisitions_accept_exactly_one(arbiter, store, key):
    fingerprints = [f"{index:064x}" for index in range(16)]
    barrier = threading.Barrier(len(fingerprints))
    outcomes: dict[str, object] = {}

    def attempt(fingerprint: str) -> None:
        barrier.wait()
        outcomes[fingerprint] = arbiter.try_acquire_or_renew(key, fingerprint, now=T0)

    threads = [threading.Thread(target=attempt, args=(fp,)) for fp in fingerprints]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [fp for fp, outcome in outcomes.items() if isinstance(outcome, Accepted)]
    assert len(winners) == 1
    assert store.get(key).current_session.device_fingerprint == winners[0]
    for fp, outcome in outcomes.items():
        if fp != winners[0]:
            assert outcome.reason == RejectionReason.concurrent_session


class FlakyStore(MemoryRecordStore):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    def get(self, key):
        if self.failures > 0:
            self.failures -= 1
            raise StoreUnavailable("down")
        return super().get(key)


def test_store_failures_are_retried_with_backoff():
    store = FlakyStore(failures=0)
    key = keys_for(store).create_key(now=T0).key
    store.failures = 2
    delays: list[float] = []
    arbiter = SessionArbiter(store, store_retry_attempts=3, store_retry_backoff_seconds=0.1, sleep=delays.append)

    assert arbiter.try_acquire_or_renew(key, FP_A, now=T0) == Accepted()
    assert delays == [0.1, 0.2]


def test_store_unavailable_surfaces_after_retries():
    store = FlakyStore(failures=0)
    key = keys_for(store).create_key(now=T0).key
    store.failures = 10
    arbiter = SessionArbiter(store, store_retry_attempts=3, sleep=lambda _: None)

    with pytest.raises(StoreUnavailable):
        arbiter.try_acquire_or_renew(key, FP_A, now=T0)
    with pytest.raises(StoreUnavailable):
        arbiter.renew(key, FP_A, now=T0)


def test_release_swallows_store_failures():
    store = FlakyStore(failures=0)
    key = keys_for(store).create_key(now=T0).key
    store.failures = 10
    arbiter = SessionArbiter(store, store_retry_attempts=2, sleep=lambda _: None)

    assert arbiter.release(key, FP_A) == Released()
