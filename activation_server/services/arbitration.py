"""Session arbitration: decides which device may hold the session of a key.

Every mutation is a read-decide-write cycle against the record store's
conditional ``put``. When another writer got in between the read and the
write, the store answers ``WriteConflict`` and the cycle is re-run on fresh
state, so two devices racing for the same key can never both be accepted.
"""

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from activation_server.config import Settings
from activation_server.records import ActivationRecord, ActiveSession, is_valid_activation_key
from activation_server.services.retry import call_with_store_retry
from activation_server.services.staleness import is_stale, seconds_until_stale
from activation_server.store import RecordNotFound, RecordStore, StoreError, StoreUnavailable, WriteConflict
from activation_server.utils.time import utcnow

logger = logging.getLogger(__name__)


class RejectionReason(str, enum.Enum):
    invalid_key = "invalid_key"
    revoked = "revoked"
    concurrent_session = "concurrent_session"
    session_expired = "session_expired"


REJECTION_MESSAGES = {
    RejectionReason.invalid_key: "Activation key not recognized. Please re-check your key.",
    RejectionReason.revoked: "Activation key has been revoked.",
    RejectionReason.concurrent_session: "Activation key is in use on another device.",
    RejectionReason.session_expired: "Session is no longer held by this device. Re-activate to continue.",
}


@dataclass(frozen=True)
class Accepted:
    next_interval_seconds: int | None = None


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    retry_after_seconds: int | None = None

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self.reason]


@dataclass(frozen=True)
class Released:
    cleared: bool = False


Outcome = Accepted | Rejected
Decision = tuple[Outcome, ActivationRecord | None]


def short_fingerprint(fingerprint: str) -> str:
    return fingerprint[:8]


class SessionArbiter:
    def __init__(
        self,
        store: RecordStore,
        stale_timeout: timedelta = timedelta(minutes=10),
        heartbeat_interval: timedelta = timedelta(minutes=5),
        key_prefix: str = "NGAJ",
        max_conflict_retries: int = 5,
        store_retry_attempts: int = 3,
        store_retry_backoff_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.stale_timeout = stale_timeout
        self.heartbeat_interval = heartbeat_interval
        self.key_prefix = key_prefix
        self.max_conflict_retries = max_conflict_retries
        self.store_retry_attempts = store_retry_attempts
        self.store_retry_backoff_seconds = store_retry_backoff_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls, store: RecordStore, settings: Settings) -> "SessionArbiter":
        return cls(
            store,
            stale_timeout=timedelta(seconds=settings.stale_timeout_seconds),
            heartbeat_interval=timedelta(seconds=settings.heartbeat_interval_seconds),
            key_prefix=settings.activation_key_prefix,
            max_conflict_retries=settings.arbitration_max_conflict_retries,
            store_retry_attempts=settings.store_retry_attempts,
            store_retry_backoff_seconds=settings.store_retry_backoff_seconds,
        )

    def try_acquire_or_renew(
        self, key: str, fingerprint: str, now: datetime | None = None, action: str = "acquire"
    ) -> Outcome:
        """Acquire the session of ``key`` for ``fingerprint``, or refresh it if already held.

        Used for both first activation and every startup validation.
        """
        if not is_valid_activation_key(key, self.key_prefix):
            logger.info("%s rejected: malformed key", action)
            return Rejected(RejectionReason.invalid_key)
        now = now or utcnow()

        def decide(record: ActivationRecord | None) -> Decision:
            if record is None:
                return Rejected(RejectionReason.invalid_key), None
            if record.revoked:
                return Rejected(RejectionReason.revoked), None

            session = record.current_session
            same_device = session is not None and session.device_fingerprint == fingerprint
            if session is not None and not same_device:
                if not is_stale(session.last_heartbeat_at, now, self.stale_timeout):
                    retry_after = seconds_until_stale(session.last_heartbeat_at, now, self.stale_timeout)
                    return Rejected(RejectionReason.concurrent_session, retry_after_seconds=retry_after), None
                logger.info(
                    "Reclaiming stale session on %s from device %s",
                    key,
                    short_fingerprint(session.device_fingerprint),
                )

            record.current_session = ActiveSession(
                device_fingerprint=fingerprint,
                started_at=session.started_at if same_device else now,
                last_heartbeat_at=now,
            )
            return Accepted(), record

        outcome = self._transact(key, decide)
        self._log_outcome(action, key, fingerprint, outcome)
        return outcome

    def renew(self, key: str, fingerprint: str, now: datetime | None = None) -> Outcome:
        if not is_valid_activation_key(key, self.key_prefix):
            return Rejected(RejectionReason.invalid_key)
        now = now or utcnow()
        next_interval = int(self.heartbeat_interval.total_seconds())

        def decide(record: ActivationRecord | None) -> Decision:
            if record is None:
                return Rejected(RejectionReason.invalid_key), None
            if record.revoked:
                return Rejected(RejectionReason.revoked), None
            session = record.current_session
            if session is None or session.device_fingerprint != fingerprint:
                return Rejected(RejectionReason.session_expired), None
            session.last_heartbeat_at = now
            return Accepted(next_interval_seconds=next_interval), record

        outcome = self._transact(key, decide)
        self._log_outcome("heartbeat", key, fingerprint, outcome)
        return outcome

    def release(self, key: str, fingerprint: str) -> Released:
        """Clear the session if ``fingerprint`` holds it. Never raises."""
        if not is_valid_activation_key(key, self.key_prefix):
            return Released()

        def decide(record: ActivationRecord | None) -> tuple[Released, ActivationRecord | None]:
            if record is None or record.current_session is None:
                return Released(), None
            if record.current_session.device_fingerprint != fingerprint:
                return Released(), None
            record.current_session = None
            return Released(cleared=True), record

        try:
            result = self._transact(key, decide)
        except StoreError as exc:
            logger.warning("Release of %s by device %s failed: %s", key, short_fingerprint(fingerprint), exc)
            return Released()
        if result.cleared:
            logger.info("Session on %s released by device %s", key, short_fingerprint(fingerprint))
        return result

    def _transact(self, key: str, decide: Callable):
        for attempt in range(1, self.max_conflict_retries + 1):
            record = self._with_retry(lambda: self.store.get(key))
            outcome, updated = decide(record)
            if updated is None:
                return outcome
            try:
                self._with_retry(lambda: self.store.put(updated))
            except (WriteConflict, RecordNotFound):
                logger.debug("Write conflict on %s (attempt %s/%s)", key, attempt, self.max_conflict_retries)
                continue
            return outcome
        raise StoreUnavailable(f"Too much write contention on {key}")

    def _with_retry(self, operation: Callable):
        return call_with_store_retry(
            operation,
            attempts=self.store_retry_attempts,
            backoff_seconds=self.store_retry_backoff_seconds,
            sleep=self._sleep,
        )

    def _log_outcome(self, action: str, key: str, fingerprint: str, outcome: Outcome) -> None:
        if isinstance(outcome, Accepted):
            logger.info("%s accepted for %s by device %s", action, key, short_fingerprint(fingerprint))
        else:
            logger.info(
                "%s rejected for %s by device %s: %s",
                action,
                key,
                short_fingerprint(fingerprint),
                outcome.reason.value,
            )
