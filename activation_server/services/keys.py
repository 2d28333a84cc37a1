import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta

from activation_server.config import Settings
from activation_server.records import ActivationRecord, KeyStatus, generate_activation_key
from activation_server.services.retry import call_with_store_retry
from activation_server.services.staleness import is_stale
from activation_server.store import RecordExists, RecordStore, StoreUnavailable, WriteConflict
from activation_server.utils.time import utcnow

logger = logging.getLogger(__name__)

KEY_GENERATION_ATTEMPTS = 3


class KeyNotFound(Exception):
    pass


@dataclass(frozen=True)
class KeySummary:
    record: ActivationRecord
    is_stale: bool | None


class KeyAdministration:
    def __init__(
        self,
        store: RecordStore,
        stale_timeout: timedelta = timedelta(minutes=10),
        key_prefix: str = "NGAJ",
        max_conflict_retries: int = 5,
        store_retry_attempts: int = 3,
        store_retry_backoff_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.stale_timeout = stale_timeout
        self.key_prefix = key_prefix
        self.max_conflict_retries = max_conflict_retries
        self.store_retry_attempts = store_retry_attempts
        self.store_retry_backoff_seconds = store_retry_backoff_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls, store: RecordStore, settings: Settings) -> "KeyAdministration":
        return cls(
            store,
            stale_timeout=timedelta(seconds=settings.stale_timeout_seconds),
            key_prefix=settings.activation_key_prefix,
            max_conflict_retries=settings.arbitration_max_conflict_retries,
            store_retry_attempts=settings.store_retry_attempts,
            store_retry_backoff_seconds=settings.store_retry_backoff_seconds,
        )

    def create_key(self, label: str | None = None, now: datetime | None = None) -> ActivationRecord:
        now = now or utcnow()
        label = label.strip() if label else None
        for _ in range(KEY_GENERATION_ATTEMPTS):
            record = ActivationRecord(
                key=generate_activation_key(self.key_prefix),
                created_at=now,
                status=KeyStatus.active,
                label=label or None,
            )
            try:
                created = self._with_retry(lambda: self.store.create(record))
            except RecordExists:
                logger.warning("Generated activation key collided, regenerating")
                continue
            logger.info("Activation key created: %s", created.key)
            return created
        raise StoreUnavailable("Could not allocate a unique activation key")

    def list_keys(self, now: datetime | None = None) -> Iterator[KeySummary]:
        now = now or utcnow()
        for record in self._with_retry(lambda: list(self.store.list())):
            yield KeySummary(record=record, is_stale=self.session_is_stale(record, now))

    def get_key(self, key: str) -> ActivationRecord:
        record = self._with_retry(lambda: self.store.get(key))
        if record is None:
            raise KeyNotFound(key)
        return record

    def revoke_key(self, key: str) -> ActivationRecord:
        for _ in range(self.max_conflict_retries):
            record = self.get_key(key)
            if record.revoked:
                return record
            record.status = KeyStatus.revoked
            try:
                revoked = self._with_retry(lambda: self.store.put(record))
            except WriteConflict:
                continue
            logger.info("Activation key revoked: %s", key)
            return revoked
        raise StoreUnavailable(f"Too much write contention on {key}")

    def session_is_stale(self, record: ActivationRecord, now: datetime) -> bool | None:
        if record.current_session is None:
            return None
        return is_stale(record.current_session.last_heartbeat_at, now, self.stale_timeout)

    def _with_retry(self, operation: Callable):
        return call_with_store_retry(
            operation,
            attempts=self.store_retry_attempts,
            backoff_seconds=self.store_retry_backoff_seconds,
            sleep=self._sleep,
        )
