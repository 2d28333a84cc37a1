import copy
import threading
from collections.abc import Iterator

from activation_server.records import ActivationRecord, storage_key
from activation_server.store.base import RecordExists, RecordNotFound, RecordStore, WriteConflict


class MemoryRecordStore(RecordStore):
    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self._lock = threading.Lock()
        self._records: dict[str, ActivationRecord] = {}

    def get(self, key: str) -> ActivationRecord | None:
        with self._lock:
            record = self._records.get(storage_key(key))
            return copy.deepcopy(record) if record else None

    def create(self, record: ActivationRecord) -> ActivationRecord:
        with self._lock:
            name = storage_key(record.key)
            if name in self._records:
                raise RecordExists(record.key)
            stored = copy.deepcopy(record)
            stored.version = 1
            self._records[name] = stored
            return copy.deepcopy(stored)

    def put(self, record: ActivationRecord) -> ActivationRecord:
        with self._lock:
            name = storage_key(record.key)
            current = self._records.get(name)
            if current is None:
                raise RecordNotFound(record.key)
            if current.version != record.version:
                raise WriteConflict(record.key)
            stored = copy.deepcopy(record)
            stored.version = current.version + 1
            self._records[name] = stored
            return copy.deepcopy(stored)

    def list(self) -> Iterator[ActivationRecord]:
        with self._lock:
            names = sorted(self._records, key=lambda name: (self._records[name].created_at, name))
        for start in range(0, len(names), self.page_size):
            with self._lock:
                page = [self._records.get(name) for name in names[start : start + self.page_size]]
            for record in page:
                if record is not None:
                    yield copy.deepcopy(record)
