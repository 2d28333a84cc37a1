from abc import ABC, abstractmethod
from collections.abc import Iterator

from activation_server.records import ActivationRecord


class StoreError(Exception):
    pass


class StoreUnavailable(StoreError):
    pass


class WriteConflict(StoreError):
    pass


class RecordExists(StoreError):
    pass


class RecordNotFound(StoreError):
    pass


class RecordStore(ABC):
    """Key-value store of activation records.

    Writes are conditional on the ``version`` the caller read. A record whose
    stored version moved on since it was fetched is rejected with
    ``WriteConflict`` so callers can re-run their read-decide-write cycle.
    """

    @abstractmethod
    def get(self, key: str) -> ActivationRecord | None:
        ...

    @abstractmethod
    def create(self, record: ActivationRecord) -> ActivationRecord:
        """Insert a new record. Raises ``RecordExists`` if the key is taken."""

    @abstractmethod
    def put(self, record: ActivationRecord) -> ActivationRecord:
        """Overwrite a record if its stored version still equals ``record.version``."""

    @abstractmethod
    def list(self) -> Iterator[ActivationRecord]:
        """Yield every record ordered by creation time, then key."""
