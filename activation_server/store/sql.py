import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from activation_server.models import ActivationRecordRow
from activation_server.records import ActivationRecord, ActiveSession, storage_key
from activation_server.store.base import (
    RecordExists,
    RecordNotFound,
    RecordStore,
    StoreUnavailable,
    WriteConflict,
)
from activation_server.utils.time import ensure_utc

logger = logging.getLogger(__name__)


def row_to_record(row: ActivationRecordRow) -> ActivationRecord:
    session = None
    if row.session_fingerprint is not None:
        session = ActiveSession(
            device_fingerprint=row.session_fingerprint,
            started_at=ensure_utc(row.session_started_at),
            last_heartbeat_at=ensure_utc(row.session_last_heartbeat_at),
        )
    return ActivationRecord(
        key=row.key,
        created_at=ensure_utc(row.created_at),
        status=row.status,
        label=row.label,
        current_session=session,
        version=row.version,
    )


def session_columns(record: ActivationRecord) -> dict:
    session = record.current_session
    return {
        "session_fingerprint": session.device_fingerprint if session else None,
        "session_started_at": session.started_at if session else None,
        "session_last_heartbeat_at": session.last_heartbeat_at if session else None,
    }


class SqlRecordStore(RecordStore):
    def __init__(self, session_factory: sessionmaker, page_size: int = 100) -> None:
        self.session_factory = session_factory
        self.page_size = page_size

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.session_factory.begin() as db:
                yield db
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Record store request failed: %s", exc)
            raise StoreUnavailable("Record store unavailable") from exc

    def get(self, key: str) -> ActivationRecord | None:
        with self._session() as db:
            row = db.get(ActivationRecordRow, storage_key(key))
            return row_to_record(row) if row else None

    def create(self, record: ActivationRecord) -> ActivationRecord:
        row = ActivationRecordRow(
            storage_key=storage_key(record.key),
            key=record.key,
            status=record.status,
            label=record.label,
            created_at=record.created_at,
            version=1,
            **session_columns(record),
        )
        try:
            with self._session() as db:
                db.add(row)
                db.flush()
                return row_to_record(row)
        except IntegrityError as exc:
            raise RecordExists(record.key) from exc

    def put(self, record: ActivationRecord) -> ActivationRecord:
        name = storage_key(record.key)
        with self._session() as db:
            result = db.execute(
                update(ActivationRecordRow)
                .where(
                    ActivationRecordRow.storage_key == name,
                    ActivationRecordRow.version == record.version,
                )
                .values(
                    status=record.status,
                    label=record.label,
                    version=record.version + 1,
                    **session_columns(record),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                exists = db.execute(
                    select(ActivationRecordRow.storage_key).where(ActivationRecordRow.storage_key == name)
                ).first()
                if exists is None:
                    raise RecordNotFound(record.key)
                raise WriteConflict(record.key)

        stored = ActivationRecord(
            key=record.key,
            created_at=record.created_at,
            status=record.status,
            label=record.label,
            current_session=record.current_session,
            version=record.version + 1,
        )
        return stored

    def list(self) -> Iterator[ActivationRecord]:
        cursor: tuple | None = None
        while True:
            query = select(ActivationRecordRow).order_by(
                ActivationRecordRow.created_at.asc(), ActivationRecordRow.storage_key.asc()
            )
            if cursor is not None:
                created_at, name = cursor
                query = query.where(
                    or_(
                        ActivationRecordRow.created_at > created_at,
                        and_(
                            ActivationRecordRow.created_at == created_at,
                            ActivationRecordRow.storage_key > name,
                        ),
                    )
                )
            with self._session() as db:
                rows = db.scalars(query.limit(self.page_size)).all()
                page = [row_to_record(row) for row in rows]
                if rows:
                    cursor = (rows[-1].created_at, rows[-1].storage_key)
            yield from page
            if len(page) < self.page_size:
                return
