from activation_server.config import Settings
from activation_server.db import Base, build_engine, build_sessionmaker
from activation_server.store.base import (
    RecordExists,
    RecordNotFound,
    RecordStore,
    StoreError,
    StoreUnavailable,
    WriteConflict,
)
from activation_server.store.memory import MemoryRecordStore
from activation_server.store.sql import SqlRecordStore


def build_store(settings: Settings) -> RecordStore:
    if settings.store_backend == "memory":
        return MemoryRecordStore(page_size=settings.store_page_size)
    if settings.store_backend == "sql":
        engine = build_engine(settings.database_url)
        if settings.database_url.startswith("sqlite"):
            Base.metadata.create_all(engine)
        return SqlRecordStore(build_sessionmaker(engine), page_size=settings.store_page_size)
    raise ValueError(f"Unknown store backend: {settings.store_backend}")


__all__ = [
    "MemoryRecordStore",
    "RecordExists",
    "RecordNotFound",
    "RecordStore",
    "SqlRecordStore",
    "StoreError",
    "StoreUnavailable",
    "WriteConflict",
    "build_store",
]
