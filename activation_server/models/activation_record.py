from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from activation_server.db.base import Base
from activation_server.records import KeyStatus


class ActivationRecordRow(Base):
    __tablename__ = "activation_records"

    storage_key: Mapped[str] = mapped_column(String(96), primary_key=True)
    key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[KeyStatus] = mapped_column(Enum(KeyStatus), nullable=False, default=KeyStatus.active)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    session_fingerprint: Mapped[str | None] = mapped_column(Text, nullable=True)
    session_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    session_last_heartbeat_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
