from datetime import datetime

from pydantic import BaseModel, Field


class KeyCreateRequest(BaseModel):
    label: str | None = Field(default=None, max_length=255)


class KeyCreateResponse(BaseModel):
    key: str
    created_at: datetime


class SessionResponse(BaseModel):
    device_fingerprint: str
    started_at: datetime
    last_heartbeat_at: datetime


class SessionWithStalenessResponse(SessionResponse):
    is_stale: bool


class KeySummaryResponse(BaseModel):
    key: str
    status: str
    label: str | None = None
    created_at: datetime
    current_session: SessionWithStalenessResponse | None = None


class KeyListResponse(BaseModel):
    keys: list[KeySummaryResponse]


class KeyResponse(BaseModel):
    key: str
    status: str
    label: str | None = None
    created_at: datetime
    current_session: SessionResponse | None = None


class KeyRevokeResponse(BaseModel):
    success: bool = True
    key: str
    status: str


class AdminErrorResponse(BaseModel):
    error: str
    message: str
