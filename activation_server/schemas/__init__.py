from activation_server.schemas.admin import (
    AdminErrorResponse,
    KeyCreateRequest,
    KeyCreateResponse,
    KeyListResponse,
    KeyResponse,
    KeyRevokeResponse,
    KeySummaryResponse,
    SessionResponse,
    SessionWithStalenessResponse,
)
from activation_server.schemas.client import ErrorResponse, HeartbeatResponse, SessionRequest, SuccessResponse

__all__ = [
    "AdminErrorResponse",
    "ErrorResponse",
    "HeartbeatResponse",
    "KeyCreateRequest",
    "KeyCreateResponse",
    "KeyListResponse",
    "KeyResponse",
    "KeyRevokeResponse",
    "KeySummaryResponse",
    "SessionRequest",
    "SessionResponse",
    "SessionWithStalenessResponse",
    "SuccessResponse",
]
