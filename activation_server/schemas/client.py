from pydantic import BaseModel


class SessionRequest(BaseModel):
    key: str
    device_fingerprint: str


class SuccessResponse(BaseModel):
    success: bool = True


class HeartbeatResponse(BaseModel):
    success: bool = True
    next_heartbeat_seconds: int


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    retry_after_seconds: int | None = None
