from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from activation_server.api.deps import get_arbiter
from activation_server.schemas import ErrorResponse, HeartbeatResponse, SessionRequest, SuccessResponse
from activation_server.services.arbitration import Rejected, RejectionReason, SessionArbiter

router = APIRouter(prefix="/api/v1", tags=["activation"])

REJECTION_STATUS = {
    RejectionReason.invalid_key: 404,
    RejectionReason.revoked: 403,
    RejectionReason.concurrent_session: 409,
    RejectionReason.session_expired: 410,
}

rejection_responses = {
    404: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def rejection_response(outcome: Rejected) -> JSONResponse:
    body = ErrorResponse(
        error=outcome.reason.value,
        message=outcome.message,
        retry_after_seconds=outcome.retry_after_seconds,
    )
    headers = None
    if outcome.retry_after_seconds is not None:
        headers = {"Retry-After": str(outcome.retry_after_seconds)}
    return JSONResponse(
        status_code=REJECTION_STATUS[outcome.reason],
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def acquire(payload: SessionRequest, arbiter: SessionArbiter, action: str):
    outcome = arbiter.try_acquire_or_renew(
        payload.key.strip(), payload.device_fingerprint, action=action
    )
    if isinstance(outcome, Rejected):
        return rejection_response(outcome)
    return SuccessResponse()


@router.post("/activate", response_model=SuccessResponse, responses=rejection_responses)
def activate(payload: SessionRequest, arbiter: SessionArbiter = Depends(get_arbiter)):
    return acquire(payload, arbiter, "activate")


@router.post("/validate", response_model=SuccessResponse, responses=rejection_responses)
def validate(payload: SessionRequest, arbiter: SessionArbiter = Depends(get_arbiter)):
    return acquire(payload, arbiter, "validate")


@router.post(
    "/heartbeat",
    response_model=HeartbeatResponse,
    responses={**rejection_responses, 410: {"model": ErrorResponse}},
)
def heartbeat(payload: SessionRequest, arbiter: SessionArbiter = Depends(get_arbiter)):
    outcome = arbiter.renew(payload.key.strip(), payload.device_fingerprint)
    if isinstance(outcome, Rejected):
        return rejection_response(outcome)
    return HeartbeatResponse(next_heartbeat_seconds=outcome.next_interval_seconds)


@router.post("/deactivate", response_model=SuccessResponse)
def deactivate(payload: SessionRequest, arbiter: SessionArbiter = Depends(get_arbiter)) -> SuccessResponse:
    arbiter.release(payload.key.strip(), payload.device_fingerprint)
    return SuccessResponse()
