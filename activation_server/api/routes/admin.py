from fastapi import APIRouter, Depends

from activation_server.api.deps import get_key_administration, require_admin
from activation_server.api.errors import AdminApiError
from activation_server.records import ActivationRecord
from activation_server.schemas import (
    KeyCreateRequest,
    KeyCreateResponse,
    KeyListResponse,
    KeyResponse,
    KeyRevokeResponse,
    KeySummaryResponse,
    SessionResponse,
    SessionWithStalenessResponse,
)
from activation_server.services.keys import KeyAdministration, KeyNotFound, KeySummary

router = APIRouter(prefix="/api/v1/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def get_record_or_404(admin: KeyAdministration, key: str) -> ActivationRecord:
    try:
        return admin.get_key(key)
    except KeyNotFound as exc:
        raise AdminApiError(404, "not_found", "Activation key not found") from exc


def serialize_record(record: ActivationRecord) -> KeyResponse:
    session = record.current_session
    return KeyResponse(
        key=record.key,
        status=record.status.value,
        label=record.label,
        created_at=record.created_at,
        current_session=(
            SessionResponse(
                device_fingerprint=session.device_fingerprint,
                started_at=session.started_at,
                last_heartbeat_at=session.last_heartbeat_at,
            )
            if session
            else None
        ),
    )


def serialize_summary(summary: KeySummary) -> KeySummaryResponse:
    record = summary.record
    session = record.current_session
    return KeySummaryResponse(
        key=record.key,
        status=record.status.value,
        label=record.label,
        created_at=record.created_at,
        current_session=(
            SessionWithStalenessResponse(
                device_fingerprint=session.device_fingerprint,
                started_at=session.started_at,
                last_heartbeat_at=session.last_heartbeat_at,
                is_stale=bool(summary.is_stale),
            )
            if session
            else None
        ),
    )


@router.post("/keys", response_model=KeyCreateResponse, status_code=201)
def create_key(
    payload: KeyCreateRequest | None = None,
    admin: KeyAdministration = Depends(get_key_administration),
) -> KeyCreateResponse:
    record = admin.create_key(label=payload.label if payload else None)
    return KeyCreateResponse(key=record.key, created_at=record.created_at)


@router.get("/keys", response_model=KeyListResponse)
def list_keys(admin: KeyAdministration = Depends(get_key_administration)) -> KeyListResponse:
    return KeyListResponse(keys=[serialize_summary(summary) for summary in admin.list_keys()])


@router.get("/keys/{key}", response_model=KeyResponse)
def show_key(key: str, admin: KeyAdministration = Depends(get_key_administration)) -> KeyResponse:
    return serialize_record(get_record_or_404(admin, key))


@router.delete("/keys/{key}", response_model=KeyRevokeResponse)
def revoke_key(key: str, admin: KeyAdministration = Depends(get_key_administration)) -> KeyRevokeResponse:
    try:
        record = admin.revoke_key(key)
    except KeyNotFound as exc:
        raise AdminApiError(404, "not_found", "Activation key not found") from exc
    return KeyRevokeResponse(key=record.key, status=record.status.value)
