import hmac
from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from activation_server.api.errors import AdminApiError
from activation_server.config import Settings, get_settings
from activation_server.services.arbitration import SessionArbiter
from activation_server.services.keys import KeyAdministration
from activation_server.store import RecordStore, build_store

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def _default_store() -> RecordStore:
    return build_store(get_settings())


def get_store() -> RecordStore:
    return _default_store()


def get_arbiter(
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> SessionArbiter:
    return SessionArbiter.from_settings(store, settings)


def get_key_administration(
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> KeyAdministration:
    return KeyAdministration.from_settings(store, settings)


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.admin_secret:
        raise AdminApiError(401, "unauthorized", "Admin access is not configured")
    if not credentials or credentials.scheme.lower() != "bearer":
        raise AdminApiError(401, "unauthorized", "Missing bearer token")
    if not hmac.compare_digest(credentials.credentials.encode("utf-8"), settings.admin_secret.encode("utf-8")):
        raise AdminApiError(401, "unauthorized", "Admin token invalid")
