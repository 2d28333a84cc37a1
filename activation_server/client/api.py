import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

KNOWN_ERRORS = {"invalid_key", "revoked", "concurrent_session", "session_expired"}


class ActivationApiError(Exception):
    pass


@dataclass(frozen=True)
class ActivationResult:
    success: bool
    error: str | None = None
    message: str | None = None
    retry_after_seconds: int | None = None
    next_heartbeat_seconds: int | None = None


class ActivationClient:
    def __init__(
        self,
        api_url: str,
        key: str,
        fingerprint: str,
        timeout_seconds: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.key = key
        self.fingerprint = fingerprint
        self.timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    def activate(self) -> ActivationResult:
        return self._post("/api/v1/activate")

    def validate(self) -> ActivationResult:
        return self._post("/api/v1/validate")

    def heartbeat(self) -> ActivationResult:
        return self._post("/api/v1/heartbeat")

    def deactivate(self) -> ActivationResult:
        """Best-effort release of the session. Never raises."""
        try:
            return self._post("/api/v1/deactivate")
        except ActivationApiError as exc:
            logger.warning("Deactivation failed: %s", exc)
            return ActivationResult(success=False, message=str(exc))

    def _post(self, path: str) -> ActivationResult:
        url = f"{self.api_url}{path}"
        body = {"key": self.key, "device_fingerprint": self.fingerprint}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, json=body)
        except httpx.RequestError as exc:
            raise ActivationApiError(f"Activation request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ActivationApiError(f"Unexpected response {response.status_code} from {url}") from exc
        if not isinstance(payload, dict):
            raise ActivationApiError(f"Unexpected response {response.status_code} from {url}")

        if response.status_code == 200 and payload.get("success") is True:
            return ActivationResult(
                success=True,
                next_heartbeat_seconds=payload.get("next_heartbeat_seconds"),
            )
        if payload.get("error") in KNOWN_ERRORS:
            return ActivationResult(
                success=False,
                error=payload["error"],
                message=payload.get("message"),
                retry_after_seconds=payload.get("retry_after_seconds"),
            )
        raise ActivationApiError(f"Unexpected response {response.status_code} from {url}")
