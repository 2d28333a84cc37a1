from activation_server.client.api import ActivationApiError, ActivationClient, ActivationResult
from activation_server.client.config import ClientSettings
from activation_server.client.fingerprint import compute_device_fingerprint, is_valid_device_fingerprint
from activation_server.client.heartbeat import (
    ActivationRejected,
    HeartbeatService,
    ensure_activated,
    install_shutdown_hooks,
    start_heartbeat,
)

__all__ = [
    "ActivationApiError",
    "ActivationClient",
    "ActivationRejected",
    "ActivationResult",
    "ClientSettings",
    "HeartbeatService",
    "compute_device_fingerprint",
    "ensure_activated",
    "install_shutdown_hooks",
    "is_valid_device_fingerprint",
    "start_heartbeat",
]
