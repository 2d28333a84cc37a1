import enum
import re
import uuid
from dataclasses import dataclass
from datetime import datetime

STORAGE_KEY_PREFIX = "activation:"

_UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


class KeyStatus(str, enum.Enum):
    active = "active"
    revoked = "revoked"


@dataclass
class ActiveSession:
    device_fingerprint: str
    started_at: datetime
    last_heartbeat_at: datetime


@dataclass
class ActivationRecord:
    key: str
    created_at: datetime
    status: KeyStatus = KeyStatus.active
    label: str | None = None
    current_session: ActiveSession | None = None
    version: int = 0

    @property
    def revoked(self) -> bool:
        return self.status == KeyStatus.revoked


def storage_key(key: str) -> str:
    return f"{STORAGE_KEY_PREFIX}{key}"


def generate_activation_key(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


def is_valid_activation_key(key: str, prefix: str) -> bool:
    pattern = rf"^{re.escape(prefix)}-{_UUID_PATTERN}$"
    return re.match(pattern, key, flags=re.IGNORECASE) is not None
