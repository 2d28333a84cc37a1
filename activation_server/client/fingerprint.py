import hashlib
import re

FINGERPRINT_PATTERN = re.compile(r"^[0-9a-f]{64}$", re.IGNORECASE)


def compute_device_fingerprint(machine_id: str, salt: str) -> str:
    """Derive the device fingerprint sent with every activation call.

    The result is stable across restarts as long as the host machine id and the
    per-installation salt do not change. The server only compares it for equality.
    """
    raw = f"{machine_id.strip()}{salt}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def is_valid_device_fingerprint(fingerprint: str) -> bool:
    return FINGERPRINT_PATTERN.match(fingerprint) is not None
