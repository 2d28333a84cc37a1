import math
from datetime import datetime, timedelta


def is_stale(last_heartbeat_at: datetime, now: datetime, stale_timeout: timedelta) -> bool:
    return now - last_heartbeat_at > stale_timeout


def seconds_until_stale(last_heartbeat_at: datetime, now: datetime, stale_timeout: timedelta) -> int:
    remaining = stale_timeout - (now - last_heartbeat_at)
    return max(1, math.ceil(remaining.total_seconds()))
