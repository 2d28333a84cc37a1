import logging
import time
from collections.abc import Callable
from typing import TypeVar

from activation_server.store import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_store_retry(
    operation: Callable[[], T],
    attempts: int,
    backoff_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    delay = backoff_seconds
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except StoreUnavailable:
            if attempt >= attempts:
                raise
            logger.warning("Record store unavailable (attempt %s/%s), retrying in %.2fs", attempt, attempts, delay)
            sleep(delay)
            delay *= 2
    raise StoreUnavailable("Record store unavailable")
