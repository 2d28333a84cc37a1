"""Background session renewal for a protected application process.

The service validates the activation once at startup, then renews the session
on its own thread every ``next_heartbeat_seconds`` reported by the server. A
failed beat is logged and retried on the next tick. Only a sustained run of
``session_expired`` answers (or a revoked / unknown key) declares the session
lost. On shutdown the session is released with a short, bounded request.
"""

import atexit
import logging
import signal
import threading
from collections.abc import Callable

from activation_server.client.api import ActivationApiError, ActivationClient, ActivationResult
from activation_server.client.config import ClientSettings
from activation_server.client.fingerprint import compute_device_fingerprint

logger = logging.getLogger(__name__)

TERMINAL_ERRORS = {"revoked", "invalid_key"}


class ActivationRejected(Exception):
    def __init__(self, result: ActivationResult) -> None:
        super().__init__(result.message or result.error or "Activation rejected")
        self.result = result


class HeartbeatService:
    def __init__(
        self,
        client: ActivationClient,
        interval_seconds: float = 300,
        max_consecutive_expired: int = 3,
        on_session_lost: Callable[[ActivationResult], None] | None = None,
    ) -> None:
        self.client = client
        self.interval_seconds = interval_seconds
        self.max_consecutive_expired = max_consecutive_expired
        self.on_session_lost = on_session_lost
        self.consecutive_expired = 0
        self.session_lost = False
        self.next_delay = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._release_lock = threading.Lock()
        self._released = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="activation-heartbeat", daemon=True)
        self._thread.start()
        logger.info("Heartbeat started (interval %ss)", self.interval_seconds)

    def stop(self, join_timeout: float = 5.0) -> None:
        """Stop beating and release the session. Safe to call more than once."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(join_timeout)
        with self._release_lock:
            if self._released:
                return
            self._released = True
        result = self.client.deactivate()
        if result.success:
            logger.info("Session released")

    def beat(self) -> ActivationResult | None:
        try:
            result = self.client.heartbeat()
        except ActivationApiError as exc:
            logger.warning("Heartbeat failed, retrying next tick: %s", exc)
            return None

        if result.success:
            self.consecutive_expired = 0
            self.next_delay = result.next_heartbeat_seconds or self.interval_seconds
            return result

        if result.error == "session_expired":
            self.consecutive_expired += 1
            logger.warning(
                "Heartbeat rejected: session expired (%s/%s)",
                self.consecutive_expired,
                self.max_consecutive_expired,
            )
            if self.consecutive_expired >= self.max_consecutive_expired:
                self._lose_session(result)
        elif result.error in TERMINAL_ERRORS:
            self._lose_session(result)
        else:
            logger.warning("Heartbeat rejected: %s", result.error)
        return result

    def _lose_session(self, result: ActivationResult) -> None:
        if self.session_lost:
            return
        self.session_lost = True
        self._stop_event.set()
        logger.error("Activation session lost: %s", result.error)
        if self.on_session_lost is not None:
            self.on_session_lost(result)

    def _run(self) -> None:
        while not self._stop_event.wait(self.next_delay):
            try:
                self.beat()
            except Exception:
                logger.exception("Heartbeat tick failed")


def ensure_activated(client: ActivationClient) -> ActivationResult:
    """Validate the activation at startup. Raises ``ActivationRejected`` to halt startup."""
    result = client.validate()
    if not result.success:
        if result.retry_after_seconds:
            logger.error(
                "Activation rejected: %s (retry in %ss)", result.error, result.retry_after_seconds
            )
        else:
            logger.error("Activation rejected: %s", result.error)
        raise ActivationRejected(result)
    return result


def install_shutdown_hooks(service: HeartbeatService) -> None:
    """Release the session on interpreter exit and on SIGTERM / SIGINT.

    Must be called from the main thread.
    """
    atexit.register(service.stop)

    for signum in (signal.SIGTERM, signal.SIGINT):
        previous = signal.getsignal(signum)

        def handler(received, frame, previous=previous):
            service.stop()
            if callable(previous):
                previous(received, frame)
            elif previous == signal.SIG_DFL:
                raise SystemExit(128 + received)

        signal.signal(signum, handler)


def start_heartbeat(
    settings: ClientSettings,
    on_session_lost: Callable[[ActivationResult], None] | None = None,
) -> HeartbeatService:
    fingerprint = compute_device_fingerprint(settings.host_machine_id, settings.activation_salt)
    client = ActivationClient(
        settings.api_url,
        settings.activation_key,
        fingerprint,
        timeout_seconds=settings.api_timeout_seconds,
    )
    ensure_activated(client)
    service = HeartbeatService(
        client,
        interval_seconds=settings.heartbeat_interval_seconds,
        max_consecutive_expired=settings.max_consecutive_expired,
        on_session_lost=on_session_lost,
    )
    service.start()
    return service
