"""Continuation lease that lets capture keep running while backgrounded."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ContinuationLease:
    """A revocable, optionally time-bounded grant to keep capturing.

    The host revokes the lease by calling ``expire()`` (for example from a
    SIGTERM handler) or by letting ``max_seconds`` run out. The holder's
    expiry callback fires at most once per acquisition.
    """

    def __init__(self, max_seconds: Optional[float] = None):
        self.max_seconds = max_seconds
        self._on_expired: Optional[Callable[[], None]] = None
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self.is_held = False

    def acquire(self, on_expired: Callable[[], None]) -> None:
        with self._lock:
            if self.is_held:
                raise RuntimeError("Lease already held")
            self._on_expired = on_expired
            self.is_held = True
            if self.max_seconds is not None:
                self._timer = threading.Timer(self.max_seconds, self.expire)
                self._timer.daemon = True
                self._timer.start()
        logger.debug(f"Continuation lease acquired (limit: {self.max_seconds}s)")

    def release(self) -> None:
        with self._lock:
            if not self.is_held:
                return
            self._cancel_timer()
            self._on_expired = None
            self.is_held = False
        logger.debug("Continuation lease released")

    def expire(self) -> None:
        """Revoke the lease and notify the holder."""
        with self._lock:
            if not self.is_held:
                return
            callback = self._on_expired
            self._cancel_timer()
            self._on_expired = None
            self.is_held = False

        logger.warning("Continuation lease expired")
        if callback:
            callback()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
