"""Periodic tick scheduling for capture duration tracking."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker(ABC):
    """Calls a callback at a fixed interval until cancelled."""

    def __init__(self, interval: float = 1.0):
        self.interval = interval

    @abstractmethod
    def start(self, callback: Callable[[], None]) -> None:
        """Begin ticking."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop ticking; safe to call from within the callback."""
        pass


class ThreadTicker(Ticker):
    """Ticker driven by a daemon thread."""

    def __init__(self, interval: float = 1.0, name: str = "CaptureTicker"):
        super().__init__(interval)
        self.name = name
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(self, callback: Callable[[], None]) -> None:
        if self._thread and self._thread.is_alive():
            logger.warning("Ticker already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, args=(callback,), daemon=True)
        self._thread.name = self.name
        self._thread.start()
        logger.debug(f"Ticker started with interval {self.interval}s")

    def _run(self, callback: Callable[[], None]) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                callback()
            except Exception as e:
                logger.error(f"Tick callback failed: {e}", exc_info=True)

    def cancel(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Ticker thread did not stop cleanly")
        self._thread = None
