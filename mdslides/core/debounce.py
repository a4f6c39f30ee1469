import logging
import threading
from typing import Any, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Trailing-edge debounce on a single timer.

    Every trigger() cancels the pending call (if any) and restarts the full
    delay, so only the last call inside a quiet window runs.
    """

    def __init__(self, delay_ms: int, callback: Callable[..., Any]):
        self.delay_ms = delay_ms
        self._callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self, *args: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay_ms / 1000.0, self._fire, args=(args,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self, args) -> None:
        with self._lock:
            # A newer trigger() replaced this timer after it started firing
            if self._timer is not threading.current_thread():
                return
            self._timer = None
        try:
            self._callback(*args)
        except Exception as e:
            logger.error(f"Debounced callback failed: {e}", exc_info=True)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class KeyedDebouncer:
    """One Debouncer per key, so bursts on different keys do not cancel each other."""

    def __init__(self, delay_ms: int, callback: Callable[..., Any]):
        self.delay_ms = delay_ms
        self._callback = callback
        self._debouncers: Dict[Hashable, Debouncer] = {}
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return any(d.pending for d in self._debouncers.values())

    @property
    def size(self) -> int:
        """Number of keys with a timer that has not fired yet."""
        with self._lock:
            return len(self._debouncers)

    def trigger(self, key: Hashable, *args: Any) -> None:
        with self._lock:
            debouncer = self._debouncers.get(key)
            if debouncer is None:
                debouncer = Debouncer(self.delay_ms, lambda *a: self._fire(key, *a))
                self._debouncers[key] = debouncer
            # Scheduled under the lock so _fire() cannot drop it in between
            debouncer.trigger(*args)

    def _fire(self, key: Hashable, *args: Any) -> None:
        with self._lock:
            debouncer = self._debouncers.get(key)
            if debouncer is not None and not debouncer.pending:
                del self._debouncers[key]
        self._callback(*args)

    def cancel(self) -> None:
        with self._lock:
            debouncers = list(self._debouncers.values())
            self._debouncers.clear()
        for debouncer in debouncers:
            debouncer.cancel()
