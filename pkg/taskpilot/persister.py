"""
Debounced persister: coalesces bursts of document changes into one save.

Each schedule() merges its partial document into the pending batch
(latest value per top-level key wins) and restarts the quiet-period timer.
When the timer fires the whole batch is handed to save_fn in one call.

Failures never reach the caller that scheduled the change. They are
logged, passed to on_error, and the failed keys go back into the pending
batch so the next save carries them again.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 1000


class DebouncedPersister:
    """Timer-based coalescing of partial saves."""

    def __init__(
        self,
        save_fn: Callable[[Dict[str, Any]], None],
        delay_ms: int = DEFAULT_DELAY_MS,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.save_fn = save_fn
        self.delay = max(delay_ms, 0) / 1000.0
        self.on_error = on_error

        self._pending: Dict[str, Any] = {}
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        # Held for the duration of save_fn: one write in flight at a time
        self._write_lock = threading.Lock()

    @property
    def pending(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._pending)

    def schedule(self, partial: Dict[str, Any]) -> None:
        """Queue a partial document and restart the quiet-period timer."""
        with self._lock:
            self._pending.update(partial)
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Save the pending batch now. Returns False if the save failed."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
        return self._fire()

    def cancel(self) -> None:
        """Stop the timer and drop anything not yet saved."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
            dropped = sorted(self._pending)
            self._pending = {}
        if dropped:
            logger.info(f"Discarded unsaved changes to {dropped}")

    def close(self) -> bool:
        return self.flush()

    def _fire(self) -> bool:
        with self._write_lock:
            with self._lock:
                batch = self._pending
                self._pending = {}
                self._timer = None
            if not batch:
                return True

            try:
                self.save_fn(batch)
            except Exception as e:
                logger.error(f"Failed to persist {sorted(batch)}: {e}")
                with self._lock:
                    # Newer changes scheduled during the failed write take precedence
                    restored = dict(batch)
                    restored.update(self._pending)
                    self._pending = restored
                if self.on_error:
                    try:
                        self.on_error(e)
                    except Exception as callback_error:
                        logger.error(f"on_error callback failed: {callback_error}")
                return False

            logger.debug(f"Persisted {sorted(batch)}")
            return True
