"""Host timer capability used by deferred, delayed, debounced and throttled callbacks."""

import threading
import time
from typing import Any, Callable


class TimerScheduler:
    """Runs callbacks once after a delay on daemon timer threads. Times are in milliseconds."""

    def call_later(self, delay_ms: float, fn: Callable[..., Any], *args: Any) -> threading.Timer:
        """Schedule fn(*args) after delay_ms; the returned handle supports cancel()."""
        timer = threading.Timer(max(0.0, delay_ms) / 1000.0, fn, args=args)
        timer.daemon = True
        timer.start()
        return timer

    def now(self) -> float:
        """Monotonic time in milliseconds."""
        return time.monotonic() * 1000.0
