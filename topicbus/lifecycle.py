"""
Callback wrappers that reshape when a subscriber runs (defer, delay, debounce,
throttle) and the stateful predicate behind ignore_duplicates.

Each wrapper closes over the callback it was given and is itself a callback,
so wrappers compose in the order they are applied. Pending timers can be
dropped with cancel().
"""

import copy
import threading
from typing import Any, Callable, Dict, Optional

Callback = Callable[[Any], Any]
Predicate = Callable[[Any], bool]
ErrorHandler = Callable[[Exception], Any]

_NOTHING = object()


class ScheduledCallback:
    """Base for wrappers that hand calls to the scheduler instead of running inline."""

    def __init__(self, fn: Callback, scheduler: Any, on_error: Optional[ErrorHandler] = None) -> None:
        self._fn = fn
        self._scheduler = scheduler
        self._on_error = on_error
        self._lock = threading.Lock()

    @property
    def wrapped(self) -> Callback:
        return self._fn

    def __call__(self, data: Any) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        """Drop any invocation that is scheduled but has not run yet."""
        raise NotImplementedError

    def _run(self, data: Any) -> None:
        # timer threads have no publish call to raise into
        try:
            self._fn(data)
        except Exception as e:
            if self._on_error is None:
                raise
            self._on_error(e)


class Delayed(ScheduledCallback):
    """Runs every call once, delay_ms after it was made."""

    def __init__(
        self, fn: Callback, delay_ms: float, scheduler: Any, on_error: Optional[ErrorHandler] = None
    ) -> None:
        super().__init__(fn, scheduler, on_error)
        self._delay_ms = delay_ms
        self._pending: Dict[object, Any] = {}

    @property
    def delay_ms(self) -> float:
        return self._delay_ms

    def __call__(self, data: Any) -> None:
        token = object()
        with self._lock:
            self._pending[token] = self._scheduler.call_later(self._delay_ms, self._fire, token, data)

    def _fire(self, token: object, data: Any) -> None:
        with self._lock:
            if self._pending.pop(token, None) is None:
                return
        self._run(data)

    def cancel(self) -> None:
        with self._lock:
            handles = list(self._pending.values())
            self._pending.clear()
        for handle in handles:
            handle.cancel()


class Deferred(Delayed):
    """Runs every call as soon as the scheduler allows, outside the publish call."""

    def __init__(self, fn: Callback, scheduler: Any, on_error: Optional[ErrorHandler] = None) -> None:
        super().__init__(fn, 0, scheduler, on_error)


class Debounced(ScheduledCallback):
    """Collapses a burst of calls into one trailing call with the last data, wait_ms after the burst."""

    def __init__(
        self, fn: Callback, wait_ms: float, scheduler: Any, on_error: Optional[ErrorHandler] = None
    ) -> None:
        super().__init__(fn, scheduler, on_error)
        self._wait_ms = wait_ms
        self._token: Optional[object] = None
        self._handle: Any = None

    def __call__(self, data: Any) -> None:
        token = object()
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._token = token
            self._handle = self._scheduler.call_later(self._wait_ms, self._fire, token, data)

    def _fire(self, token: object, data: Any) -> None:
        with self._lock:
            if token is not self._token:
                return
            self._token = None
            self._handle = None
        self._run(data)

    def cancel(self) -> None:
        with self._lock:
            handle = self._handle
            self._token = None
            self._handle = None
        if handle is not None:
            handle.cancel()


class Throttled(ScheduledCallback):
    """
    At most one call per window_ms. The first call of a window runs inline;
    calls made inside the window are coalesced into a single trailing call
    with the last data seen, run when the window closes.
    """

    def __init__(
        self, fn: Callback, window_ms: float, scheduler: Any, on_error: Optional[ErrorHandler] = None
    ) -> None:
        super().__init__(fn, scheduler, on_error)
        self._window_ms = window_ms
        self._last_run: Optional[float] = None
        self._latest: Any = None
        self._token: Optional[object] = None
        self._handle: Any = None

    def __call__(self, data: Any) -> None:
        with self._lock:
            now = self._scheduler.now()
            if self._last_run is None or now - self._last_run >= self._window_ms:
                if self._handle is not None:
                    self._handle.cancel()
                self._token = None
                self._handle = None
                self._last_run = now
                run_now = True
            else:
                self._latest = data
                run_now = False
                if self._handle is None:
                    token = object()
                    self._token = token
                    remaining = self._window_ms - (now - self._last_run)
                    self._handle = self._scheduler.call_later(remaining, self._fire, token)
        if run_now:
            self._fn(data)

    def _fire(self, token: object) -> None:
        with self._lock:
            if token is not self._token:
                return
            data = self._latest
            self._latest = None
            self._token = None
            self._handle = None
            self._last_run = self._scheduler.now()
        self._run(data)

    def cancel(self) -> None:
        with self._lock:
            handle = self._handle
            self._latest = None
            self._token = None
            self._handle = None
        if handle is not None:
            handle.cancel()


def _state(value: Any) -> Optional[Dict[str, Any]]:
    """Instance attributes of a plain object (__dict__ and __slots__), or None."""
    state: Dict[str, Any] = {}
    for cls in type(value).__mro__:
        slots = getattr(cls, "__slots__", ())
        for name in (slots,) if isinstance(slots, str) else slots:
            if name not in ("__dict__", "__weakref__") and hasattr(value, name):
                state.setdefault(name, getattr(value, name))
    try:
        state.update(vars(value))
    except TypeError:
        if not state:
            return None
    return state


def deep_equal(a: Any, b: Any, _seen: Optional[set] = None) -> bool:
    """
    Structural equality. Containers compare element-wise; objects that keep
    object's identity __eq__ compare by type and attributes.
    """
    if a is b:
        return True
    if type(a) is not type(b):
        return bool(a == b)
    if _seen is None:
        _seen = set()
    pair = (id(a), id(b))
    if pair in _seen:
        return True
    if isinstance(a, dict):
        _seen.add(pair)
        return a.keys() == b.keys() and all(deep_equal(a[key], b[key], _seen) for key in a)
    if isinstance(a, (list, tuple)):
        _seen.add(pair)
        return len(a) == len(b) and all(deep_equal(x, y, _seen) for x, y in zip(a, b))
    if type(a).__eq__ is not object.__eq__:
        return bool(a == b)
    state_a, state_b = _state(a), _state(b)
    if state_a is None or state_b is None:
        return False
    _seen.add(pair)
    return state_a.keys() == state_b.keys() and all(
        deep_equal(state_a[name], state_b[name], _seen) for name in state_a
    )


def snapshot(value: Any) -> Any:
    """Independent copy of value; shallow when it cannot be deep-copied, the value itself as a last resort."""
    try:
        return copy.deepcopy(value)
    except Exception:
        pass
    try:
        return copy.copy(value)
    except Exception:
        return value


class DistinctPredicate:
    """
    Constraint that fails when data equals the value it saw last.

    Strings compare by value; other values compare structurally and a copy
    is kept so later mutation of the caller's object does not leak in.
    """

    def __init__(self) -> None:
        self._previous: Any = _NOTHING

    def __call__(self, data: Any) -> bool:
        if isinstance(data, str):
            equal = data == self._previous
            self._previous = data
        else:
            equal = self._previous is not _NOTHING and deep_equal(data, self._previous)
            self._previous = snapshot(data)
        return not equal
