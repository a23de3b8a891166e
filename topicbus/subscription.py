"""Subscription handle: one callback bound to an (exchange, topic pattern) with its delivery rules."""

import functools
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from topicbus.errors import InvalidArgument
from topicbus.lifecycle import (
    Callback,
    Debounced,
    Deferred,
    Delayed,
    DistinctPredicate,
    Predicate,
    ScheduledCallback,
    Throttled,
)

if TYPE_CHECKING:
    from topicbus.bus import Bus

NO_CONTEXT = object()


def _noop() -> None:
    pass


def require_number(operation: str, value: Any) -> Any:
    """Raise InvalidArgument unless value is a finite int or float (bool excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidArgument(operation, f"expected a finite number, got {value!r}")
    return value


def require_callable(operation: str, value: Any) -> Any:
    if not callable(value):
        raise InvalidArgument(operation, f"expected a callable, got {value!r}")
    return value


def rejects_malformed(method: Callable[..., "Subscription"]) -> Callable[..., "Subscription"]:
    """A builder that raises InvalidArgument takes an already registered subscription out of the registry."""

    @functools.wraps(method)
    def wrapper(self: "Subscription", *args: Any, **kwargs: Any) -> "Subscription":
        try:
            return method(self, *args, **kwargs)
        except InvalidArgument:
            if self._active:
                self._bus.unsubscribe(self)
            raise

    return wrapper


class Subscription:
    """
    A registered interest in messages published on a topic pattern.

    Builder methods return self so calls chain. Timing wrappers (defer,
    with_delay, with_debounce, with_throttle) compose in the order they are
    called, each one closing over the callback produced by the previous one.
    Configuration errors raise InvalidArgument before anything is changed; if
    the subscription is already registered it is unsubscribed as well.
    """

    def __init__(
        self,
        bus: "Bus",
        exchange: str,
        topic: str,
        callback: Callback,
        priority: Optional[float] = None,
    ) -> None:
        require_callable("subscribe", callback)
        self._bus = bus
        self._exchange = exchange
        self._topic = topic
        self._callback = callback
        if priority is None:
            priority = bus.settings.default_priority
        self._priority = require_number("with_priority", priority)
        self._constraints: List[Predicate] = []
        self._context: Any = NO_CONTEXT
        self._on_handled: Callable[[], Any] = _noop
        self._max_calls = 0
        self._calls = 0
        self._expired = False
        self._active = False
        self._wrappers: Tuple[ScheduledCallback, ...] = ()
        self._composed: Callback = self._call_target

    @property
    def exchange(self) -> str:
        return self._exchange

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def callback(self) -> Callback:
        """The callback as dispatch invokes it, including every timing wrapper."""
        return self._composed

    @property
    def priority(self) -> float:
        return self._priority

    @property
    def constraints(self) -> Tuple[Predicate, ...]:
        return tuple(self._constraints)

    @property
    def context(self) -> Any:
        return None if self._context is NO_CONTEXT else self._context

    @property
    def on_handled(self) -> Callable[[], Any]:
        return self._on_handled

    @property
    def max_calls(self) -> int:
        return self._max_calls

    @property
    def calls(self) -> int:
        """Number of handled (constraint-passing) deliveries so far."""
        return self._calls

    @property
    def is_active(self) -> bool:
        return self._active

    # ---- Dispatch ----

    def _call_target(self, data: Any) -> Any:
        if self._context is NO_CONTEXT:
            return self._callback(data)
        return self._callback(self._context, data)

    def accepts(self, data: Any) -> bool:
        """Evaluate constraints in order, stopping at the first that fails."""
        return all(constraint(data) for constraint in list(self._constraints))

    def invoke(self, data: Any) -> None:
        self._composed(data)

    def record_delivery(self) -> bool:
        """Count a handled delivery. Returns True exactly once, when max_calls is reached."""
        self._calls += 1
        if self._max_calls and self._calls >= self._max_calls and not self._expired:
            self._expired = True
            return True
        return False

    def _set_active(self, active: bool) -> None:
        self._active = active

    def reset_deliveries(self) -> None:
        """Restart the dispose_after count (on registration and when the limit changes)."""
        self._calls = 0
        self._expired = False

    def _timed_failure(self, error: Exception) -> None:
        self._bus.report_failure(self, error)

    def cancel_pending(self) -> None:
        """Cancel timer-driven invocations that were scheduled but have not run."""
        for wrapper in self._wrappers:
            wrapper.cancel()

    # ---- Builder ----

    def _wrap(self, wrapper: ScheduledCallback) -> "Subscription":
        self._wrappers = self._wrappers + (wrapper,)
        self._composed = wrapper
        return self

    def unsubscribe(self) -> None:
        """Remove this subscription from the bus and drop its pending timed calls."""
        self._bus.unsubscribe(self)

    def defer(self) -> "Subscription":
        return self._wrap(Deferred(self._composed, self._bus.scheduler, self._timed_failure))

    @rejects_malformed
    def with_delay(self, milliseconds: float) -> "Subscription":
        require_number("with_delay", milliseconds)
        return self._wrap(Delayed(self._composed, milliseconds, self._bus.scheduler, self._timed_failure))

    @rejects_malformed
    def with_debounce(self, milliseconds: float) -> "Subscription":
        require_number("with_debounce", milliseconds)
        return self._wrap(Debounced(self._composed, milliseconds, self._bus.scheduler, self._timed_failure))

    @rejects_malformed
    def with_throttle(self, milliseconds: float) -> "Subscription":
        require_number("with_throttle", milliseconds)
        return self._wrap(Throttled(self._composed, milliseconds, self._bus.scheduler, self._timed_failure))

    @rejects_malformed
    def dispose_after(self, max_calls: int) -> "Subscription":
        """Unsubscribe automatically after max_calls further handled deliveries (0 means never)."""
        if isinstance(max_calls, bool) or not isinstance(max_calls, int) or max_calls < 0:
            raise InvalidArgument("dispose_after", f"expected a non-negative integer, got {max_calls!r}")
        self._max_calls = max_calls
        self.reset_deliveries()
        return self

    def ignore_duplicates(self) -> "Subscription":
        """Skip deliveries whose data equals the data this subscription saw last."""
        self._constraints.insert(0, DistinctPredicate())
        return self

    @rejects_malformed
    def when_handled_then_execute(self, fn: Callable[[], Any]) -> "Subscription":
        self._on_handled = require_callable("when_handled_then_execute", fn)
        return self

    @rejects_malformed
    def with_constraint(self, predicate: Predicate) -> "Subscription":
        self._constraints.append(require_callable("with_constraint", predicate))
        return self

    @rejects_malformed
    def with_constraints(self, predicates: Sequence) -> "Subscription":
        if isinstance(predicates, (str, bytes)) or not isinstance(predicates, Sequence):
            raise InvalidArgument("with_constraints", f"expected a sequence of predicates, got {predicates!r}")
        for predicate in predicates:
            require_callable("with_constraints", predicate)
        self._constraints.extend(predicates)
        return self

    def with_context(self, context: Any) -> "Subscription":
        """Bind context as the first argument of the callback: callback(context, data)."""
        self._context = context
        return self

    @rejects_malformed
    def with_priority(self, priority: float) -> "Subscription":
        """Set bucket ordering (lower runs first). A registered subscription is re-inserted."""
        require_number("with_priority", priority)
        self._priority = priority
        if self._active:
            self._bus.registry.reposition(self)
        return self

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(exchange={self._exchange!r}, topic={self._topic!r}, "
            f"priority={self._priority!r}, active={self._active})"
        )
