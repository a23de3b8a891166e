"""Channel facade: publish and subscribe on one (exchange, topic pattern) pair."""

from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from topicbus.envelope import Envelope
from topicbus.subscription import NO_CONTEXT, Subscription

if TYPE_CHECKING:
    from topicbus.bus import Bus


class Channel:
    """Binds an exchange and a topic; does not expose the registry."""

    def __init__(self, bus: "Bus", exchange: str, topic: str) -> None:
        self._bus = bus
        self._exchange = exchange
        self._topic = topic

    @property
    def exchange(self) -> str:
        return self._exchange

    @property
    def topic(self) -> str:
        return self._topic

    def publish(self, data: Any = None) -> Envelope:
        """Build a time-stamped envelope and dispatch it synchronously."""
        envelope = Envelope(
            exchange=self._exchange,
            topic=self._topic,
            data=data,
            timestamp=self._bus.now(),
        )
        self._bus.publish(envelope)
        return envelope

    def subscribe(
        self,
        callback: Callable[[Any], Any],
        *,
        priority: Optional[float] = None,
        constraints: Optional[Sequence[Callable[[Any], bool]]] = None,
        context: Any = NO_CONTEXT,
        on_handled: Optional[Callable[[], Any]] = None,
        dispose_after: Optional[int] = None,
    ) -> Subscription:
        """
        Register callback on this channel's topic and return its Subscription.
        Keyword options are validated before registration; a bad value raises
        InvalidArgument and nothing is registered.
        """
        subscription = Subscription(self._bus, self._exchange, self._topic, callback, priority)
        if constraints is not None:
            subscription.with_constraints(constraints)
        if context is not NO_CONTEXT:
            subscription.with_context(context)
        if on_handled is not None:
            subscription.when_handled_then_execute(on_handled)
        if dispose_after is not None:
            subscription.dispose_after(dispose_after)
        self._bus.subscribe(subscription)
        return subscription

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(exchange={self._exchange!r}, topic={self._topic!r})"
