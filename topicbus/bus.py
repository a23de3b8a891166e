"""Dispatch engine: wiretaps, subscription registry and synchronous fan-out of published envelopes."""

import functools
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from topicbus.channel import Channel
from topicbus.config import BusSettings
from topicbus.envelope import Envelope, utcnow
from topicbus.errors import InvalidArgument
from topicbus.matcher import TopicMatcher
from topicbus.observability import Metrics, get_logger
from topicbus.registry import SubscriptionRegistry
from topicbus.scheduler import TimerScheduler
from topicbus.subscription import Subscription, require_callable

WireTap = Callable[[Envelope], Any]


class Bus:
    """
    In-process message bus. Owns its registry, topic matcher, wiretaps and
    scheduler, so independent buses do not share state.

    publish() runs on the caller's thread: wiretaps first, then every active
    subscription whose pattern binds the topic and whose constraints pass,
    bucket by bucket in priority order. Subscriber errors propagate out of
    publish() unless settings.isolate_failures is set.
    """

    def __init__(
        self,
        settings: Optional[BusSettings] = None,
        matcher: Optional[TopicMatcher] = None,
        registry: Optional[SubscriptionRegistry] = None,
        scheduler: Any = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings or BusSettings()
        self.matcher = matcher or TopicMatcher(self._settings.matcher_cache_size)
        self.registry = registry or SubscriptionRegistry()
        self.scheduler = scheduler or TimerScheduler()
        self._clock = clock or utcnow
        self._wiretaps: List[WireTap] = []
        self._wiretap_lock = threading.Lock()
        self.metrics = Metrics()
        self._logger = get_logger("topicbus.bus", self._settings.log_level)

    @property
    def settings(self) -> BusSettings:
        return self._settings

    def now(self) -> datetime:
        return self._clock()

    # ---- Channels ----

    def create_channel(self, *names: str) -> Channel:
        """
        create_channel(topic) or create_channel(exchange, topic). The single
        argument form uses settings.default_exchange.
        """
        if len(names) == 1:
            exchange, topic = self._settings.default_exchange, names[0]
        elif len(names) == 2:
            exchange, topic = names
        else:
            raise InvalidArgument("create_channel", f"expected (topic) or (exchange, topic), got {len(names)} arguments")
        if not isinstance(exchange, str) or not isinstance(topic, str):
            raise InvalidArgument("create_channel", "exchange and topic must be strings")
        self.registry.ensure_bucket(exchange, topic)
        return Channel(self, exchange, topic)

    # ---- Publish ----

    def publish(self, envelope: Envelope) -> None:
        """Notify wiretaps, then deliver to every matching subscription of the envelope's exchange."""
        with self._wiretap_lock:
            wiretaps = list(self._wiretaps)
        for tap in wiretaps:
            tap(envelope)
        self.metrics.increment("published")
        self._logger.debug(
            "published",
            extra={"exchange": envelope.exchange, "topic": envelope.topic},
        )
        for pattern, bucket in self.registry.iterate(envelope.exchange):
            if not self.matcher.matches(pattern, envelope.topic):
                continue
            for subscription in bucket:
                # removed earlier in this publish (possibly by a neighbour)
                if not subscription.is_active:
                    continue
                self._deliver(subscription, envelope)

    def _deliver(self, subscription: Subscription, envelope: Envelope) -> None:
        data = envelope.data
        try:
            if not subscription.accepts(data):
                self.metrics.increment("filtered")
                return
            subscription.invoke(data)
            self.metrics.increment("delivered")
            subscription.on_handled()
        except Exception as e:
            if not self._settings.isolate_failures:
                raise
            self.report_failure(subscription, e, topic=envelope.topic)
            return
        if subscription.record_delivery():
            self.unsubscribe(subscription, cancel_pending=False)

    def report_failure(self, subscription: Subscription, error: Exception, topic: Optional[str] = None) -> None:
        """
        Log and count a failed delivery. Call from inside the except block.
        Timer-driven calls always land here since no publish call is waiting on them.
        """
        self.metrics.increment("delivery_failed")
        self._logger.exception(
            "delivery_failed",
            extra={
                "exchange": subscription.exchange,
                "topic": topic,
                "binding": subscription.topic,
                "error": str(error),
            },
        )

    # ---- Subscriptions ----

    def subscribe(self, subscription: Subscription) -> Callable[[], None]:
        """Register a subscription in priority order. Returns a disposer for this exact subscription."""
        if self.registry.insert(subscription):
            subscription.reset_deliveries()
            subscription._set_active(True)
            self.metrics.set_gauge("subscriptions", self.registry.subscription_count())
            self._logger.info(
                "subscribed",
                extra={
                    "exchange": subscription.exchange,
                    "binding": subscription.topic,
                    "priority": subscription.priority,
                },
            )
        return functools.partial(self.unsubscribe, subscription)

    def unsubscribe(self, subscription: Subscription, cancel_pending: bool = True) -> None:
        """
        Remove a subscription; no-op if it is not registered. With cancel_pending,
        timed invocations it already scheduled are dropped as well.
        """
        removed = self.registry.remove(subscription)
        subscription._set_active(False)
        if cancel_pending:
            subscription.cancel_pending()
        if removed:
            self.metrics.set_gauge("subscriptions", self.registry.subscription_count())
            self._logger.info(
                "unsubscribed",
                extra={
                    "exchange": subscription.exchange,
                    "binding": subscription.topic,
                    "deliveries": subscription.calls,
                },
            )

    # ---- Wiretaps ----

    def add_wire_tap(self, callback: WireTap) -> Callable[[], None]:
        """Observe every published envelope. Returns a function that removes the tap."""
        require_callable("add_wire_tap", callback)
        with self._wiretap_lock:
            self._wiretaps.append(callback)
            self.metrics.set_gauge("wiretaps", len(self._wiretaps))
        self._logger.info("wiretap_added", extra={"wiretaps": len(self._wiretaps)})

        def remove() -> None:
            with self._wiretap_lock:
                for index, tap in enumerate(self._wiretaps):
                    if tap is callback:
                        del self._wiretaps[index]
                        break
                else:
                    return
                self.metrics.set_gauge("wiretaps", len(self._wiretaps))
            self._logger.info("wiretap_removed", extra={"wiretaps": len(self._wiretaps)})

        return remove

    def wiretap_count(self) -> int:
        with self._wiretap_lock:
            return len(self._wiretaps)

    # ---- Introspection ----

    def exchanges(self) -> List[Dict[str, Any]]:
        """Return [{name, bindings, subscriptions}] for every known exchange."""
        result = []
        for name in self.registry.exchanges():
            bindings = self.registry.bindings(name)
            result.append({
                "name": name,
                "bindings": len(bindings),
                "subscriptions": sum(bindings.values()),
            })
        return result

    def stats(self) -> Dict[str, Dict[str, int]]:
        """Return { exchange: { topic pattern: subscriptions } }."""
        return {name: self.registry.bindings(name) for name in self.registry.exchanges()}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(exchanges={len(self.registry.exchanges())}, "
            f"subscriptions={self.registry.subscription_count()})"
        )
