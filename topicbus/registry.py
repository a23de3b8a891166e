"""In-memory registry of subscriptions, partitioned by exchange and topic pattern."""

import threading
from typing import TYPE_CHECKING, Dict, Iterator, List, Tuple

if TYPE_CHECKING:
    from topicbus.subscription import Subscription

Bucket = List["Subscription"]


class SubscriptionRegistry:
    """
    exchange -> topic pattern -> bucket of subscriptions.

    Every bucket is kept sorted by priority (lower first). A new subscription
    goes right after the last member whose priority is <= its own, so equal
    priorities keep insertion order.
    """

    def __init__(self) -> None:
        self._exchanges: Dict[str, Dict[str, Bucket]] = {}
        self._lock = threading.RLock()

    def ensure_bucket(self, exchange: str, topic: str) -> None:
        """Create the (exchange, topic) bucket if it does not exist yet."""
        with self._lock:
            self._bucket(exchange, topic)

    def _bucket(self, exchange: str, topic: str) -> Bucket:
        bindings = self._exchanges.setdefault(exchange, {})
        return bindings.setdefault(topic, [])

    def insert(self, subscription: "Subscription") -> bool:
        """Insert in priority order. Returns False if this exact subscription is already present."""
        with self._lock:
            bucket = self._bucket(subscription.exchange, subscription.topic)
            if any(existing is subscription for existing in bucket):
                return False
            index = len(bucket)
            while index > 0 and bucket[index - 1].priority > subscription.priority:
                index -= 1
            bucket.insert(index, subscription)
            return True

    def remove(self, subscription: "Subscription") -> bool:
        """Remove this exact subscription (by identity). Returns False if it was not present."""
        with self._lock:
            bucket = self._exchanges.get(subscription.exchange, {}).get(subscription.topic)
            if not bucket:
                return False
            for index, existing in enumerate(bucket):
                if existing is subscription:
                    del bucket[index]
                    return True
            return False

    def reposition(self, subscription: "Subscription") -> None:
        """Re-insert a subscription whose priority changed."""
        with self._lock:
            if self.remove(subscription):
                self.insert(subscription)

    def iterate(self, exchange: str) -> Iterator[Tuple[str, Tuple["Subscription", ...]]]:
        """Yield (topic pattern, bucket snapshot) for every bucket of an exchange. Order across buckets is not defined."""
        with self._lock:
            snapshot = [
                (topic, tuple(bucket))
                for topic, bucket in self._exchanges.get(exchange, {}).items()
            ]
        return iter(snapshot)

    def bucket(self, exchange: str, topic: str) -> List["Subscription"]:
        """Return a copy of one bucket (empty if it does not exist)."""
        with self._lock:
            return list(self._exchanges.get(exchange, {}).get(topic, []))

    def exchanges(self) -> List[str]:
        with self._lock:
            return list(self._exchanges)

    def bindings(self, exchange: str) -> Dict[str, int]:
        """Return { topic pattern: subscription count } for an exchange."""
        with self._lock:
            return {topic: len(bucket) for topic, bucket in self._exchanges.get(exchange, {}).items()}

    def subscription_count(self) -> int:
        with self._lock:
            return sum(
                len(bucket)
                for bindings in self._exchanges.values()
                for bucket in bindings.values()
            )
