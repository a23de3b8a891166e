"""Tests for the priority-ordered subscription registry."""

from topicbus import Subscription, SubscriptionRegistry


def _noop(data):
    pass


def _sub(bus, priority, exchange="ex", topic="t"):
    return Subscription(bus, exchange, topic, _noop, priority)


class TestInsert:
    def test_bucket_sorted_by_priority_with_stable_ties(self, bus):
        registry = SubscriptionRegistry()
        a, b, c, d, e = (_sub(bus, p) for p in (50, 10, 50, 90, 10))
        for sub in (a, b, c, d, e):
            assert registry.insert(sub)
        assert registry.bucket("ex", "t") == [b, e, a, c, d]

    def test_new_lowest_priority_goes_first(self, bus):
        registry = SubscriptionRegistry()
        a, b = _sub(bus, 5), _sub(bus, 1)
        registry.insert(a)
        registry.insert(b)
        assert registry.bucket("ex", "t") == [b, a]

    def test_same_instance_is_not_duplicated(self, bus):
        registry = SubscriptionRegistry()
        a = _sub(bus, 50)
        assert registry.insert(a)
        assert not registry.insert(a)
        assert registry.bucket("ex", "t") == [a]

    def test_insert_creates_bucket_lazily(self, bus):
        registry = SubscriptionRegistry()
        registry.insert(_sub(bus, 50, exchange="new", topic="x.*"))
        assert registry.exchanges() == ["new"]
        assert registry.bindings("new") == {"x.*": 1}


class TestRemove:
    def test_remove_by_identity(self, bus):
        registry = SubscriptionRegistry()
        a, b = _sub(bus, 50), _sub(bus, 50)
        registry.insert(a)
        registry.insert(b)
        assert registry.remove(a)
        assert registry.bucket("ex", "t") == [b]
        assert not registry.remove(a)

    def test_remove_from_missing_bucket(self, bus):
        assert not SubscriptionRegistry().remove(_sub(bus, 50))

    def test_reposition(self, bus):
        registry = SubscriptionRegistry()
        a, b = _sub(bus, 10), _sub(bus, 20)
        registry.insert(a)
        registry.insert(b)
        a._priority = 30
        registry.reposition(a)
        assert registry.bucket("ex", "t") == [b, a]


class TestIterate:
    def test_ensure_bucket_is_idempotent(self):
        registry = SubscriptionRegistry()
        registry.ensure_bucket("ex", "t")
        registry.ensure_bucket("ex", "t")
        assert registry.bindings("ex") == {"t": 0}
        assert registry.subscription_count() == 0

    def test_iterate_returns_snapshots(self, bus):
        registry = SubscriptionRegistry()
        a, b = _sub(bus, 10), _sub(bus, 20, topic="u")
        registry.insert(a)
        registry.insert(b)
        buckets = dict(registry.iterate("ex"))
        registry.remove(a)
        assert buckets == {"t": (a,), "u": (b,)}
        assert list(registry.iterate("missing")) == []

    def test_subscription_count(self, bus):
        registry = SubscriptionRegistry()
        registry.insert(_sub(bus, 1))
        registry.insert(_sub(bus, 1, exchange="other"))
        assert registry.subscription_count() == 2
