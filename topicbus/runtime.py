"""Process-wide default bus. The active bus and its topic matcher can be swapped."""

import threading
from typing import Callable, Optional

from topicbus.bus import Bus, WireTap
from topicbus.channel import Channel
from topicbus.config import load_settings
from topicbus.matcher import TopicMatcher


class Configuration:
    """Holds the bus used by the module-level create_channel / add_wire_tap."""

    def __init__(self) -> None:
        self._bus: Optional[Bus] = None
        self._resolver: Optional[TopicMatcher] = None
        self._lock = threading.Lock()

    @property
    def bus(self) -> Bus:
        """The active bus, created from environment settings on first use."""
        with self._lock:
            if self._bus is None:
                self._bus = Bus(settings=load_settings(), matcher=self._resolver)
            return self._bus

    @bus.setter
    def bus(self, bus: Bus) -> None:
        with self._lock:
            if self._resolver is not None:
                bus.matcher = self._resolver
            self._bus = bus

    @property
    def resolver(self) -> TopicMatcher:
        """Topic matcher of the active bus."""
        return self.bus.matcher

    @resolver.setter
    def resolver(self, matcher: Optional[TopicMatcher]) -> None:
        """
        Install matcher on the active bus and on every bus assigned or created
        later. None restores the default matcher.
        """
        bus = self.bus
        with self._lock:
            self._resolver = matcher
        bus.matcher = matcher or TopicMatcher(bus.settings.matcher_cache_size)

    def reset(self) -> None:
        """Drop the active bus; the next access builds a fresh one. A custom resolver is kept."""
        with self._lock:
            self._bus = None


configuration = Configuration()


def create_channel(*names: str) -> Channel:
    """create_channel(topic) or create_channel(exchange, topic) on the active bus."""
    return configuration.bus.create_channel(*names)


def add_wire_tap(callback: WireTap) -> Callable[[], None]:
    return configuration.bus.add_wire_tap(callback)
