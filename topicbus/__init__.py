"""In-process publish/subscribe message bus with topic wildcards (no broker, no network)."""

from topicbus.bus import Bus
from topicbus.channel import Channel
from topicbus.config import BusSettings, load_settings
from topicbus.envelope import Envelope
from topicbus.errors import BusError, InvalidArgument
from topicbus.matcher import TopicMatcher
from topicbus.registry import SubscriptionRegistry
from topicbus.runtime import add_wire_tap, configuration, create_channel
from topicbus.subscription import Subscription

__all__ = [
    "Bus",
    "BusError",
    "BusSettings",
    "Channel",
    "Envelope",
    "InvalidArgument",
    "Subscription",
    "SubscriptionRegistry",
    "TopicMatcher",
    "add_wire_tap",
    "configuration",
    "create_channel",
    "load_settings",
]
