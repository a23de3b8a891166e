"""Envelope carrying one published payload through the bus."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Envelope:
    """Represents a single publish: exchange, concrete topic, payload and time stamp."""

    exchange: str
    topic: str
    data: Any = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        """Serialize envelope for logging or inspection."""
        return {
            "exchange": self.exchange,
            "topic": self.topic,
            "data": self.data,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
