"""Observability: logging and metrics for the message bus."""

from topicbus.observability.logger import get_logger
from topicbus.observability.metrics import Metrics

__all__ = ["get_logger", "Metrics"]
