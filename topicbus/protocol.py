"""Response shapes for the diagnostics HTTP surface (health, exchanges, stats)."""

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass
class HealthResponse:
    """Response for GET /health."""
    uptime_sec: float
    exchanges: int
    subscriptions: int
    wiretaps: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uptime_sec": int(self.uptime_sec),
            "exchanges": self.exchanges,
            "subscriptions": self.subscriptions,
            "wiretaps": self.wiretaps,
        }


def exchanges_list_response(exchanges: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Response for GET /exchanges."""
    return {"exchanges": exchanges}


def stats_response(
    exchange_stats: Dict[str, Dict[str, int]],
    metrics: Dict[str, Dict[str, int]],
) -> Dict[str, Any]:
    """Response for GET /stats."""
    return {"exchanges": exchange_stats, "metrics": metrics}


ERROR_UNAUTHORIZED = "UNAUTHORIZED"
