"""
Risk alert record and id generation.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any

ALERT_TYPE_HIGH_RISK_TRANSACTION = "HIGH_RISK_TRANSACTION"


@dataclass(frozen=True)
class RiskAlert:
    """
    Standing record that a wallet's activity crossed the high-risk threshold.

    Frozen: resolving stores a replaced copy (see AggregationStore.resolve_alert),
    so `resolved` is the only field that ever changes for a given id.
    """

    id: str
    wallet_address: str
    alert_type: str
    severity: int
    """Mirrors the triggering transaction's risk score (0-100)."""
    description: str
    created_at: datetime
    resolved: bool = False
    transaction_hash: str = ""

    def __post_init__(self) -> None:
        if not (0 <= self.severity <= 100):
            raise ValueError("severity must be in [0, 100]")

    def as_resolved(self) -> "RiskAlert":
        return self if self.resolved else replace(self, resolved=True)

    def to_dict(self) -> dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["created_at"] = self.created_at.isoformat()
        return out


class AlertIdGenerator:
    """
    Alert ids from the nanosecond wall clock, forced strictly increasing so two
    alerts raised in the same tick (or after a clock step back) never collide.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next_id(self) -> str:
        with self._lock:
            now = time.time_ns()
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return str(now)
