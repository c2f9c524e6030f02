"""
Aggregation store: the canonical in-memory ledger of scored transactions,
alerts and the running analytics summary.

Single writer at a time: append, append_alert and resolve_alert are serialized
by one lock, and a transaction insert and its analytics update happen under
the same acquisition, so readers never see one without the other. Reads copy
under the lock and return immutable snapshots. Announcements to the broadcast
hub are made after the lock is released.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Iterable

from backend_hyperchain.alerts.models import RiskAlert
from backend_hyperchain.analysis_engine.models import ScoredTransaction
from backend_hyperchain.broadcast.hub import ALL_TOPICS, BroadcastHub, Topic
from backend_hyperchain.core.exceptions import StoreClosedError
from backend_hyperchain.hyperchain_logging import get_logger, short_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class AnalyticsBands:
    """Lower bounds of the analytics counters; anything below medium_min is low."""

    critical_min: int = 80
    high_min: int = 60
    medium_min: int = 40


@dataclass(frozen=True)
class AnalyticsSummary:
    """Snapshot of running analytics; replaced as a whole on every append."""

    total_transactions: int = 0
    critical_risk: int = 0
    high_risk: int = 0
    medium_risk: int = 0
    low_risk: int = 0
    average_risk_score: float = 0.0
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["last_updated"] = self.last_updated.isoformat()
        return out


class AggregationStore:
    """
    Volatile store; construct once at start-up and close() at shutdown.

    hub/announce: which topics mutations are announced on (default all).
    """

    def __init__(
        self,
        hub: BroadcastHub | None = None,
        *,
        announce: Iterable[Topic] = ALL_TOPICS,
        bands: AnalyticsBands | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._hub = hub
        self._announce = frozenset(Topic(t) for t in announce)
        self._bands = bands or AnalyticsBands()
        self._transactions: list[ScoredTransaction] = []
        self._by_hash: dict[str, ScoredTransaction] = {}
        self._alerts: list[RiskAlert] = []
        self._alert_index: dict[str, int] = {}
        self._score_sum = 0
        self._analytics = AnalyticsSummary()
        self._closed = False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, tx: ScoredTransaction) -> bool:
        """
        Insert a scored transaction and update analytics atomically.
        Duplicate hash: logged no-op, returns False.
        """
        with self._lock:
            self._check_open()
            if tx.hash in self._by_hash:
                logger.info("tx_duplicate_rejected", tx_hash=short_id(tx.hash))
                return False
            self._transactions.append(tx)
            self._by_hash[tx.hash] = tx
            self._score_sum += tx.risk_score
            summary = self._next_summary(tx.risk_score)
            self._analytics = summary
        logger.info(
            "tx_stored",
            tx_hash=short_id(tx.hash),
            risk_score=tx.risk_score,
            total_transactions=summary.total_transactions,
        )
        self._announce_event(Topic.NEW_TRANSACTION, tx)
        self._announce_event(Topic.ANALYTICS_UPDATED, summary)
        return True

    def append_alert(self, alert: RiskAlert) -> None:
        """Insert an alert (no deduplication)."""
        with self._lock:
            self._check_open()
            self._alert_index[alert.id] = len(self._alerts)
            self._alerts.append(alert)
        self._announce_event(Topic.NEW_ALERT, alert)

    def resolve_alert(self, alert_id: str) -> RiskAlert | None:
        """
        Mark an alert resolved and return it; idempotent. None when the id is
        unknown (no side effects).
        """
        with self._lock:
            self._check_open()
            idx = self._alert_index.get(alert_id)
            if idx is None:
                logger.info("alert_resolve_not_found", alert_id=alert_id)
                return None
            current = self._alerts[idx]
            if current.resolved:
                return current
            resolved = current.as_resolved()
            self._alerts[idx] = resolved
        logger.info("alert_resolved", alert_id=alert_id, wallet_id=short_id(resolved.wallet_address))
        return resolved

    def _next_summary(self, score: int) -> AnalyticsSummary:
        prev = self._analytics
        bands = self._bands
        critical, high, medium, low = prev.critical_risk, prev.high_risk, prev.medium_risk, prev.low_risk
        if score >= bands.critical_min:
            critical += 1
        elif score >= bands.high_min:
            high += 1
        elif score >= bands.medium_min:
            medium += 1
        else:
            low += 1
        total = prev.total_transactions + 1
        return AnalyticsSummary(
            total_transactions=total,
            critical_risk=critical,
            high_risk=high,
            medium_risk=medium,
            low_risk=low,
            average_risk_score=self._score_sum / total,
            last_updated=datetime.now(timezone.utc),
        )

    def _announce_event(self, topic: Topic, payload: Any) -> None:
        if self._hub is None or topic not in self._announce:
            return
        self._hub.publish(topic, payload)

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError("store is closed")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_transaction(self, tx_hash: str) -> ScoredTransaction | None:
        with self._lock:
            return self._by_hash.get(tx_hash)

    def transactions(self) -> tuple[ScoredTransaction, ...]:
        """All stored transactions in insertion order."""
        with self._lock:
            return tuple(self._transactions)

    def alerts(self) -> tuple[RiskAlert, ...]:
        """All alerts in creation order."""
        with self._lock:
            return tuple(self._alerts)

    def get_alert(self, alert_id: str) -> RiskAlert | None:
        with self._lock:
            idx = self._alert_index.get(alert_id)
            return self._alerts[idx] if idx is not None else None

    def analytics(self) -> AnalyticsSummary:
        with self._lock:
            return self._analytics

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear down: detach the hub and drop all state. Mutations afterwards raise."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            count = len(self._transactions)
            self._hub = None
            self._transactions.clear()
            self._by_hash.clear()
            self._alerts.clear()
            self._alert_index.clear()
        logger.info("store_closed", transactions=count)
