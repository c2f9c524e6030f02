"""
Query service: read-only filtered and paginated access to the store.

Used by on-demand callers (the HTTP API); independent of the live stream.
Not-found is returned as None, never raised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Sequence

from backend_hyperchain.alerts.models import RiskAlert
from backend_hyperchain.analysis_engine.models import RISK_BAND_HIGH_MIN, RiskBand, ScoredTransaction
from backend_hyperchain.store.aggregation_store import AggregationStore, AnalyticsSummary

DEFAULT_PAGE_LIMIT = 50
DEFAULT_LIVE_LIMIT = 10
WALLET_RECENT_LIMIT = 10


@dataclass(frozen=True)
class WalletAnalysis:
    """Aggregate view of every stored transaction an address sent or received."""

    address: str
    total_transactions: int = 0
    total_volume: str = "0"
    """Sum of values in base units, as a decimal string."""
    risk_score: int = 0
    """Mean risk score, rounded half up."""
    last_activity: datetime | None = None
    is_high_risk: bool = False
    recent_transactions: tuple[ScoredTransaction, ...] = field(default_factory=tuple)


def _newest_first(txs: Sequence[ScoredTransaction]) -> list[ScoredTransaction]:
    """Sort by observed_at descending; ties go to the most recently inserted."""
    indexed = sorted(enumerate(txs), key=lambda it: (it[1].observed_at, it[0]), reverse=True)
    return [tx for _, tx in indexed]


def _check_page(limit: int, offset: int = 0) -> None:
    if limit < 0:
        raise ValueError("limit must be >= 0")
    if offset < 0:
        raise ValueError("offset must be >= 0")


class QueryService:
    """Read-only operations over an AggregationStore."""

    def __init__(self, store: AggregationStore) -> None:
        self._store = store

    def list_transactions(
        self,
        risk_level: RiskBand | str | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[ScoredTransaction]:
        """Transactions newest first, optionally filtered by risk band, paginated."""
        _check_page(limit, offset)
        txs: Sequence[ScoredTransaction] = self._store.transactions()
        if risk_level is not None:
            band = RiskBand(risk_level)
            txs = [tx for tx in txs if tx.risk_band is band]
        return _newest_first(txs)[offset : offset + limit]

    def get_transaction(self, tx_hash: str) -> ScoredTransaction | None:
        return self._store.get_transaction(tx_hash)

    def wallet_analysis(self, address: str) -> WalletAnalysis:
        """Count, volume, mean risk and recent activity for an address (sender or receiver)."""
        matching = [
            tx for tx in self._store.transactions() if tx.sender == address or tx.receiver == address
        ]
        if not matching:
            return WalletAnalysis(address=address)
        recent = _newest_first(matching)
        total_volume = sum((Decimal(tx.value) for tx in matching), Decimal(0))
        mean_score = sum(tx.risk_score for tx in matching) / len(matching)
        return WalletAnalysis(
            address=address,
            total_transactions=len(matching),
            total_volume=str(total_volume),
            risk_score=int(math.floor(mean_score + 0.5)),
            last_activity=recent[0].observed_at,
            is_high_risk=mean_score >= RISK_BAND_HIGH_MIN,
            recent_transactions=tuple(recent[:WALLET_RECENT_LIMIT]),
        )

    def list_alerts(
        self,
        severity: int | None = None,
        resolved: bool | None = None,
    ) -> list[RiskAlert]:
        """Alerts in creation order; each filter is optional."""
        return [
            alert
            for alert in self._store.alerts()
            if (severity is None or alert.severity == severity)
            and (resolved is None or alert.resolved is resolved)
        ]

    def analytics_summary(self) -> AnalyticsSummary:
        return self._store.analytics()

    def live_transactions(self, limit: int = DEFAULT_LIVE_LIMIT) -> list[ScoredTransaction]:
        """The most recent `limit` transactions, newest first."""
        _check_page(limit)
        return _newest_first(self._store.transactions())[:limit]
