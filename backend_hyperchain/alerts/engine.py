"""
Alert engine: risk threshold check and alert emission.

A scored transaction at or above the alert threshold produces exactly one
RiskAlert keyed on the sending address, with severity equal to the risk score.
No deduplication: every qualifying transaction alerts, even for repeat
offenders. Alerts are appended to the store, which announces them to the
broadcast hub.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from backend_hyperchain.alerts.models import (
    ALERT_TYPE_HIGH_RISK_TRANSACTION,
    AlertIdGenerator,
    RiskAlert,
)
from backend_hyperchain.analysis_engine.models import ScoredTransaction
from backend_hyperchain.hyperchain_logging import get_logger, short_id

if TYPE_CHECKING:
    from backend_hyperchain.store.aggregation_store import AggregationStore

logger = get_logger(__name__)

DEFAULT_ALERT_THRESHOLD = 70
# Max description length stored
MAX_DESCRIPTION_LENGTH = 500


@dataclass
class AlertConfig:
    """Configurable risk threshold for the alert engine."""

    alert_threshold: int = DEFAULT_ALERT_THRESHOLD
    """Raise an alert when risk_score >= this."""
    alert_type: str = ALERT_TYPE_HIGH_RISK_TRANSACTION


def _description_truncate(description: str) -> str:
    if len(description) <= MAX_DESCRIPTION_LENGTH:
        return description
    return description[: MAX_DESCRIPTION_LENGTH - 3] + "..."


class AlertEngine:
    """Turns qualifying scored transactions into alerts and hands them to the store."""

    def __init__(
        self,
        store: "AggregationStore | None" = None,
        config: AlertConfig | None = None,
        *,
        id_generator: AlertIdGenerator | None = None,
    ) -> None:
        self._store = store
        self._config = config or AlertConfig()
        self._ids = id_generator or AlertIdGenerator()

    @property
    def threshold(self) -> int:
        return self._config.alert_threshold

    def evaluate(self, scored: ScoredTransaction) -> RiskAlert | None:
        """Build the alert for a qualifying transaction; None below threshold. No side effects."""
        if scored.risk_score < self._config.alert_threshold:
            return None
        return RiskAlert(
            id=self._ids.next_id(),
            wallet_address=scored.sender,
            alert_type=self._config.alert_type,
            severity=scored.risk_score,
            description=_description_truncate(
                f"High-risk transaction detected: {scored.risk_score}% risk score"
            ),
            created_at=datetime.now(timezone.utc),
            resolved=False,
            transaction_hash=scored.hash,
        )

    def process(self, scored: ScoredTransaction) -> RiskAlert | None:
        """Evaluate and, when an alert is raised, append it to the store."""
        alert = self.evaluate(scored)
        if alert is None:
            return None
        if self._store is not None:
            self._store.append_alert(alert)
        logger.info(
            "alert_raised",
            alert_id=alert.id,
            wallet_id=short_id(alert.wallet_address),
            tx_hash=short_id(scored.hash),
            severity=alert.severity,
        )
        return alert
