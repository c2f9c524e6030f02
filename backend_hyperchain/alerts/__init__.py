"""
Alert engine — risk threshold, alert construction and hand-off to the store.

Converts scored transactions at or above the configured threshold into
RiskAlerts; the store announces them to live subscribers.
"""

from backend_hyperchain.alerts.engine import AlertConfig, AlertEngine
from backend_hyperchain.alerts.models import AlertIdGenerator, RiskAlert

__all__ = [
    "AlertConfig",
    "AlertEngine",
    "AlertIdGenerator",
    "RiskAlert",
]
