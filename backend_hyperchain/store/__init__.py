"""
Aggregation store package — single in-memory owner of scored transactions,
alerts and the analytics summary.
"""

from backend_hyperchain.store.aggregation_store import (
    AggregationStore,
    AnalyticsBands,
    AnalyticsSummary,
)

__all__ = ["AggregationStore", "AnalyticsBands", "AnalyticsSummary"]
