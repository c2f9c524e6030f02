"""
Query service package — read-only views over the aggregation store.
"""

from backend_hyperchain.query.service import QueryService, WalletAnalysis

__all__ = ["QueryService", "WalletAnalysis"]
