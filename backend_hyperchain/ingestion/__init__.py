"""
Transaction ingestion package.

Produces RawTransactions from a live JSON-RPC block feed or a synthetic
generator. Both implement TransactionSource and are interchangeable for the
pipeline.
"""

from backend_hyperchain.ingestion.block_feed import BlockFeedConfig, BlockFeedSource
from backend_hyperchain.ingestion.models import BASE_UNITS_PER_UNIT, RawTransaction
from backend_hyperchain.ingestion.source import TransactionSource
from backend_hyperchain.ingestion.synthetic import DEMO_ADDRESSES, SyntheticSource

__all__ = [
    "BASE_UNITS_PER_UNIT",
    "BlockFeedConfig",
    "BlockFeedSource",
    "DEMO_ADDRESSES",
    "RawTransaction",
    "SyntheticSource",
    "TransactionSource",
]
