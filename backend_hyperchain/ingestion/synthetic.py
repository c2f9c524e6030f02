"""
Synthetic transaction generator for demos and local runs.

Emits one pseudo-random RawTransaction every interval_sec (default 8 s) with
sender/receiver drawn from a small fixed address pool, a random value below
1000 units and a random 32-byte hash. The timer belongs to this source only.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import AsyncIterator, Callable

from backend_hyperchain.hyperchain_logging import get_logger, short_id
from backend_hyperchain.ingestion.models import BASE_UNITS_PER_UNIT, RawTransaction
from backend_hyperchain.ingestion.source import TransactionSource

logger = get_logger(__name__)

DEFAULT_INTERVAL_SEC = 8.0
DEMO_ADDRESSES = (
    "0x742d35Cc6534C0532925a3b8D76140000000001",
    "0x742d35Cc6534C0532925a3b8D76140000000002",
    "0x742d35Cc6534C0532925a3b8D76140000000003",
    "0x742d35Cc6534C0532925a3b8D76140000000004",
)
MAX_VALUE_UNITS = 1000
BLOCK_NUMBER_MIN = 5_000_000
BLOCK_NUMBER_SPAN = 1_000_000


class SyntheticSource(TransactionSource):
    """Pseudo-random transaction generator on a fixed timer."""

    name = "synthetic"

    def __init__(
        self,
        interval_sec: float = DEFAULT_INTERVAL_SEC,
        *,
        addresses: tuple[str, ...] = DEMO_ADDRESSES,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__()
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        if not addresses:
            raise ValueError("addresses must be non-empty")
        self._interval_sec = interval_sec
        self._addresses = tuple(addresses)
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def generate(self) -> RawTransaction:
        """Build one pseudo-random transaction (no waiting)."""
        rng = self._rng
        value = int(rng.random() * MAX_VALUE_UNITS * int(BASE_UNITS_PER_UNIT))
        return RawTransaction(
            hash="0x" + "%064x" % rng.getrandbits(256),
            sender=rng.choice(self._addresses),
            receiver=rng.choice(self._addresses),
            value=str(value),
            observed_at=self._clock(),
            block_number=BLOCK_NUMBER_MIN + rng.randrange(BLOCK_NUMBER_SPAN),
        )

    async def _produce(self) -> AsyncIterator[RawTransaction]:
        logger.info("synthetic_source_started", interval_sec=self._interval_sec)
        while not self.stopped:
            if await self._sleep_or_stop(self._interval_sec):
                break
            tx = self.generate()
            logger.debug(
                "synthetic_tx_generated",
                tx_hash=short_id(tx.hash),
                block_number=tx.block_number,
            )
            yield tx
        logger.info("synthetic_source_stopped")
