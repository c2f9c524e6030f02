"""
Base source abstraction for transaction ingestion.

Every source (live block feed, synthetic generator) inherits from
TransactionSource and implements the standard interface:
1. stream(): a lazy, infinite, non-restartable async sequence of RawTransaction
2. stop(): end the stream at the next item boundary

Downstream components only ever see TransactionSource, so sources can be
swapped without touching the analysis engine or store.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator

from backend_hyperchain.ingestion.models import RawTransaction


class TransactionSource(ABC):
    """Abstract base class for ingestion sources."""

    name: str = "source"

    def __init__(self) -> None:
        self._stop_event = asyncio.Event()
        self._consumed = False

    async def stream(self) -> AsyncIterator[RawTransaction]:
        """
        Yield RawTransactions until stop() is called.

        Non-restartable: a second call raises RuntimeError.
        """
        if self._consumed:
            raise RuntimeError(f"{self.name} stream is not restartable")
        self._consumed = True
        async for tx in self._produce():
            if self._stop_event.is_set():
                return
            yield tx

    @abstractmethod
    def _produce(self) -> AsyncIterator[RawTransaction]:
        """Source-specific generator; should return promptly once stopped."""

    def stop(self) -> None:
        """Signal the source to stop; the stream ends at the next item boundary."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def _sleep_or_stop(self, seconds: float) -> bool:
        """Sleep up to seconds; return True if stop() was called meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
