"""
Data models for ingestion output.

RawTransaction is the unit of work emitted by every TransactionSource to the
analysis engine: hash, sender, receiver, value in base units, observation
time and block number. Immutable once created.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

# 1 unit of native currency = 10**18 base units (wei-style)
BASE_UNITS_PER_UNIT = Decimal(10) ** 18


def _to_int(raw: Any) -> int:
    """Parse a JSON-RPC quantity: 0x-prefixed hex string, decimal string or int."""
    if isinstance(raw, bool):
        raise TypeError("boolean is not a quantity")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        s = raw.strip()
        if s.lower().startswith("0x"):
            return int(s, 16)
        return int(s)
    raise TypeError(f"unsupported quantity: {raw!r}")


@dataclass(frozen=True)
class RawTransaction:
    """
    Normalized transaction observed on the ledger.

    value is a decimal string in base units so arbitrarily large amounts
    survive without float rounding.
    """

    hash: str
    sender: str
    receiver: str | None  # None for contract creation
    value: str
    observed_at: datetime
    block_number: int

    def __post_init__(self) -> None:
        if not self.hash:
            raise ValueError("hash must be non-empty")
        if self.block_number < 0:
            raise ValueError("block_number must be non-negative")
        if not (isinstance(self.value, str) and self.value.isascii() and self.value.isdigit()):
            raise ValueError(f"value must be a non-negative integer string: {self.value!r}")

    @property
    def value_units(self) -> Decimal:
        """value converted from base units to whole currency units."""
        return Decimal(self.value) / BASE_UNITS_PER_UNIT

    @classmethod
    def from_rpc_tx(
        cls,
        item: dict[str, Any],
        *,
        observed_at: datetime | None = None,
        block_number: int | None = None,
    ) -> "RawTransaction":
        """
        Build from one transaction object of eth_getBlockByNumber(..., true).

        Raises KeyError / TypeError / ValueError on malformed items; callers
        log and skip those.
        """
        number = block_number if block_number is not None else _to_int(item["blockNumber"])
        value = _to_int(item.get("value", 0))
        if value < 0:
            raise ValueError("value must be non-negative")
        sender = item["from"]
        if not isinstance(sender, str) or not sender:
            raise ValueError(f"invalid sender: {sender!r}")
        receiver = item.get("to")
        return cls(
            hash=str(item["hash"]),
            sender=sender,
            receiver=str(receiver) if receiver else None,
            value=str(value),
            observed_at=observed_at or datetime.now(timezone.utc),
            block_number=number,
        )
