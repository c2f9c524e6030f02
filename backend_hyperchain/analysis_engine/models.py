"""
Analysis engine data models: patterns, scoring result and scored transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any

from backend_hyperchain.ingestion.models import RawTransaction

RISK_BAND_HIGH_MIN = 70
RISK_BAND_MEDIUM_MIN = 40


class PatternType(str, Enum):
    WHALE_MOVEMENT = "whale_movement"
    BOT_ACTIVITY = "bot_activity"
    VOLUME_ANOMALY = "volume_anomaly"


class RiskBand(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


def risk_band_for(score: int) -> RiskBand:
    """HIGH >= 70, MEDIUM 40-69, LOW < 40."""
    if score >= RISK_BAND_HIGH_MIN:
        return RiskBand.HIGH
    if score >= RISK_BAND_MEDIUM_MIN:
        return RiskBand.MEDIUM
    return RiskBand.LOW


@dataclass(frozen=True)
class Pattern:
    """A named, confidence-scored signal detected in one transaction."""

    type: str
    confidence: float
    description: str

    def __post_init__(self) -> None:
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError("confidence must be in [0, 1]")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "confidence": self.confidence, "description": self.description}


@dataclass(frozen=True)
class AnalysisResult:
    """The four scored fields produced by the analyzer."""

    risk_score: int
    patterns: tuple[Pattern, ...] = ()
    insights: tuple[str, ...] = ()
    ai_confidence: float = 0.0


@dataclass(frozen=True)
class ScoredTransaction:
    """
    RawTransaction plus its risk scoring. Created once by the analyzer and
    never mutated; uniquely keyed by hash in the store.
    """

    hash: str
    sender: str
    receiver: str | None
    value: str
    observed_at: datetime
    block_number: int
    risk_score: int
    patterns: tuple[Pattern, ...] = field(default_factory=tuple)
    insights: tuple[str, ...] = field(default_factory=tuple)
    ai_confidence: float = 0.0

    def __post_init__(self) -> None:
        if not (0 <= self.risk_score <= 100):
            raise ValueError("risk_score must be in [0, 100]")
        if not (0.0 <= self.ai_confidence <= 1.0):
            raise ValueError("ai_confidence must be in [0, 1]")

    @classmethod
    def from_raw(cls, raw: RawTransaction, result: AnalysisResult) -> "ScoredTransaction":
        return cls(
            hash=raw.hash,
            sender=raw.sender,
            receiver=raw.receiver,
            value=raw.value,
            observed_at=raw.observed_at,
            block_number=raw.block_number,
            risk_score=result.risk_score,
            patterns=tuple(result.patterns),
            insights=tuple(result.insights),
            ai_confidence=result.ai_confidence,
        )

    @property
    def raw(self) -> RawTransaction:
        return RawTransaction(
            hash=self.hash,
            sender=self.sender,
            receiver=self.receiver,
            value=self.value,
            observed_at=self.observed_at,
            block_number=self.block_number,
        )

    @property
    def risk_band(self) -> RiskBand:
        return risk_band_for(self.risk_score)

    def to_dict(self) -> dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["patterns"] = [p.to_dict() for p in self.patterns]
        out["insights"] = list(self.insights)
        out["observed_at"] = self.observed_at.isoformat()
        return out
