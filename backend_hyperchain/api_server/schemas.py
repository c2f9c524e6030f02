"""
Pydantic response models for the HTTP and WebSocket API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from backend_hyperchain.alerts.models import RiskAlert
from backend_hyperchain.analysis_engine.models import ScoredTransaction
from backend_hyperchain.query.service import WalletAnalysis
from backend_hyperchain.store.aggregation_store import AnalyticsSummary


class PatternModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str = Field(..., description="Pattern tag, e.g. whale_movement")
    confidence: float = Field(..., ge=0, le=1)
    description: str


class TransactionModel(BaseModel):
    """A scored transaction."""

    hash: str
    sender: str = Field(..., description="Sending address")
    receiver: str | None = Field(None, description="Receiving address; null for contract creation")
    value: str = Field(..., description="Value in base units (decimal string)")
    observed_at: datetime
    block_number: int = Field(..., ge=0)
    risk_score: int = Field(..., ge=0, le=100)
    risk_band: str = Field(..., description="HIGH | MEDIUM | LOW")
    patterns: list[PatternModel] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    ai_confidence: float = Field(..., ge=0, le=1)

    @classmethod
    def from_scored(cls, tx: ScoredTransaction) -> "TransactionModel":
        return cls(
            hash=tx.hash,
            sender=tx.sender,
            receiver=tx.receiver,
            value=tx.value,
            observed_at=tx.observed_at,
            block_number=tx.block_number,
            risk_score=tx.risk_score,
            risk_band=tx.risk_band.value,
            patterns=[PatternModel.model_validate(p) for p in tx.patterns],
            insights=list(tx.insights),
            ai_confidence=tx.ai_confidence,
        )


class AlertModel(BaseModel):
    """A risk alert."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    wallet_address: str
    alert_type: str
    severity: int = Field(..., ge=0, le=100)
    description: str
    created_at: datetime
    resolved: bool
    transaction_hash: str = ""


class AnalyticsModel(BaseModel):
    """Running analytics summary."""

    model_config = ConfigDict(from_attributes=True)

    total_transactions: int
    critical_risk: int
    high_risk: int
    medium_risk: int
    low_risk: int
    average_risk_score: float
    last_updated: datetime


class WalletAnalysisModel(BaseModel):
    """GET /wallets/{address} response."""

    address: str
    total_transactions: int
    total_volume: str = Field(..., description="Sum of values in base units (decimal string)")
    risk_score: int = Field(..., ge=0, le=100, description="Mean risk score, rounded")
    last_activity: datetime | None
    is_high_risk: bool
    recent_transactions: list[TransactionModel] = Field(default_factory=list)

    @classmethod
    def from_analysis(cls, wa: WalletAnalysis) -> "WalletAnalysisModel":
        return cls(
            address=wa.address,
            total_transactions=wa.total_transactions,
            total_volume=wa.total_volume,
            risk_score=wa.risk_score,
            last_activity=wa.last_activity,
            is_high_risk=wa.is_high_risk,
            recent_transactions=[TransactionModel.from_scored(tx) for tx in wa.recent_transactions],
        )


class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: datetime
    service: str = "Hyperchain Insights API"
    ingestion_running: bool
    subscribers: int


def payload_to_json(payload: Any) -> Any:
    """Serialize a broadcast payload (transaction, alert or summary) to JSON-safe data."""
    if isinstance(payload, ScoredTransaction):
        return TransactionModel.from_scored(payload).model_dump(mode="json")
    if isinstance(payload, RiskAlert):
        return AlertModel.model_validate(payload).model_dump(mode="json")
    if isinstance(payload, AnalyticsSummary):
        return AnalyticsModel.model_validate(payload).model_dump(mode="json")
    raise TypeError(f"unsupported broadcast payload: {type(payload).__name__}")
