"""
API route definitions — REST endpoints over the query service.

Read endpoints for transactions, wallets, alerts and analytics; mutations to
resolve an alert and to re-run analysis on a stored transaction. Unknown ids
map to 404; bad query params are rejected by FastAPI validation (422).
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from backend_hyperchain.agent_worker.runtime import HyperchainRuntime
from backend_hyperchain.analysis_engine.models import RiskBand
from backend_hyperchain.api_server.schemas import (
    AlertModel,
    AnalyticsModel,
    HealthResponse,
    TransactionModel,
    WalletAnalysisModel,
)
from backend_hyperchain.hyperchain_logging import get_logger, short_id
from backend_hyperchain.query.service import DEFAULT_LIVE_LIMIT, DEFAULT_PAGE_LIMIT

logger = get_logger(__name__)

router = APIRouter()


def get_runtime(request: Request) -> HyperchainRuntime:
    """Dependency: the app-scoped runtime built in create_app()."""
    return request.app.state.runtime


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health(runtime: HyperchainRuntime = Depends(get_runtime)) -> HealthResponse:
    return HealthResponse(
        timestamp=datetime.now(timezone.utc),
        ingestion_running=runtime.pipeline.running,
        subscribers=runtime.hub.subscriber_count(),
    )


@router.get("/transactions", response_model=list[TransactionModel], tags=["transactions"])
def list_transactions(
    risk_level: RiskBand | None = Query(None, description="HIGH (>=70), MEDIUM (40-69) or LOW (<40)"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    runtime: HyperchainRuntime = Depends(get_runtime),
) -> list[TransactionModel]:
    txs = runtime.query.list_transactions(risk_level=risk_level, limit=limit, offset=offset)
    return [TransactionModel.from_scored(tx) for tx in txs]


@router.get("/transactions/live", response_model=list[TransactionModel], tags=["transactions"])
def live_transactions(
    limit: int = Query(DEFAULT_LIVE_LIMIT, ge=0),
    runtime: HyperchainRuntime = Depends(get_runtime),
) -> list[TransactionModel]:
    return [TransactionModel.from_scored(tx) for tx in runtime.query.live_transactions(limit)]


@router.get("/transactions/{tx_hash}", response_model=TransactionModel, tags=["transactions"])
def get_transaction(
    tx_hash: str,
    runtime: HyperchainRuntime = Depends(get_runtime),
) -> TransactionModel:
    tx = runtime.query.get_transaction(tx_hash)
    if tx is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionModel.from_scored(tx)


@router.post("/transactions/{tx_hash}/analyze", response_model=TransactionModel, tags=["transactions"])
def analyze_transaction(
    tx_hash: str,
    runtime: HyperchainRuntime = Depends(get_runtime),
) -> TransactionModel:
    """Re-run the analyzer on a stored transaction; the stored record is not changed."""
    tx = runtime.pipeline.reanalyze(tx_hash)
    if tx is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    logger.info("api_reanalyzed", tx_hash=short_id(tx_hash), risk_score=tx.risk_score)
    return TransactionModel.from_scored(tx)


@router.get("/wallets/{address}", response_model=WalletAnalysisModel, tags=["wallets"])
def wallet_analysis(
    address: str,
    runtime: HyperchainRuntime = Depends(get_runtime),
) -> WalletAnalysisModel:
    return WalletAnalysisModel.from_analysis(runtime.query.wallet_analysis(address))


@router.get("/alerts", response_model=list[AlertModel], tags=["alerts"])
def list_alerts(
    severity: int | None = Query(None, ge=0, le=100),
    resolved: bool | None = Query(None),
    runtime: HyperchainRuntime = Depends(get_runtime),
) -> list[AlertModel]:
    alerts = runtime.query.list_alerts(severity=severity, resolved=resolved)
    return [AlertModel.model_validate(a) for a in alerts]


@router.post("/alerts/{alert_id}/resolve", response_model=AlertModel, tags=["alerts"])
def resolve_alert(
    alert_id: str,
    runtime: HyperchainRuntime = Depends(get_runtime),
) -> AlertModel:
    alert = runtime.store.resolve_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertModel.model_validate(alert)


@router.get("/analytics", response_model=AnalyticsModel, tags=["analytics"])
def analytics_summary(runtime: HyperchainRuntime = Depends(get_runtime)) -> AnalyticsModel:
    return AnalyticsModel.model_validate(runtime.query.analytics_summary())
