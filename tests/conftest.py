"""
Pytest fixtures for Hyperchain tests. Everything is in-memory; the API client
is built without starting ingestion so tests drive the store directly.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from backend_hyperchain.ingestion.models import BASE_UNITS_PER_UNIT, RawTransaction

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

WALLET_A = "0x742d35Cc6534C0532925a3b8D76140000000001"
WALLET_B = "0x742d35Cc6534C0532925a3b8D76140000000002"
WALLET_C = "0x742d35Cc6534C0532925a3b8D76140000000003"


def units(amount: float | int) -> str:
    """Whole currency units as a base-unit decimal string."""
    return str(int(amount) * int(BASE_UNITS_PER_UNIT))


def make_raw(
    n: int = 1,
    *,
    value_units: float | int = 1,
    sender: str = WALLET_A,
    receiver: str | None = WALLET_B,
    seconds: float = 0,
    block_number: int = 100,
) -> RawTransaction:
    """Deterministic RawTransaction; n picks the hash, seconds offsets observed_at from T0."""
    return RawTransaction(
        hash="0x%064x" % n,
        sender=sender,
        receiver=receiver,
        value=units(value_units),
        observed_at=T0 + timedelta(seconds=seconds),
        block_number=block_number,
    )


def make_scored(n: int = 1, *, risk_score: int = 10, **kwargs):
    """ScoredTransaction with a fixed score and no patterns."""
    from backend_hyperchain.analysis_engine.models import AnalysisResult, ScoredTransaction

    raw = make_raw(n, **kwargs)
    return ScoredTransaction.from_raw(
        raw,
        AnalysisResult(risk_score=risk_score, insights=("Low-risk transaction",), ai_confidence=0.35),
    )


@pytest.fixture
def hub():
    from backend_hyperchain.broadcast.hub import BroadcastHub

    hub = BroadcastHub(default_buffer_size=8)
    yield hub
    hub.close()


@pytest.fixture
def store(hub):
    from backend_hyperchain.store.aggregation_store import AggregationStore

    return AggregationStore(hub)


@pytest.fixture
def query(store):
    from backend_hyperchain.query.service import QueryService

    return QueryService(store)


@pytest.fixture
def app():
    """FastAPI app with a synthetic-mode runtime; ingestion is not started."""
    from backend_hyperchain.api_server.server import create_app
    from backend_hyperchain.config.settings import Settings

    return create_app(Settings(), start_ingestion=False)


@pytest.fixture
def client(app):
    """FastAPI TestClient; entering the context runs the app lifespan."""
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c
