"""
Tests for the alert engine: threshold, alert fields, ids, store hand-off.
"""

from __future__ import annotations

import pytest

from backend_hyperchain.alerts.engine import AlertConfig, AlertEngine
from backend_hyperchain.alerts.models import (
    ALERT_TYPE_HIGH_RISK_TRANSACTION,
    AlertIdGenerator,
    RiskAlert,
)
from backend_hyperchain.broadcast.hub import Topic
from conftest import T0, WALLET_A, make_scored


def test_below_threshold_no_alert():
    engine = AlertEngine()
    assert engine.evaluate(make_scored(risk_score=69)) is None


def test_threshold_is_inclusive():
    """Score exactly 70 raises an alert."""
    engine = AlertEngine()
    alert = engine.evaluate(make_scored(risk_score=70))
    assert alert is not None
    assert alert.severity == 70


def test_alert_fields():
    engine = AlertEngine()
    scored = make_scored(7, risk_score=85)
    alert = engine.evaluate(scored)
    assert alert.wallet_address == WALLET_A
    assert alert.alert_type == ALERT_TYPE_HIGH_RISK_TRANSACTION
    assert alert.description == "High-risk transaction detected: 85% risk score"
    assert alert.resolved is False
    assert alert.transaction_hash == scored.hash


def test_custom_threshold():
    engine = AlertEngine(config=AlertConfig(alert_threshold=30))
    assert engine.threshold == 30
    assert engine.evaluate(make_scored(risk_score=30)) is not None


def test_process_appends_to_store_and_announces(store, hub):
    sub = hub.subscribe(Topic.NEW_ALERT)
    engine = AlertEngine(store)
    alert = engine.process(make_scored(risk_score=90))
    assert store.alerts() == (alert,)
    event = sub.get_nowait()
    assert event.payload == alert


def test_repeat_offender_alerts_every_time(store):
    """No deduplication: each qualifying transaction alerts."""
    engine = AlertEngine(store)
    engine.process(make_scored(1, risk_score=80))
    engine.process(make_scored(2, risk_score=80))
    alerts = store.alerts()
    assert len(alerts) == 2
    assert alerts[0].id != alerts[1].id


def test_ids_strictly_increasing():
    gen = AlertIdGenerator()
    ids = [int(gen.next_id()) for _ in range(1000)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_alert_as_resolved_copies():
    alert = RiskAlert(
        id="1",
        wallet_address=WALLET_A,
        alert_type=ALERT_TYPE_HIGH_RISK_TRANSACTION,
        severity=75,
        description="d",
        created_at=T0,
    )
    resolved = alert.as_resolved()
    assert resolved.resolved is True
    assert alert.resolved is False
    assert resolved.as_resolved() is resolved
    assert resolved.to_dict()["created_at"] == T0.isoformat()


def test_alert_severity_validated():
    with pytest.raises(ValueError):
        RiskAlert(
            id="1",
            wallet_address=WALLET_A,
            alert_type=ALERT_TYPE_HIGH_RISK_TRANSACTION,
            severity=101,
            description="d",
            created_at=T0,
        )
