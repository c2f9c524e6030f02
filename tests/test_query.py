"""
Tests for the query service: risk-band filters, pagination, wallet analysis,
alerts filters and live feed.
"""

from __future__ import annotations

import pytest

from backend_hyperchain.alerts.engine import AlertEngine
from backend_hyperchain.analysis_engine.models import RiskBand, risk_band_for
from conftest import T0, WALLET_A, WALLET_B, WALLET_C, make_scored, units


def test_risk_bands():
    assert risk_band_for(100) is RiskBand.HIGH
    assert risk_band_for(70) is RiskBand.HIGH
    assert risk_band_for(69) is RiskBand.MEDIUM
    assert risk_band_for(40) is RiskBand.MEDIUM
    assert risk_band_for(39) is RiskBand.LOW
    assert risk_band_for(0) is RiskBand.LOW


def test_list_transactions_newest_first(store, query):
    for n in range(1, 6):
        store.append(make_scored(n, seconds=n))
    hashes = [tx.hash for tx in query.list_transactions()]
    assert hashes == [make_scored(n).hash for n in range(5, 0, -1)]


def test_list_transactions_same_time_latest_insert_first(store, query):
    store.append(make_scored(1))
    store.append(make_scored(2))
    assert [tx.hash for tx in query.list_transactions()] == [make_scored(2).hash, make_scored(1).hash]


def test_list_transactions_pagination(store, query):
    for n in range(1, 8):
        store.append(make_scored(n, seconds=n))
    page = query.list_transactions(limit=3, offset=2)
    assert [tx.hash for tx in page] == [make_scored(n).hash for n in (5, 4, 3)]
    assert query.list_transactions(limit=0) == []
    assert query.list_transactions(offset=100) == []


def test_list_transactions_negative_page_rejected(query):
    with pytest.raises(ValueError):
        query.list_transactions(limit=-1)
    with pytest.raises(ValueError):
        query.list_transactions(offset=-1)


def test_list_transactions_by_band(store, query):
    store.append(make_scored(1, risk_score=75, seconds=1))
    store.append(make_scored(2, risk_score=50, seconds=2))
    store.append(make_scored(3, risk_score=10, seconds=3))
    store.append(make_scored(4, risk_score=70, seconds=4))
    assert [tx.risk_score for tx in query.list_transactions(RiskBand.HIGH)] == [70, 75]
    assert [tx.risk_score for tx in query.list_transactions("MEDIUM")] == [50]
    assert [tx.risk_score for tx in query.list_transactions(RiskBand.LOW)] == [10]


def test_wallet_analysis(store, query):
    store.append(make_scored(1, risk_score=80, sender=WALLET_A, receiver=WALLET_B, value_units=2, seconds=1))
    store.append(make_scored(2, risk_score=65, sender=WALLET_B, receiver=WALLET_A, value_units=3, seconds=2))
    store.append(make_scored(3, risk_score=0, sender=WALLET_C, receiver=WALLET_B, value_units=4, seconds=3))
    wa = query.wallet_analysis(WALLET_A)
    assert wa.total_transactions == 2
    assert wa.total_volume == units(5)
    # mean 72.5 rounds half up
    assert wa.risk_score == 73
    assert wa.is_high_risk is True
    assert wa.last_activity == make_scored(2, seconds=2).observed_at
    assert [tx.hash for tx in wa.recent_transactions] == [make_scored(2).hash, make_scored(1).hash]


def test_wallet_analysis_not_high_risk_below_70(store, query):
    store.append(make_scored(1, risk_score=69))
    store.append(make_scored(2, risk_score=70))
    wa = query.wallet_analysis(WALLET_A)
    assert wa.risk_score == 70
    assert wa.is_high_risk is False


def test_wallet_analysis_unknown_address(query):
    wa = query.wallet_analysis("0xnobody")
    assert wa.address == "0xnobody"
    assert wa.total_transactions == 0
    assert wa.total_volume == "0"
    assert wa.risk_score == 0
    assert wa.last_activity is None
    assert wa.is_high_risk is False
    assert wa.recent_transactions == ()


def test_wallet_recent_transactions_capped(store, query):
    for n in range(1, 16):
        store.append(make_scored(n, seconds=n))
    wa = query.wallet_analysis(WALLET_A)
    assert wa.total_transactions == 15
    assert len(wa.recent_transactions) == 10
    assert wa.recent_transactions[0].observed_at > wa.recent_transactions[-1].observed_at


def test_list_alerts_filters(store, query):
    engine = AlertEngine(store)
    a1 = engine.process(make_scored(1, risk_score=80))
    a2 = engine.process(make_scored(2, risk_score=90))
    store.resolve_alert(a1.id)
    assert [a.id for a in query.list_alerts()] == [a1.id, a2.id]
    assert [a.id for a in query.list_alerts(resolved=False)] == [a2.id]
    assert [a.id for a in query.list_alerts(resolved=True)] == [a1.id]
    assert [a.id for a in query.list_alerts(severity=90)] == [a2.id]
    assert query.list_alerts(severity=90, resolved=True) == []


def test_live_transactions(store, query):
    for n in range(1, 13):
        store.append(make_scored(n, seconds=n))
    live = query.live_transactions()
    assert len(live) == 10
    assert live[0].hash == make_scored(12).hash
    assert [tx.hash for tx in query.live_transactions(2)] == [make_scored(12).hash, make_scored(11).hash]


def test_analytics_summary_matches_store(store, query):
    store.append(make_scored(1, risk_score=50))
    assert query.analytics_summary() == store.analytics()
    assert query.analytics_summary().last_updated >= T0
