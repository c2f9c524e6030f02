"""
Tests for the aggregation store: append, duplicates, analytics counters,
alerts, resolve and close.
"""

from __future__ import annotations

import threading

import pytest

from backend_hyperchain.alerts.engine import AlertEngine
from backend_hyperchain.broadcast.hub import Topic
from backend_hyperchain.core.exceptions import StoreClosedError
from backend_hyperchain.store.aggregation_store import AggregationStore
from conftest import make_scored


def _assert_summary_consistent(store):
    """Counters sum to the total, and the average is the mean of stored scores."""
    with store._lock:
        txs = store.transactions()
        summary = store.analytics()
    assert len(txs) == summary.total_transactions
    assert (
        summary.critical_risk + summary.high_risk + summary.medium_risk + summary.low_risk
        == summary.total_transactions
    )
    if txs:
        assert summary.average_risk_score == pytest.approx(sum(tx.risk_score for tx in txs) / len(txs))


def test_append_and_get(store):
    tx = make_scored(1, risk_score=42)
    assert store.append(tx) is True
    assert store.get_transaction(tx.hash) == tx
    assert store.transactions() == (tx,)
    assert len(store) == 1
    assert store.get_transaction("0xmissing") is None


def test_duplicate_hash_rejected(store):
    store.append(make_scored(1, risk_score=10))
    assert store.append(make_scored(1, risk_score=90)) is False
    assert len(store) == 1
    assert store.get_transaction(make_scored(1).hash).risk_score == 10
    assert store.analytics().total_transactions == 1


def test_analytics_counters():
    """critical >= 80, high 60-79, medium 40-59, low < 40."""
    store = AggregationStore()
    scores = [95, 80, 79, 60, 59, 40, 39, 0]
    for n, score in enumerate(scores, start=1):
        store.append(make_scored(n, risk_score=score))
        _assert_summary_consistent(store)
        assert store.analytics().average_risk_score == pytest.approx(sum(scores[:n]) / n)
    summary = store.analytics()
    assert summary.total_transactions == 8
    assert summary.critical_risk == 2
    assert summary.high_risk == 2
    assert summary.medium_risk == 2
    assert summary.low_risk == 2
    assert summary.average_risk_score == pytest.approx(452 / 8)
    assert (
        summary.critical_risk + summary.high_risk + summary.medium_risk + summary.low_risk
        == summary.total_transactions
    )


def test_empty_analytics():
    summary = AggregationStore().analytics()
    assert summary.total_transactions == 0
    assert summary.average_risk_score == 0.0


def test_append_announces_transaction_then_analytics(store, hub):
    tx_sub = hub.subscribe(Topic.NEW_TRANSACTION)
    an_sub = hub.subscribe(Topic.ANALYTICS_UPDATED)
    tx = make_scored(1, risk_score=50)
    store.append(tx)
    assert tx_sub.get_nowait().payload == tx
    summary = an_sub.get_nowait().payload
    assert summary.total_transactions == 1
    assert summary == store.analytics()


def test_duplicate_not_announced(store, hub):
    sub = hub.subscribe(Topic.NEW_TRANSACTION)
    store.append(make_scored(1))
    store.append(make_scored(1))
    assert sub.pending == 1


def test_announce_subset(hub):
    store = AggregationStore(hub, announce=[Topic.NEW_ALERT])
    sub = hub.subscribe(Topic.NEW_TRANSACTION)
    store.append(make_scored(1))
    assert sub.get_nowait() is None


def test_resolve_alert_idempotent(store):
    alert = AlertEngine(store).process(make_scored(1, risk_score=90))
    first = store.resolve_alert(alert.id)
    assert first.resolved is True
    assert first.id == alert.id
    second = store.resolve_alert(alert.id)
    assert second == first
    assert store.get_alert(alert.id).resolved is True
    assert [a.resolved for a in store.alerts()] == [True]


def test_resolve_unknown_alert(store):
    assert store.resolve_alert("12345") is None
    assert store.alerts() == ()


def test_close_rejects_mutations(store):
    store.append(make_scored(1))
    store.close()
    assert store.closed is True
    assert len(store) == 0
    with pytest.raises(StoreClosedError):
        store.append(make_scored(2))
    with pytest.raises(StoreClosedError):
        store.resolve_alert("1")
    # Closing twice is a no-op
    store.close()


def test_concurrent_writers_keep_analytics_in_step(store):
    """Readers never see a transaction without its analytics update."""
    writers = 4
    per_writer = 200
    stop = threading.Event()
    errors: list[AssertionError] = []

    def write(offset):
        for i in range(per_writer):
            n = offset * per_writer + i + 1
            store.append(make_scored(n, risk_score=n % 101))

    def read():
        while not stop.is_set():
            try:
                _assert_summary_consistent(store)
            except AssertionError as e:
                errors.append(e)
                return

    reader = threading.Thread(target=read)
    reader.start()
    threads = [threading.Thread(target=write, args=(w,)) for w in range(writers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    stop.set()
    reader.join()

    assert errors == []
    assert len(store) == writers * per_writer
    _assert_summary_consistent(store)
