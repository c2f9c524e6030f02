"""
Tests for the ingestion pipeline and runtime wiring.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_hyperchain.agent_worker.pipeline import TransactionPipeline
from backend_hyperchain.agent_worker.runtime import build_runtime, build_sources
from backend_hyperchain.alerts.engine import AlertEngine
from backend_hyperchain.analysis_engine.analyzer import AnalyzerConfig, RiskAnalyzer
from backend_hyperchain.analysis_engine.detectors import DetectorRegistry, PatternDetector
from backend_hyperchain.broadcast.hub import Topic
from backend_hyperchain.config.settings import Settings
from backend_hyperchain.core.exceptions import IngestionStartError
from backend_hyperchain.ingestion.block_feed import BlockFeedSource
from backend_hyperchain.ingestion.models import RawTransaction
from backend_hyperchain.ingestion.source import TransactionSource
from backend_hyperchain.ingestion.synthetic import SyntheticSource
from conftest import T0, make_raw


class ListSource(TransactionSource):
    """Emits a fixed list of transactions, then waits until stopped."""

    def __init__(self, name, txs):
        super().__init__()
        self.name = name
        self._txs = list(txs)

    async def _produce(self):
        for tx in self._txs:
            await asyncio.sleep(0)
            yield tx
        await self._stop_event.wait()


def _pipeline(store, sources):
    return TransactionPipeline(sources, RiskAnalyzer(), AlertEngine(store), store)


async def _run_until(pipeline, store, count, timeout=2.0):
    await pipeline.start()
    deadline = asyncio.get_running_loop().time() + timeout
    while len(store) < count and asyncio.get_running_loop().time() < deadline:
        await asyncio.sleep(0.01)
    await pipeline.stop()


def test_pipeline_stores_in_source_order(store):
    txs = [make_raw(n, seconds=n) for n in range(1, 6)]
    pipeline = _pipeline(store, [ListSource("list", txs)])
    asyncio.run(_run_until(pipeline, store, 5))
    assert [tx.hash for tx in store.transactions()] == [tx.hash for tx in txs]
    assert pipeline.processed == 5
    assert pipeline.running is False


def test_pipeline_runs_sources_concurrently(store):
    a = [make_raw(n, sender="0x1") for n in range(1, 4)]
    b = [make_raw(n, sender="0x2") for n in range(10, 13)]
    pipeline = _pipeline(store, [ListSource("a", a), ListSource("b", b)])
    asyncio.run(_run_until(pipeline, store, 6))
    stored = store.transactions()
    assert len(stored) == 6
    # Per-source order is preserved
    assert [tx.hash for tx in stored if tx.sender == "0x1"] == [tx.hash for tx in a]
    assert [tx.hash for tx in stored if tx.sender == "0x2"] == [tx.hash for tx in b]


def test_pipeline_raises_alert_for_high_risk(store, hub):
    sub = hub.subscribe(Topic.NEW_ALERT)
    analyzer = RiskAnalyzer(AnalyzerConfig(volume_anomaly_weight=80), DetectorRegistry())
    pipeline = TransactionPipeline([], analyzer, AlertEngine(store), store)
    pipeline.process(make_raw(1, value_units=5))
    scored = pipeline.process(make_raw(2, value_units=1500))
    assert scored.risk_score == 80
    alerts = store.alerts()
    assert len(alerts) == 1
    assert alerts[0].transaction_hash == scored.hash
    assert alerts[0].severity == 80
    assert sub.get_nowait().payload == alerts[0]


def test_pipeline_duplicate_is_not_reprocessed(store):
    pipeline = _pipeline(store, [])
    assert pipeline.process(make_raw(1)) is not None
    assert pipeline.process(make_raw(1)) is None
    assert len(store) == 1
    assert pipeline.processed == 1
    assert pipeline.failed == 0


def test_pipeline_isolates_item_failures(store):
    pipeline = _pipeline(store, [])
    store.close()
    assert pipeline.process(make_raw(1)) is None
    assert pipeline.failed == 1


def test_pipeline_start_without_sources(store):
    pipeline = _pipeline(store, [])
    with pytest.raises(IngestionStartError):
        asyncio.run(pipeline.start())


def test_pipeline_start_with_stopped_source(store):
    source = ListSource("list", [])
    source.stop()
    pipeline = _pipeline(store, [source])
    with pytest.raises(IngestionStartError, match="already stopped"):
        asyncio.run(pipeline.start())


def test_reanalyze_does_not_mutate_store(store):
    pipeline = _pipeline(store, [])
    original = pipeline.process(make_raw(1, value_units=2000))
    fresh = pipeline.reanalyze(original.hash)
    assert fresh.hash == original.hash
    assert store.get_transaction(original.hash) is original
    assert len(store) == 1
    assert pipeline.reanalyze("0xmissing") is None


def test_build_sources_by_mode():
    assert [type(s) for s in build_sources(Settings(ingestion_mode="synthetic"))] == [SyntheticSource]
    assert [type(s) for s in build_sources(Settings(ingestion_mode="live"))] == [BlockFeedSource]
    assert [type(s) for s in build_sources(Settings(ingestion_mode="both"))] == [
        BlockFeedSource,
        SyntheticSource,
    ]


def test_build_sources_invalid_config():
    with pytest.raises(IngestionStartError):
        build_sources(Settings(ingestion_mode="live", ws_url=" "))


def test_runtime_end_to_end_with_custom_source():
    txs = [make_raw(n, value_units=n * 100, seconds=n) for n in range(1, 4)]
    runtime = build_runtime(Settings(), sources=[ListSource("list", txs)])

    async def scenario():
        await runtime.start()
        deadline = asyncio.get_running_loop().time() + 2
        while len(runtime.store) < 3 and asyncio.get_running_loop().time() < deadline:
            await asyncio.sleep(0.01)
        summary = runtime.query.analytics_summary()
        await runtime.shutdown()
        return summary

    summary = asyncio.run(scenario())
    assert summary.total_transactions == 3
    assert runtime.store.closed is True
    assert runtime.hub.subscriber_count() == 0


class CrashingDetector(PatternDetector):
    pattern_type = "crashing"
    weight = 10

    def detect(self, tx):
        raise RuntimeError("detector crashed")


def test_degraded_transaction_keeps_wallet_queries_working(store, query):
    """A transaction stored with the degraded result still aggregates cleanly."""
    analyzer = RiskAnalyzer(detectors=DetectorRegistry([CrashingDetector()]))
    pipeline = TransactionPipeline([], analyzer, AlertEngine(store), store)
    scored = pipeline.process(make_raw(1, value_units=1500))
    assert scored.risk_score == 0
    assert scored.insights == ("AI analysis temporarily unavailable",)
    wa = query.wallet_analysis(scored.sender)
    assert wa.total_transactions == 1
    assert wa.total_volume == str(1500 * 10**18)
    assert wa.risk_score == 0


def test_non_numeric_value_never_reaches_the_store(store, query):
    """Bad values are rejected when the RawTransaction is built, before the pipeline."""
    with pytest.raises(ValueError):
        RawTransaction(
            hash="0xbad",
            sender="0xa",
            receiver=None,
            value="not-a-number",
            observed_at=T0,
            block_number=1,
        )
    pipeline = _pipeline(store, [])
    pipeline.process(make_raw(1, sender="0xa"))
    assert query.wallet_analysis("0xa").total_transactions == 1
