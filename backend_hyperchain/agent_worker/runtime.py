"""
Runtime assembly: build every component from Settings and own their lifecycle.

The store and hub are constructed once per runtime, shared by the pipeline,
the query service and the API, and torn down in shutdown().
"""

from __future__ import annotations

from dataclasses import dataclass, field

from backend_hyperchain.alerts.engine import AlertConfig, AlertEngine
from backend_hyperchain.analysis_engine.analyzer import AnalyzerConfig, RiskAnalyzer
from backend_hyperchain.analysis_engine.detectors import default_detectors
from backend_hyperchain.agent_worker.pipeline import TransactionPipeline
from backend_hyperchain.broadcast.hub import BroadcastHub
from backend_hyperchain.config.env import INGESTION_BOTH, INGESTION_LIVE, INGESTION_SYNTHETIC
from backend_hyperchain.config.settings import Settings
from backend_hyperchain.core.exceptions import IngestionStartError
from backend_hyperchain.hyperchain_logging import get_logger
from backend_hyperchain.ingestion.block_feed import BlockFeedConfig, BlockFeedSource
from backend_hyperchain.ingestion.source import TransactionSource
from backend_hyperchain.ingestion.synthetic import SyntheticSource
from backend_hyperchain.query.service import QueryService
from backend_hyperchain.store.aggregation_store import AggregationStore

logger = get_logger(__name__)


def build_sources(settings: Settings) -> list[TransactionSource]:
    """Sources for settings.ingestion_mode. Invalid source config -> IngestionStartError."""
    sources: list[TransactionSource] = []
    try:
        if settings.ingestion_mode in (INGESTION_LIVE, INGESTION_BOTH):
            sources.append(
                BlockFeedSource(
                    BlockFeedConfig(
                        ws_url=settings.ws_url,
                        rpc_url=settings.rpc_url,
                        request_timeout_sec=settings.feed_request_timeout_sec,
                    )
                )
            )
        if settings.ingestion_mode in (INGESTION_SYNTHETIC, INGESTION_BOTH):
            sources.append(SyntheticSource(settings.synthetic_interval_sec))
    except ValueError as e:
        raise IngestionStartError(f"invalid ingestion config: {e}") from e
    return sources


@dataclass
class HyperchainRuntime:
    settings: Settings
    hub: BroadcastHub
    store: AggregationStore
    analyzer: RiskAnalyzer
    alert_engine: AlertEngine
    query: QueryService
    pipeline: TransactionPipeline
    sources: list[TransactionSource] = field(default_factory=list)

    async def start(self) -> None:
        await self.pipeline.start()

    async def shutdown(self) -> None:
        """Stop ingestion (in-flight items complete), then close store and hub."""
        await self.pipeline.stop()
        self.store.close()
        self.hub.close()
        logger.info("runtime_shutdown")


def build_runtime(
    settings: Settings,
    sources: list[TransactionSource] | None = None,
) -> HyperchainRuntime:
    """Wire hub → store → analyzer → alert engine → query → pipeline."""
    hub = BroadcastHub(default_buffer_size=settings.subscriber_buffer_size)
    store = AggregationStore(hub)
    analyzer = RiskAnalyzer(
        AnalyzerConfig(volume_anomaly_threshold=settings.volume_anomaly_threshold),
        default_detectors(whale_threshold=settings.whale_threshold),
    )
    alert_engine = AlertEngine(store, AlertConfig(alert_threshold=settings.alert_threshold))
    if sources is None:
        sources = build_sources(settings)
    pipeline = TransactionPipeline(sources, analyzer, alert_engine, store)
    logger.info(
        "runtime_built",
        ingestion_mode=settings.ingestion_mode,
        sources=[s.name for s in sources],
        alert_threshold=settings.alert_threshold,
    )
    return HyperchainRuntime(
        settings=settings,
        hub=hub,
        store=store,
        analyzer=analyzer,
        alert_engine=alert_engine,
        query=QueryService(store),
        pipeline=pipeline,
        sources=list(sources),
    )
