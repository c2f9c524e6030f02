"""
Ingestion pipeline: source → analyzer → store → alert engine (→ hub via store).

One asyncio task per source. Each task pulls one RawTransaction at a time and
drives it all the way into the store before pulling the next, so results from
one source are appended in arrival order; independent sources run
concurrently. Exception isolation per item: the loop never dies on a bad
transaction.

stop() signals every source and waits for the source tasks, so a transaction
that is being scored when stop() is called still gets stored.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from backend_hyperchain.alerts.engine import AlertEngine
from backend_hyperchain.analysis_engine.analyzer import RiskAnalyzer
from backend_hyperchain.analysis_engine.models import ScoredTransaction
from backend_hyperchain.core.exceptions import IngestionStartError
from backend_hyperchain.hyperchain_logging import bind_pipeline_context, get_logger, short_id
from backend_hyperchain.ingestion.models import RawTransaction
from backend_hyperchain.ingestion.source import TransactionSource
from backend_hyperchain.store.aggregation_store import AggregationStore

logger = get_logger(__name__)

DEFAULT_STOP_TIMEOUT_SEC = 30.0


class TransactionPipeline:
    def __init__(
        self,
        sources: Sequence[TransactionSource],
        analyzer: RiskAnalyzer,
        alert_engine: AlertEngine,
        store: AggregationStore,
        *,
        stop_timeout_sec: float = DEFAULT_STOP_TIMEOUT_SEC,
    ) -> None:
        self._sources = list(sources)
        self._analyzer = analyzer
        self._alert_engine = alert_engine
        self._store = store
        self._stop_timeout = stop_timeout_sec
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False
        self.processed = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sources(self) -> list[TransactionSource]:
        return list(self._sources)

    async def start(self) -> None:
        """Start one task per source. Raises IngestionStartError when nothing can run."""
        if self._running:
            return
        if not self._sources:
            raise IngestionStartError("no ingestion sources configured")
        stale = [s.name for s in self._sources if s.stopped]
        if stale:
            raise IngestionStartError(f"sources already stopped: {', '.join(stale)}")
        self._tasks = [
            asyncio.create_task(self._run_source(source), name=f"ingest-{source.name}")
            for source in self._sources
        ]
        self._running = True
        logger.info("pipeline_started", sources=[s.name for s in self._sources])

    async def stop(self) -> None:
        """Stop all sources and wait for in-flight items to finish."""
        if not self._running:
            return
        for source in self._sources:
            source.stop()
        done, pending = await asyncio.wait(self._tasks, timeout=self._stop_timeout)
        for task in pending:
            logger.warning("pipeline_stop_timeout", task=task.get_name())
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        self._running = False
        logger.info("pipeline_stopped", processed=self.processed, failed=self.failed)

    async def _run_source(self, source: TransactionSource) -> None:
        # Runs in its own task, so the binding only tags this source's lines
        bind_pipeline_context(source=source.name)
        logger.info("pipeline_source_started")
        try:
            async for raw in source.stream():
                self.process(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("pipeline_source_failed", error=str(e))
        logger.info("pipeline_source_finished")

    def process(self, raw: RawTransaction) -> ScoredTransaction | None:
        """
        Score, store and alert one transaction. Returns the stored transaction,
        or None for a duplicate or a failure (logged).
        """
        try:
            scored = self._analyzer.analyze(raw)
            if not self._store.append(scored):
                return None
            self._alert_engine.process(scored)
        except Exception as e:
            self.failed += 1
            logger.exception("pipeline_item_failed", tx_hash=short_id(raw.hash), error=str(e))
            return None
        self.processed += 1
        return scored

    def reanalyze(self, tx_hash: str) -> ScoredTransaction | None:
        """
        Re-run the analyzer on a stored transaction. The fresh result is
        returned only; stored transactions are never replaced.
        """
        stored = self._store.get_transaction(tx_hash)
        if stored is None:
            return None
        return self._analyzer.analyze(stored.raw)
