"""
Pattern detectors for the risk analyzer.

Every detector implements detect(RawTransaction) -> Pattern | None and declares
the pattern type it produces, the score weight a detection adds and the insight
shown for it. The analyzer iterates a DetectorRegistry in registration order,
so new detectors are added by registering them; scoring and insight code stay
unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import OrderedDict, deque
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Iterator

from backend_hyperchain.analysis_engine.models import Pattern, PatternType
from backend_hyperchain.hyperchain_logging import get_logger, short_id
from backend_hyperchain.ingestion.models import RawTransaction

logger = get_logger(__name__)

WHALE_WEIGHT = 20
BOT_ACTIVITY_WEIGHT = 15

DEFAULT_WHALE_THRESHOLD_UNITS = 500.0
DEFAULT_WHALE_CONFIDENCE = 0.85
DEFAULT_BOT_CONFIDENCE = 0.78
# FREQUENCY_SPIKE: transactions per minute from one sender
DEFAULT_BOT_MAX_TX_PER_WINDOW = 10
DEFAULT_BOT_WINDOW_SEC = 60.0
DEFAULT_BOT_MAX_TRACKED_SENDERS = 10_000


class PatternDetector(ABC):
    """Capability interface: inspect one transaction, return zero or one Pattern."""

    pattern_type: str
    weight: int = 0
    """Score added when this detector fires."""
    insight: str | None = None
    """Insight appended once per detected pattern type; None for no insight."""

    @abstractmethod
    def detect(self, tx: RawTransaction) -> Pattern | None:
        """Return a Pattern when the transaction matches, else None."""


class DetectorRegistry:
    """Ordered registry of pattern detectors; at most one detector per pattern type."""

    def __init__(self, detectors: Iterable[PatternDetector] = ()) -> None:
        self._detectors: list[PatternDetector] = []
        for detector in detectors:
            self.register(detector)

    def register(self, detector: PatternDetector) -> None:
        if any(d.pattern_type == detector.pattern_type for d in self._detectors):
            raise ValueError(f"detector for {detector.pattern_type!r} already registered")
        self._detectors.append(detector)
        logger.debug(
            "detector_registered",
            pattern_type=detector.pattern_type,
            weight=detector.weight,
        )

    def unregister(self, pattern_type: str) -> bool:
        before = len(self._detectors)
        self._detectors = [d for d in self._detectors if d.pattern_type != pattern_type]
        return len(self._detectors) != before

    def weight_for(self, pattern_type: str) -> int:
        for d in self._detectors:
            if d.pattern_type == pattern_type:
                return d.weight
        return 0

    def insight_for(self, pattern_type: str) -> str | None:
        for d in self._detectors:
            if d.pattern_type == pattern_type:
                return d.insight
        return None

    def __iter__(self) -> Iterator[PatternDetector]:
        return iter(list(self._detectors))

    def __len__(self) -> int:
        return len(self._detectors)


class WhaleMovementDetector(PatternDetector):
    """Large-holder activity: value at or above whale_threshold units."""

    pattern_type = PatternType.WHALE_MOVEMENT.value
    weight = WHALE_WEIGHT
    insight = "Whale activity may impact market"

    def __init__(
        self,
        whale_threshold: float = DEFAULT_WHALE_THRESHOLD_UNITS,
        confidence: float = DEFAULT_WHALE_CONFIDENCE,
    ) -> None:
        self._threshold = Decimal(str(whale_threshold))
        self._confidence = confidence

    def detect(self, tx: RawTransaction) -> Pattern | None:
        if tx.value_units < self._threshold:
            return None
        return Pattern(
            type=self.pattern_type,
            confidence=self._confidence,
            description="Large holder activity detected",
        )


class BotActivityDetector(PatternDetector):
    """
    Automated trading: the sender has sent max_tx_per_window or more
    transactions within window_sec of observed time (this one included).

    History is kept per sender for the window only; the number of tracked
    senders is bounded (least recently active evicted). A hash already in the
    window is not counted twice, so re-analysing a transaction is stable.
    """

    pattern_type = PatternType.BOT_ACTIVITY.value
    weight = BOT_ACTIVITY_WEIGHT
    insight = "Automated trading detected"

    def __init__(
        self,
        max_tx_per_window: int = DEFAULT_BOT_MAX_TX_PER_WINDOW,
        window_sec: float = DEFAULT_BOT_WINDOW_SEC,
        confidence: float = DEFAULT_BOT_CONFIDENCE,
        max_tracked_senders: int = DEFAULT_BOT_MAX_TRACKED_SENDERS,
    ) -> None:
        if max_tx_per_window < 1:
            raise ValueError("max_tx_per_window must be >= 1")
        if window_sec <= 0:
            raise ValueError("window_sec must be positive")
        self._max_tx = max_tx_per_window
        self._window_sec = window_sec
        self._confidence = confidence
        self._max_senders = max(1, max_tracked_senders)
        self._history: OrderedDict[str, deque[tuple[datetime, str]]] = OrderedDict()

    def _history_for(self, sender: str) -> deque[tuple[datetime, str]]:
        hist = self._history.get(sender)
        if hist is None:
            if len(self._history) >= self._max_senders:
                self._history.popitem(last=False)
            hist = deque()
            self._history[sender] = hist
        else:
            self._history.move_to_end(sender)
        return hist

    def detect(self, tx: RawTransaction) -> Pattern | None:
        hist = self._history_for(tx.sender)
        now = tx.observed_at
        while hist and (now - hist[0][0]).total_seconds() > self._window_sec:
            hist.popleft()
        if all(h != tx.hash for _, h in hist):
            hist.append((now, tx.hash))
        count = len(hist)
        if count < self._max_tx:
            return None
        logger.debug(
            "bot_activity_detected",
            wallet_id=short_id(tx.sender),
            tx_count=count,
            window_sec=self._window_sec,
        )
        return Pattern(
            type=self.pattern_type,
            confidence=self._confidence,
            description=f"Automated trading pattern: {count} transactions in {self._window_sec:g}s",
        )


def default_detectors(whale_threshold: float = DEFAULT_WHALE_THRESHOLD_UNITS) -> DetectorRegistry:
    """Reference heuristic set: whale movement, then bot activity."""
    return DetectorRegistry([WhaleMovementDetector(whale_threshold), BotActivityDetector()])
