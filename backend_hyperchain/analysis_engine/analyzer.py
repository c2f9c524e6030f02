"""
Risk analyzer: volume check, pattern detection, score, insights, confidence.

Fully explainable: the score is the sum of a fixed volume-anomaly weight and
the weights of the detectors that fired, clamped to 0-100. Any exception
during analysis is caught here and turned into a degraded result so one bad
transaction never stops the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from backend_hyperchain.analysis_engine.detectors import DetectorRegistry, default_detectors
from backend_hyperchain.analysis_engine.models import AnalysisResult, Pattern, ScoredTransaction
from backend_hyperchain.hyperchain_logging import get_logger, short_id
from backend_hyperchain.ingestion.models import RawTransaction

logger = get_logger(__name__)

DEFAULT_VOLUME_ANOMALY_THRESHOLD = 1000.0
VOLUME_ANOMALY_WEIGHT = 30
BASELINE_CONFIDENCE = 0.7
MIN_SCORE = 0
MAX_SCORE = 100

HIGH_RISK_INSIGHT = "High-risk transaction detected"
MEDIUM_RISK_INSIGHT = "Medium-risk transaction"
LOW_RISK_INSIGHT = "Low-risk transaction"
ANALYSIS_UNAVAILABLE_INSIGHT = "AI analysis temporarily unavailable"


@dataclass
class AnalyzerConfig:
    """Thresholds for the risk analyzer."""

    volume_anomaly_threshold: float = DEFAULT_VOLUME_ANOMALY_THRESHOLD
    """Whole currency units; strictly above this adds volume_anomaly_weight."""
    volume_anomaly_weight: int = VOLUME_ANOMALY_WEIGHT
    baseline_confidence: float = BASELINE_CONFIDENCE
    high_banner_above: int = 70
    """Scores strictly above this get the high-risk banner."""
    medium_banner_min: int = 40
    """Scores from this up to high_banner_above get the medium-risk banner."""


def degraded_result() -> AnalysisResult:
    """Result returned when analysis fails: score 0, no patterns, confidence 0."""
    return AnalysisResult(
        risk_score=0,
        patterns=(),
        insights=(ANALYSIS_UNAVAILABLE_INSIGHT,),
        ai_confidence=0.0,
    )


class RiskAnalyzer:
    """Scores RawTransactions with a pluggable, ordered set of pattern detectors."""

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        detectors: DetectorRegistry | None = None,
    ) -> None:
        self._config = config or AnalyzerConfig()
        self._detectors = detectors if detectors is not None else default_detectors()
        self._volume_threshold = Decimal(str(self._config.volume_anomaly_threshold))

    @property
    def detectors(self) -> DetectorRegistry:
        return self._detectors

    def analyze(self, raw: RawTransaction) -> ScoredTransaction:
        """Score one transaction; never raises for analysis errors."""
        result = self.score(raw)
        return ScoredTransaction.from_raw(raw, result)

    def score(self, raw: RawTransaction) -> AnalysisResult:
        try:
            result = self._score(raw)
        except Exception as e:
            logger.exception(
                "analysis_failed",
                tx_hash=short_id(raw.hash),
                error=str(e),
            )
            return degraded_result()
        logger.debug(
            "analysis_done",
            tx_hash=short_id(raw.hash),
            risk_score=result.risk_score,
            patterns=[p.type for p in result.patterns],
        )
        return result

    def _score(self, raw: RawTransaction) -> AnalysisResult:
        cfg = self._config
        volume_anomaly = raw.value_units > self._volume_threshold

        patterns: list[Pattern] = []
        weights = 0
        pattern_insights: list[str] = []
        seen_types: set[str] = set()
        for detector in self._detectors:
            pattern = detector.detect(raw)
            if pattern is None:
                continue
            patterns.append(pattern)
            weights += detector.weight
            if detector.insight and pattern.type not in seen_types:
                pattern_insights.append(detector.insight)
            seen_types.add(pattern.type)

        score = (cfg.volume_anomaly_weight if volume_anomaly else 0) + weights
        score = max(MIN_SCORE, min(MAX_SCORE, score))

        insights = [self._banner(score), *pattern_insights]
        return AnalysisResult(
            risk_score=score,
            patterns=tuple(patterns),
            insights=tuple(insights),
            ai_confidence=self._confidence(patterns),
        )

    def _banner(self, score: int) -> str:
        if score > self._config.high_banner_above:
            return HIGH_RISK_INSIGHT
        if score >= self._config.medium_banner_min:
            return MEDIUM_RISK_INSIGHT
        return LOW_RISK_INSIGHT

    def _confidence(self, patterns: list[Pattern]) -> float:
        """Mean pattern confidence (0 if none) averaged 50/50 with the baseline, clamped."""
        mean = sum(p.confidence for p in patterns) / len(patterns) if patterns else 0.0
        return min(max((mean + self._config.baseline_confidence) / 2, 0.0), 1.0)
