"""
Analysis engine package.

Scores transactions for risk: volume anomaly check, pluggable pattern
detectors, score aggregation, insights and confidence.
"""

from backend_hyperchain.analysis_engine.analyzer import AnalyzerConfig, RiskAnalyzer
from backend_hyperchain.analysis_engine.detectors import (
    BotActivityDetector,
    DetectorRegistry,
    PatternDetector,
    WhaleMovementDetector,
    default_detectors,
)
from backend_hyperchain.analysis_engine.models import (
    AnalysisResult,
    Pattern,
    PatternType,
    RiskBand,
    ScoredTransaction,
    risk_band_for,
)

__all__ = [
    "AnalysisResult",
    "AnalyzerConfig",
    "BotActivityDetector",
    "DetectorRegistry",
    "Pattern",
    "PatternDetector",
    "PatternType",
    "RiskAnalyzer",
    "RiskBand",
    "ScoredTransaction",
    "WhaleMovementDetector",
    "default_detectors",
    "risk_band_for",
]
