"""Offline analysis of recorded sessions."""

from .features import FeatureExtractor, extract_features
from .detector import EventDetector
from .patterns import analyze_volume_patterns
from .insights import (
    calculate_sleep_quality,
    classify_severity,
    generate_analysis_result,
    generate_insights,
    snore_rate,
)

__all__ = [
    "FeatureExtractor",
    "extract_features",
    "EventDetector",
    "analyze_volume_patterns",
    "calculate_sleep_quality",
    "classify_severity",
    "generate_analysis_result",
    "generate_insights",
    "snore_rate",
]
