"""Rule-based severity classification, narrative insights and quality score.

Everything here is a fixed heuristic: identical inputs always produce
identical outputs.
"""

import logging
from typing import List

from ..errors import DegenerateDurationError
from ..models.analysis import AnalysisInsights, AnalysisResult, Severity, VolumePatterns

logger = logging.getLogger(__name__)

MODERATE_RATE = 5.0
SEVERE_RATE = 15.0
VARIABILITY_TIP_THRESHOLD = 0.1
QUIET_PERIOD_TIP_THRESHOLD = 5

MIN_SCORE = 1.0
MAX_SCORE = 10.0

MODERATE_RECOMMENDATIONS = [
    "Consider sleeping on your side rather than your back",
    "Elevate your head with an extra pillow",
]
SEVERE_RECOMMENDATIONS = [
    "Consult with a healthcare provider about sleep apnea",
    "Consider weight management if applicable",
    "Avoid alcohol and sedatives before bedtime",
]
VARIABILITY_TIP = ("Your breathing patterns show high variability - "
                   "consider stress reduction techniques")
ENVIRONMENT_TIP = ("Few quiet periods detected - ensure your sleeping environment "
                   "is conducive to restful sleep")


def snore_rate(snore_events: int, duration_seconds: float) -> float:
    """Snore events per hour of recording.

    Raises:
        DegenerateDurationError: duration_seconds is zero or negative
    """
    if duration_seconds <= 0:
        raise DegenerateDurationError(
            f"Cannot derive a snore rate from a duration of {duration_seconds}s")
    return snore_events / (duration_seconds / 3600.0)


def classify_severity(rate: float) -> Severity:
    if rate < MODERATE_RATE:
        return Severity.MILD
    if rate < SEVERE_RATE:
        return Severity.MODERATE
    return Severity.SEVERE


def _narrative(severity: Severity, snore_events: int, hours: float) -> str:
    if severity == Severity.MILD:
        return (f"Your snoring was minimal during this recording session. You had "
                f"{snore_events} snore events over {hours:.1f} hours, which is "
                f"considered mild.")
    if severity == Severity.MODERATE:
        return (f"You experienced moderate snoring with {snore_events} events over "
                f"{hours:.1f} hours. This may be affecting your sleep quality.")
    return (f"You had frequent snoring episodes ({snore_events} events) during this "
            f"{hours:.1f}-hour period. This level of snoring may significantly impact "
            f"your sleep quality and should be addressed.")


def generate_insights(snore_events: int, patterns: VolumePatterns,
                      duration_seconds: float) -> AnalysisInsights:
    """Severity, narrative text and ordered recommendations for a session."""
    rate = snore_rate(snore_events, duration_seconds)
    hours = duration_seconds / 3600.0
    severity = classify_severity(rate)

    recommendations: List[str] = []
    if severity == Severity.MODERATE:
        recommendations.extend(MODERATE_RECOMMENDATIONS)
    elif severity == Severity.SEVERE:
        recommendations.extend(SEVERE_RECOMMENDATIONS)

    if patterns.variability > VARIABILITY_TIP_THRESHOLD:
        recommendations.append(VARIABILITY_TIP)
    if patterns.quiet_period_count < QUIET_PERIOD_TIP_THRESHOLD:
        recommendations.append(ENVIRONMENT_TIP)

    return AnalysisInsights(
        severity=severity,
        narrative=_narrative(severity, snore_events, hours),
        recommendations=recommendations,
        snore_rate=rate,
    )


def calculate_sleep_quality(rate: float, variability: float, quiet_periods: int) -> float:
    """Sleep quality score in [1.0, 10.0]."""
    score = 10.0
    score -= min(rate * 0.3, 4.0)
    score -= min(variability * 20, 2.0)
    score += min(quiet_periods * 0.1, 1.0)
    return max(min(score, MAX_SCORE), MIN_SCORE)


def generate_analysis_result(snore_events: int, patterns: VolumePatterns,
                             duration_seconds: float) -> AnalysisResult:
    """Assemble the full analysis result for a session."""
    insights = generate_insights(snore_events, patterns, duration_seconds)
    score = calculate_sleep_quality(insights.snore_rate, patterns.variability,
                                    patterns.quiet_period_count)
    logger.info(f"Severity {insights.severity.value}, rate {insights.snore_rate:.2f}/h, "
                f"score {score:.1f}")
    return AnalysisResult(
        snore_event_count=snore_events,
        average_volume=patterns.average_volume,
        max_volume=patterns.max_volume,
        variability=patterns.variability,
        quiet_period_count=patterns.quiet_period_count,
        sleep_quality_score=score,
        severity=insights.severity,
        narrative=insights.narrative,
        recommendations=insights.recommendations,
        snore_rate=insights.snore_rate,
    )
