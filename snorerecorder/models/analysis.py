"""Data models for offline session analysis."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(Enum):
    """Ordinal snoring severity derived from the snore rate."""
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"


@dataclass
class VolumePatterns:
    """Whole-session volume statistics."""
    average_volume: float = 0.0
    max_volume: float = 0.0
    variability: float = 0.0  # Population standard deviation
    quiet_period_count: int = 0


@dataclass
class AnalysisInsights:
    """Narrative output of the insight generator."""
    severity: Severity
    narrative: str
    recommendations: List[str]
    snore_rate: float


@dataclass
class AnalysisProgress:
    """Progress checkpoint of a running analysis."""
    session_id: str
    fraction: float  # 0.0 - 1.0, never decreases within one run
    stage: str


@dataclass
class AnalysisResult:
    """Final analysis of a recording session."""
    snore_event_count: int
    average_volume: float
    max_volume: float
    variability: float
    quiet_period_count: int
    sleep_quality_score: float
    severity: Severity
    narrative: str
    recommendations: List[str] = field(default_factory=list)
    snore_rate: float = 0.0
    analyzed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to plain scalars and strings for persistence."""
        return {
            "snore_event_count": self.snore_event_count,
            "average_volume": self.average_volume,
            "max_volume": self.max_volume,
            "variability": self.variability,
            "quiet_period_count": self.quiet_period_count,
            "sleep_quality_score": self.sleep_quality_score,
            "severity": self.severity.value,
            "narrative": self.narrative,
            "recommendations": "\n\n".join(self.recommendations),
            "snore_rate": self.snore_rate,
            "analyzed_at": self.analyzed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        recommendations = data.get("recommendations") or ""
        return cls(
            snore_event_count=int(data["snore_event_count"]),
            average_volume=float(data["average_volume"]),
            max_volume=float(data["max_volume"]),
            variability=float(data["variability"]),
            quiet_period_count=int(data["quiet_period_count"]),
            sleep_quality_score=float(data["sleep_quality_score"]),
            severity=Severity(data["severity"]),
            narrative=data["narrative"],
            recommendations=recommendations.split("\n\n") if recommendations else [],
            snore_rate=float(data.get("snore_rate", 0.0)),
            analyzed_at=datetime.fromisoformat(data["analyzed_at"]),
        )


def summarize(result: Optional[AnalysisResult]) -> str:
    """One-line description used in logs and the CLI listing."""
    if result is None:
        return "not analyzed"
    return (f"{result.severity.value}: {result.snore_event_count} events, "
            f"score {result.sleep_quality_score:.1f}")
