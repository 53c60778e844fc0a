"""Session-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .analysis import AnalysisResult


class SessionStatus(Enum):
    """Lifecycle status of a recording session."""
    CAPTURING = "capturing"
    COMPLETED = "completed"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    FAILED = "failed"


@dataclass
class RecordingSession:
    """A single overnight recording and, once available, its analysis."""
    session_id: str
    start_time: datetime
    audio_file: str
    sample_rate: int
    channels: int = 1
    status: SessionStatus = SessionStatus.CAPTURING
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0
    average_volume: float = 0.0
    max_volume: float = 0.0
    total_frames: int = 0
    write_errors: int = 0
    truncated: bool = False
    # Full, unbounded per-frame volume history; persisted as volume.f32
    volume_history: List[float] = field(default_factory=list, repr=False)
    analysis: Optional[AnalysisResult] = None

    @property
    def is_analyzed(self) -> bool:
        return self.status == SessionStatus.ANALYZED and self.analysis is not None

    @property
    def duration_string(self) -> str:
        """Duration formatted as H:MM:SS, or MM:SS for recordings under an hour."""
        total = int(self.duration_seconds)
        hours = total // 3600
        minutes = total % 3600 // 60
        seconds = total % 60
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes:02d}:{seconds:02d}"

    def to_dict(self) -> Dict[str, Any]:
        """Session metadata as JSON-ready scalars (volume history excluded)."""
        info = {
            "session_id": self.session_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": self.duration_seconds,
            "audio_file": self.audio_file,
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "status": self.status.value,
            "average_volume": self.average_volume,
            "max_volume": self.max_volume,
            "total_frames": self.total_frames,
            "write_errors": self.write_errors,
            "truncated": self.truncated,
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }
        return info

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  volume_history: Optional[List[float]] = None) -> "RecordingSession":
        end_time = data.get("end_time")
        analysis = data.get("analysis")
        return cls(
            session_id=data["session_id"],
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(end_time) if end_time else None,
            duration_seconds=float(data.get("duration_seconds", 0.0)),
            audio_file=data["audio_file"],
            sample_rate=int(data["sample_rate"]),
            channels=int(data.get("channels", 1)),
            status=SessionStatus(data["status"]),
            average_volume=float(data.get("average_volume", 0.0)),
            max_volume=float(data.get("max_volume", 0.0)),
            total_frames=int(data.get("total_frames", 0)),
            write_errors=int(data.get("write_errors", 0)),
            truncated=bool(data.get("truncated", False)),
            volume_history=list(volume_history or []),
            analysis=AnalysisResult.from_dict(analysis) if analysis else None,
        )
