"""
Domain records shared by the engine, the ledger and report consumers.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Dict, Any


class ViolationKind(str, Enum):
    """Semantically meaningful violation types."""
    FOCUS_LOST = "focus_lost"
    NO_FACE = "no_face"
    MULTIPLE_FACES = "multiple_faces"
    PHONE_DETECTED = "phone_detected"
    BOOK_DETECTED = "book_detected"
    DEVICE_DETECTED = "device_detected"
    DROWSINESS_DETECTED = "drowsiness_detected"
    BACKGROUND_NOISE = "background_noise"
    UNAUTHORIZED_VOICE = "unauthorized_voice"


class SessionStatus(str, Enum):
    """Session lifecycle states. PAUSED is never entered by the engine."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def generate_id(prefix: str = "") -> str:
    """Short unique identifier."""
    return f"{prefix}{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class CandidateInfo:
    """Who is being interviewed."""
    name: str
    email: str = ""
    position: str = ""
    interview_id: str = ""

    @property
    def ref(self) -> str:
        return self.interview_id or self.email or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "position": self.position,
            "interview_id": self.interview_id,
        }


@dataclass(frozen=True)
class CandidateViolation:
    """A violation proposed by the transition detector, not yet deduplicated."""
    kind: ViolationKind
    timestamp: datetime
    confidence: float
    description: str
    duration_ms: Optional[int] = None


@dataclass(frozen=True)
class DetectionEvent:
    """Immutable ledger entry."""
    id: str
    kind: ViolationKind
    timestamp: datetime
    confidence: float
    description: str
    duration_ms: Optional[int] = None

    @classmethod
    def from_candidate(cls, candidate: CandidateViolation) -> "DetectionEvent":
        return cls(
            id=generate_id("evt_"),
            kind=candidate.kind,
            timestamp=candidate.timestamp,
            confidence=candidate.confidence,
            description=candidate.description,
            duration_ms=candidate.duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration_ms,
            "confidence": float(self.confidence),
            "description": self.description,
        }


@dataclass(frozen=True)
class IntegritySession:
    """Read-only snapshot of a session handed to consumers."""
    id: str
    candidate_ref: CandidateInfo
    started_at: datetime
    ended_at: Optional[datetime] = None
    events: Tuple[DetectionEvent, ...] = field(default_factory=tuple)
    score: int = 100
    status: SessionStatus = SessionStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for export and persistence collaborators."""
        return {
            "id": self.id,
            "candidate": self.candidate_ref.to_dict(),
            "start_time": self.started_at.isoformat(),
            "end_time": self.ended_at.isoformat() if self.ended_at else None,
            "events": [event.to_dict() for event in self.events],
            "integrity_score": self.score,
            "status": self.status.value,
        }
