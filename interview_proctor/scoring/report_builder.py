"""
Report Builder - Summarizes a session for review, export and persistence
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Any, Optional

from ..models import DetectionEvent, IntegritySession, ViolationKind
from .integrity_scorer import IntegrityScorer

logger = logging.getLogger(__name__)


SEVERITY: Dict[ViolationKind, str] = {
    ViolationKind.PHONE_DETECTED: "high",
    ViolationKind.UNAUTHORIZED_VOICE: "high",
    ViolationKind.NO_FACE: "medium",
    ViolationKind.BOOK_DETECTED: "medium",
    ViolationKind.DROWSINESS_DETECTED: "medium",
    ViolationKind.FOCUS_LOST: "low",
    ViolationKind.MULTIPLE_FACES: "low",
    ViolationKind.DEVICE_DETECTED: "low",
    ViolationKind.BACKGROUND_NOISE: "low",
}


def get_event_severity(kind: ViolationKind) -> str:
    """Severity bucket used for the report breakdown."""
    return SEVERITY.get(kind, "low")


def format_duration(milliseconds: int) -> str:
    """Format milliseconds as M:SS or H:MM:SS."""
    seconds = max(0, int(milliseconds)) // 1000
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}:{minutes % 60:02d}:{seconds % 60:02d}"
    return f"{minutes}:{seconds % 60:02d}"


@dataclass
class SessionReport:
    """Read-only summary of one session."""
    session_id: str
    candidate: Dict[str, str]
    duration_ms: int
    integrity_score: int
    grade: str
    focus_lost_count: int
    suspicious_events: List[DetectionEvent]
    events_by_kind: Dict[str, int]
    severity_breakdown: Dict[str, int]
    recommendations: List[str]
    review_required: bool
    review_priority: str
    status: str
    penalties: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_violations(self) -> int:
        return len(self.suspicious_events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "candidate": self.candidate,
            "duration": self.duration_ms,
            "duration_display": format_duration(self.duration_ms),
            "integrity_score": self.integrity_score,
            "grade": self.grade,
            "focus_lost_count": self.focus_lost_count,
            "suspicious_events": [event.to_dict() for event in self.suspicious_events],
            "summary": {
                "total_violations": self.total_violations,
                "events_by_kind": self.events_by_kind,
                "severity_breakdown": self.severity_breakdown,
                "recommendations": self.recommendations,
            },
            "review_required": self.review_required,
            "review_priority": self.review_priority,
            "penalties": self.penalties,
            "status": self.status,
        }


class ReportBuilder:
    """
    Builds review reports from session snapshots.

    Review policy: any critical kind, a low score, or enough distinct
    violation kinds sends the session to human review.
    """

    # Kinds that always require review
    CRITICAL_KINDS = [
        ViolationKind.PHONE_DETECTED,
        ViolationKind.MULTIPLE_FACES,
        ViolationKind.UNAUTHORIZED_VOICE,
    ]

    # Score threshold below which review is required
    REVIEW_SCORE_THRESHOLD = 60

    # Minimum distinct kinds for review
    MIN_KINDS_FOR_REVIEW = 2

    def __init__(self, scorer: Optional[IntegrityScorer] = None):
        self.scorer = scorer or IntegrityScorer()

    def build(self, session: IntegritySession, now: Optional[datetime] = None) -> SessionReport:
        """
        Build a report for a session snapshot.

        Args:
            session: Snapshot from the engine
            now: Reference time for in-progress sessions (defaults to current UTC)

        Returns:
            SessionReport
        """
        end = session.ended_at or now or datetime.now(timezone.utc)
        duration_ms = max(0, (end - session.started_at) // timedelta(milliseconds=1))

        events = list(session.events)
        by_kind = Counter(event.kind for event in events)

        severity = {"high": 0, "medium": 0, "low": 0}
        for event in events:
            severity[get_event_severity(event.kind)] += 1

        breakdown = self.scorer.compute_breakdown(events)
        kinds = list(by_kind)

        report = SessionReport(
            session_id=session.id,
            candidate=session.candidate_ref.to_dict(),
            duration_ms=duration_ms,
            integrity_score=session.score,
            grade=self.scorer.get_grade(session.score),
            focus_lost_count=by_kind.get(ViolationKind.FOCUS_LOST, 0),
            suspicious_events=events,
            events_by_kind={kind.value: count for kind, count in by_kind.items()},
            severity_breakdown=severity,
            recommendations=self.generate_recommendations(events, session.score),
            review_required=self.requires_review(kinds, session.score),
            review_priority=self.get_review_priority(kinds, session.score, len(events)),
            status=session.status.value,
            penalties=breakdown["penalties"],
        )

        logger.debug(f"Built report for session {session.id}: priority={report.review_priority}")
        return report

    def generate_recommendations(self, events: List[DetectionEvent], score: int) -> List[str]:
        """
        Reviewer-facing recommendations.

        Args:
            events: Violation log
            score: Integrity score

        Returns:
            List of recommendation sentences
        """
        recommendations = []
        counts = Counter(event.kind for event in events)

        grade = self.scorer.get_grade(score)
        if grade == "A":
            recommendations.append("Candidate demonstrated excellent interview integrity.")
        elif grade == "B":
            recommendations.append("Candidate showed acceptable behavior with minor infractions.")
        else:
            recommendations.append("Candidate's behavior raises concerns that should be addressed.")

        phone = counts.get(ViolationKind.PHONE_DETECTED, 0)
        if phone > 0:
            recommendations.append(
                f"Mobile phone was detected {phone} time(s). Consider discussing device policies."
            )

        if counts.get(ViolationKind.FOCUS_LOST, 0) > 3:
            recommendations.append("Frequent focus loss detected. May indicate distraction or technical issues.")

        if counts.get(ViolationKind.MULTIPLE_FACES, 0) > 0:
            recommendations.append("Multiple faces detected. Verify candidate was alone during the interview.")

        if counts.get(ViolationKind.NO_FACE, 0) > 2:
            recommendations.append(
                "Extended periods without face detection. Check for technical issues or candidate absence."
            )

        if counts.get(ViolationKind.DROWSINESS_DETECTED, 0) > 0:
            recommendations.append("Signs of drowsiness detected. Consider interview timing and candidate alertness.")

        if counts.get(ViolationKind.UNAUTHORIZED_VOICE, 0) > 0:
            recommendations.append(
                "Unauthorized voices detected. Verify candidate was alone and no external assistance was provided."
            )

        if counts.get(ViolationKind.BACKGROUND_NOISE, 0) > 5:
            recommendations.append(
                "Frequent background noise detected. Consider environment suitability for future interviews."
            )

        if not events:
            recommendations.append("No violations detected. Candidate maintained proper interview etiquette throughout.")

        return recommendations

    def requires_review(self, kinds: List[ViolationKind], score: int) -> bool:
        """
        Determine if manual review is required.

        Args:
            kinds: Distinct violation kinds seen
            score: Integrity score

        Returns:
            True if human review is required
        """
        if any(k in self.CRITICAL_KINDS for k in kinds):
            return True

        if score < self.REVIEW_SCORE_THRESHOLD:
            return True

        if len(kinds) >= self.MIN_KINDS_FOR_REVIEW:
            return True

        return False

    def get_review_priority(self, kinds: List[ViolationKind], score: int, event_count: int) -> str:
        """
        Get review priority level.

        Returns:
            'urgent', 'high', 'normal', or 'low'
        """
        if any(k in self.CRITICAL_KINDS for k in kinds):
            return "urgent"

        if score < 40:
            return "urgent"

        if score < 60:
            return "high"

        if len(kinds) >= 3:
            return "high"

        if event_count >= 1:
            return "normal"

        return "low"
