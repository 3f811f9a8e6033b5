"""
Integrity Scorer - Computes integrity score from the violation log
"""

import logging
import math
from typing import Dict, Any, Iterable, Optional

from ..models import DetectionEvent, ViolationKind

logger = logging.getLogger(__name__)


class IntegrityScorer:
    """
    Computes integrity score from the full event list.

    Formula:
        integrity_score = 100 - sum(penalty(event) for event in events)

    focus_lost is weighted by duration (2 points per second, capped at 15);
    every other kind carries a flat penalty. The score is recomputed from
    scratch on every call and never depends on wall-clock time.
    """

    # Flat penalties per event kind
    PENALTIES: Dict[ViolationKind, float] = {
        ViolationKind.NO_FACE: 20,
        ViolationKind.MULTIPLE_FACES: 10,
        ViolationKind.PHONE_DETECTED: 25,
        ViolationKind.BOOK_DETECTED: 15,
        ViolationKind.DEVICE_DETECTED: 10,
        ViolationKind.DROWSINESS_DETECTED: 12,
        ViolationKind.BACKGROUND_NOISE: 5,
        ViolationKind.UNAUTHORIZED_VOICE: 20,
    }

    # focus_lost: points per second, cap, and duration assumed when missing
    FOCUS_POINTS_PER_SECOND = 2.0
    MAX_FOCUS_PENALTY = 15.0
    DEFAULT_FOCUS_DURATION_MS = 5000

    # Lowest score for each band; the report recommendations use the same tiers
    GRADE_BANDS = ((80, "A"), (60, "B"))

    def __init__(self, penalties: Optional[Dict[ViolationKind, float]] = None):
        """
        Initialize scorer with optional custom penalties.

        Args:
            penalties: Optional dict overriding default flat penalties
        """
        self.penalties = self.PENALTIES.copy()
        if penalties:
            self.penalties.update(penalties)

    def penalty_for(self, event: DetectionEvent) -> float:
        """Penalty a single event contributes."""
        if event.kind == ViolationKind.FOCUS_LOST:
            duration = event.duration_ms if event.duration_ms is not None else self.DEFAULT_FOCUS_DURATION_MS
            return min(self.MAX_FOCUS_PENALTY, duration / 1000 * self.FOCUS_POINTS_PER_SECOND)
        return self.penalties.get(event.kind, 0.0)

    def compute(self, events: Iterable[DetectionEvent]) -> int:
        """
        Compute integrity score from events.

        Args:
            events: Full violation log

        Returns:
            Integrity score (0-100, higher is better)
        """
        score = 100.0

        for event in events:
            score -= self.penalty_for(event)

        final_score = max(0, min(100, round_half_up(score)))

        logger.debug(f"Computed integrity score: {final_score}")
        return final_score

    def compute_breakdown(self, events: Iterable[DetectionEvent]) -> Dict[str, Any]:
        """
        Compute integrity score with a per-kind breakdown.

        Args:
            events: Full violation log

        Returns:
            Dict with score and count/penalty per kind
        """
        score = 100.0
        penalties: Dict[str, Dict[str, float]] = {}

        for event in events:
            penalty = self.penalty_for(event)
            entry = penalties.setdefault(event.kind.value, {"count": 0, "penalty": 0.0})
            entry["count"] += 1
            entry["penalty"] = round(entry["penalty"] + penalty, 2)
            score -= penalty

        final_score = max(0, min(100, round_half_up(score)))

        return {
            "integrity_score": final_score,
            "raw_score": round(score, 2),
            "penalties": penalties,
            "total_penalty": round(100 - score, 2)
        }

    def get_grade(self, score: int) -> str:
        """
        Convert score to a review band.

        Returns:
            'A' (80+, excellent), 'B' (60-79, acceptable), 'C' (below 60, concerning)
        """
        for floor_score, grade in self.GRADE_BANDS:
            if score >= floor_score:
                return grade
        return "C"


_default_scorer = IntegrityScorer()


def score(events: Iterable[DetectionEvent]) -> int:
    """Score an event list with the default penalty table."""
    return _default_scorer.compute(events)


def round_half_up(value: float) -> int:
    """Round halves up; round() would send them to the even neighbour."""
    return int(math.floor(value + 0.5))
