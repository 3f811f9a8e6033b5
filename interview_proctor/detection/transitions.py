"""
Transition Detector - Decides which state edges are violations

Detection is edge-triggered: a sustained condition produces one candidate
at its onset, never one per frame. Focus loss is duration-gated at the
moment focus returns; face loss is confirmed by a deferred re-check.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from ..config import ProctorSettings, settings as default_settings
from ..models import CandidateViolation, ViolationKind
from ..scoring.integrity_scorer import round_half_up
from ..state import DetectionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoFaceCheckRequest:
    """Ask the engine to re-check face absence after delay_ms."""
    onset: datetime
    delay_ms: int


@dataclass
class TransitionResult:
    """Output of one diff."""
    candidates: List[CandidateViolation] = field(default_factory=list)
    no_face_check: Optional[NoFaceCheckRequest] = None
    face_returned: bool = False


def elapsed_ms(start: datetime, end: datetime) -> int:
    return (end - start) // timedelta(milliseconds=1)


def classify_object(label: str) -> ViolationKind:
    """Map an object label to its violation kind by substring."""
    lowered = label.lower()
    if "phone" in lowered:
        return ViolationKind.PHONE_DETECTED
    if "book" in lowered:
        return ViolationKind.BOOK_DETECTED
    return ViolationKind.DEVICE_DETECTED


class TransitionDetector:
    """
    Compares consecutive detection snapshots.

    Holds configuration only; all state it reasons about is passed in.
    """

    def __init__(self, settings: Optional[ProctorSettings] = None):
        self.settings = settings or default_settings

    def detect(self, previous: DetectionState, new: DetectionState, now: datetime) -> TransitionResult:
        """
        Diff two snapshots.

        Args:
            previous: Snapshot before the merge
            new: Snapshot after the merge
            now: Time of the merge

        Returns:
            TransitionResult with candidate violations and an optional
            deferred no-face check request
        """
        result = TransitionResult()
        cfg = self.settings

        # Focus loss is judged when focus comes back
        if not previous.is_focused and new.is_focused and previous.last_focus_loss_at:
            duration = elapsed_ms(previous.last_focus_loss_at, now)
            if duration > cfg.FOCUS_LOSS_THRESHOLD_MS:
                result.candidates.append(CandidateViolation(
                    kind=ViolationKind.FOCUS_LOST,
                    timestamp=now,
                    confidence=1.0,
                    description=f"Focus lost for {round_half_up(duration / 1000)} seconds",
                    duration_ms=duration,
                ))
            else:
                logger.debug(f"Focus loss of {duration}ms below threshold")

        if previous.face_detected and not new.face_detected:
            result.no_face_check = NoFaceCheckRequest(onset=now, delay_ms=cfg.NO_FACE_THRESHOLD_MS)
        elif not previous.face_detected and new.face_detected:
            result.face_returned = True

        if new.face_count > 1 and previous.face_count <= 1:
            result.candidates.append(CandidateViolation(
                kind=ViolationKind.MULTIPLE_FACES,
                timestamp=now,
                confidence=cfg.MULTIPLE_FACES_CONFIDENCE,
                description=f"{new.face_count} faces detected",
            ))

        for label in sorted(new.objects_present - previous.objects_present):
            result.candidates.append(CandidateViolation(
                kind=classify_object(label),
                timestamp=now,
                confidence=cfg.OBJECT_CONFIDENCE,
                description=f"{label} detected in frame",
            ))

        if new.drowsy and not previous.drowsy:
            result.candidates.append(CandidateViolation(
                kind=ViolationKind.DROWSINESS_DETECTED,
                timestamp=now,
                confidence=cfg.DROWSINESS_CONFIDENCE,
                description="Candidate appears drowsy or eyes closed for extended period",
            ))

        if new.background_noise and not previous.background_noise:
            result.candidates.append(CandidateViolation(
                kind=ViolationKind.BACKGROUND_NOISE,
                timestamp=now,
                confidence=cfg.BACKGROUND_NOISE_CONFIDENCE,
                description="Background noise detected",
            ))

        if new.speech_detected and not previous.speech_detected:
            result.candidates.append(CandidateViolation(
                kind=ViolationKind.UNAUTHORIZED_VOICE,
                timestamp=now,
                confidence=cfg.VOICE_CONFIDENCE,
                description="Unauthorized voice or conversation detected",
            ))

        return result

    def confirm_no_face(self, current: DetectionState, onset: datetime, now: datetime) -> Optional[CandidateViolation]:
        """
        Re-validate a face loss when its deferred check fires.

        Args:
            current: Snapshot read at fire time
            onset: When the face was lost
            now: Fire time

        Returns:
            A no_face candidate if the face stayed absent since onset,
            else None. The check is scheduled for the full window, so
            fire time marks the end of it.
        """
        if current.face_detected:
            return None

        # Face came back and left again; the later onset has its own check
        if current.last_face_seen_at is not None and current.last_face_seen_at > onset:
            return None

        duration = elapsed_ms(onset, now)
        return CandidateViolation(
            kind=ViolationKind.NO_FACE,
            timestamp=now,
            confidence=1.0,
            description=f"No face detected for {round_half_up(duration / 1000)} seconds",
            duration_ms=duration,
        )
