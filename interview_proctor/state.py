"""
Detection State Store - Single canonical snapshot of current behavior

Snapshots are immutable; the store swaps its reference under a lock so a
merge is applied whole or not at all.
"""

import threading
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class DetectionState:
    """What the engine currently believes about the candidate."""
    is_focused: bool = True
    face_detected: bool = True
    face_count: int = 1
    last_focus_loss_at: Optional[datetime] = None
    last_face_seen_at: Optional[datetime] = None
    objects_present: FrozenSet[str] = field(default_factory=frozenset)
    eyes_closed: bool = False
    drowsy: bool = False
    audio_level: int = 0
    background_noise: bool = False
    speech_detected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_focused": self.is_focused,
            "face_detected": self.face_detected,
            "face_count": self.face_count,
            "last_focus_loss_at": self.last_focus_loss_at.isoformat() if self.last_focus_loss_at else None,
            "last_face_seen_at": self.last_face_seen_at.isoformat() if self.last_face_seen_at else None,
            "objects_present": sorted(self.objects_present),
            "eyes_closed": self.eyes_closed,
            "drowsy": self.drowsy,
            "audio_level": self.audio_level,
            "background_noise": self.background_noise,
            "speech_detected": self.speech_detected,
        }


# Fields producers may write; the two timestamps are engine bookkeeping
WRITABLE_FIELDS = frozenset(
    f.name for f in fields(DetectionState)
    if f.name not in ("last_focus_loss_at", "last_face_seen_at")
)


def merge_state(previous: DetectionState, partial: Dict[str, Any], now: datetime) -> DetectionState:
    """
    Field-wise merge of a partial update into a snapshot.

    Args:
        previous: Current snapshot
        partial: Field name -> new value; None values are ignored
        now: Time the update is applied

    Returns:
        New snapshot with focus/face bookkeeping stamped
    """
    unknown = set(partial) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown detection state fields: {sorted(unknown)}")

    updates = {k: v for k, v in partial.items() if v is not None}
    if "objects_present" in updates:
        updates["objects_present"] = frozenset(updates["objects_present"])

    merged = replace(previous, **updates)

    if previous.is_focused and not merged.is_focused:
        merged = replace(merged, last_focus_loss_at=now)
    elif not previous.is_focused and merged.is_focused:
        # previous still carries the loss stamp for the detector
        merged = replace(merged, last_focus_loss_at=None)

    if merged.face_detected:
        merged = replace(merged, last_face_seen_at=now)

    return merged


class DetectionStateStore:
    """Holds the session's DetectionState and serializes merges."""

    def __init__(self, initial: Optional[DetectionState] = None):
        self._state = initial or DetectionState()
        self._lock = threading.Lock()

    @property
    def current(self) -> DetectionState:
        return self._state

    def stage(self, partial: Dict[str, Any], now: datetime) -> Tuple[DetectionState, DetectionState]:
        """
        Merge a partial update without storing it.

        Returns:
            Tuple of (previous, new) snapshots; pass both to commit()
        """
        previous = self._state
        return previous, merge_state(previous, partial, now)

    def commit(self, previous: DetectionState, new: DetectionState):
        """
        Store a staged snapshot.

        Raises:
            RuntimeError: If another update was stored after previous was staged
        """
        with self._lock:
            if self._state is not previous:
                raise RuntimeError("Detection state changed since the update was staged")
            self._state = new

    def apply_update(self, partial: Dict[str, Any], now: datetime) -> Tuple[DetectionState, DetectionState]:
        """
        Merge a partial update.

        Returns:
            Tuple of (previous, new) snapshots for diffing
        """
        with self._lock:
            previous = self._state
            self._state = merge_state(previous, partial, now)
            return previous, self._state
