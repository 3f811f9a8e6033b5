"""Transition detection and deduplication"""

from .transitions import TransitionDetector, TransitionResult, NoFaceCheckRequest, classify_object
from .dedup import EventDeduplicator, dedup_key

__all__ = [
    "TransitionDetector",
    "TransitionResult",
    "NoFaceCheckRequest",
    "classify_object",
    "EventDeduplicator",
    "dedup_key",
]
