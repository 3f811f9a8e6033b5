"""
Interview Proctoring Integrity Engine

Fuses asynchronous behavioral signals into:
- a deduplicated, timestamped log of violation events
- a 0-100 integrity score recomputed from that log

Signal producers (face landmarks, eye geometry, audio analysis, object
classifiers) are external; this package only interprets their output
over time.
"""

from .config import ProctorSettings, settings
from .engine import ProctorEngine
from .ledger import ProctorError, SessionClosedError, SessionLedger
from .models import (
    CandidateInfo,
    DetectionEvent,
    IntegritySession,
    SessionStatus,
    ViolationKind,
)
from .persistence import InMemorySessionStore, PersistenceError, SessionPersistence
from .pump import SignalPump
from .scheduler import AsyncioScheduler, ManualScheduler, ThreadingScheduler
from .scoring import IntegrityScorer, ReportBuilder, SessionReport, score
from .signals import AudioSignal, EyeSignal, FaceSignal, ObjectSignal
from .state import DetectionState

__all__ = [
    "ProctorSettings",
    "settings",
    "ProctorEngine",
    "ProctorError",
    "SessionClosedError",
    "SessionLedger",
    "CandidateInfo",
    "DetectionEvent",
    "IntegritySession",
    "SessionStatus",
    "ViolationKind",
    "InMemorySessionStore",
    "PersistenceError",
    "SessionPersistence",
    "SignalPump",
    "AsyncioScheduler",
    "ManualScheduler",
    "ThreadingScheduler",
    "IntegrityScorer",
    "ReportBuilder",
    "SessionReport",
    "score",
    "AudioSignal",
    "EyeSignal",
    "FaceSignal",
    "ObjectSignal",
    "DetectionState",
]
