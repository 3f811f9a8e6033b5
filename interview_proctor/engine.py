"""
Proctor Engine - Fuses signals for a single interview session
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .config import ProctorSettings, settings as default_settings
from .detection import EventDeduplicator, NoFaceCheckRequest, TransitionDetector
from .ledger import SessionLedger
from .models import (
    CandidateInfo,
    CandidateViolation,
    DetectionEvent,
    IntegritySession,
    ViolationKind,
)
from .persistence import SessionPersistence
from .scheduler import ScheduledTask, default_scheduler
from .scoring import IntegrityScorer, ReportBuilder, SessionReport
from .signals import SIGNAL_TYPES, AudioSignal, EyeSignal, FaceSignal, ObjectSignal
from .state import DetectionState, DetectionStateStore
from .utils.logging import (
    log_deferred_check,
    log_duplicate_suppressed,
    log_persistence_failure,
    log_session_end,
    log_session_start,
    log_violation_recorded,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProctorEngine:
    """
    Manages a single proctoring session.

    Every signal goes through one transaction: merge into the detection
    state, diff against the previous snapshot, deduplicate candidates,
    append survivors to the ledger. Transactions never interleave.
    """

    def __init__(
        self,
        candidate: CandidateInfo,
        session_id: Optional[str] = None,
        settings: Optional[ProctorSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        scheduler=None,
        persistence: Optional[SessionPersistence] = None,
        scorer: Optional[IntegrityScorer] = None
    ):
        """
        Initialize a new proctoring session.

        Args:
            candidate: Who is being interviewed
            session_id: Optional custom session ID (auto-generated if not provided)
            settings: Thresholds and confidences (module settings if not provided)
            clock: Callable returning the current UTC time
            scheduler: Deferred check scheduler (running loop if any, else timer threads)
            persistence: Storage collaborator, called fire-and-forget
            scorer: Integrity scorer
        """
        self.settings = settings or default_settings
        self._clock = clock or utc_now
        self.scheduler = scheduler or default_scheduler()
        self.persistence = persistence or SessionPersistence()

        self.detector = TransitionDetector(self.settings)
        self.deduplicator = EventDeduplicator(self.settings.DEDUP_BUCKET_SECONDS)
        self.report_builder = ReportBuilder(scorer)

        started_at = self._clock()
        self.ledger = SessionLedger(candidate, started_at, session_id=session_id, scorer=scorer)
        self.store = DetectionStateStore(DetectionState(last_face_seen_at=started_at))

        self._lock = threading.RLock()
        self._no_face_task: Optional[ScheduledTask] = None

        # Advisory: last exception raised by the persistence collaborator
        self.last_persistence_error: Optional[Exception] = None

        log_session_start(self.id, candidate.ref)

    @property
    def id(self) -> str:
        return self.ledger.session_id

    @property
    def is_active(self) -> bool:
        return self.ledger.is_active

    @property
    def detection_state(self) -> DetectionState:
        return self.store.current

    @property
    def events(self) -> List[DetectionEvent]:
        return list(self.ledger.events)

    @property
    def session(self) -> IntegritySession:
        return self.ledger.snapshot()

    def current_score(self) -> int:
        return self.ledger.current_score()

    # ============== Signal intake ==============

    def submit(self, signal) -> List[DetectionEvent]:
        """
        Apply one typed signal.

        Args:
            signal: FaceSignal, EyeSignal, AudioSignal or ObjectSignal

        Returns:
            Events recorded by this update
        """
        if not isinstance(signal, SIGNAL_TYPES):
            raise TypeError(f"Unsupported signal type: {type(signal).__name__}")
        return self.update_detection_state(signal.to_partial())

    def update_face(self, signal: FaceSignal) -> List[DetectionEvent]:
        return self.submit(signal)

    def update_eye_tracking(self, signal: EyeSignal) -> List[DetectionEvent]:
        return self.submit(signal)

    def update_audio_analysis(self, signal: AudioSignal) -> List[DetectionEvent]:
        return self.submit(signal)

    def update_objects(self, signal: ObjectSignal) -> List[DetectionEvent]:
        return self.submit(signal)

    def update_detection_state(self, partial: Dict[str, Any]) -> List[DetectionEvent]:
        """
        Merge a partial state update and record any violations it causes.

        Args:
            partial: DetectionState field name -> value; missing or None
                fields keep their current value

        Returns:
            Events recorded by this update (after deduplication)
        """
        with self._lock:
            if not self.is_active:
                logger.debug(f"Ignoring update for completed session {self.id}")
                return []

            now = self._clock()
            previous, new = self.store.stage(partial, now)
            transition = self.detector.detect(previous, new, now)

            # Scheduling can fail; nothing is stored until it has succeeded
            if transition.no_face_check is not None:
                self._schedule_no_face_check(transition.no_face_check)
            self.store.commit(previous, new)
            if transition.face_returned:
                self._cancel_no_face_check()

            recorded = [event for event in map(self._record, transition.candidates) if event]

        self._persist_events(recorded)
        return recorded

    def add_event(
        self,
        kind: ViolationKind,
        description: str,
        confidence: float = 1.0,
        duration_ms: Optional[int] = None,
        timestamp: Optional[datetime] = None
    ) -> Optional[DetectionEvent]:
        """
        Append a violation directly, subject to deduplication.

        Returns:
            The recorded event, or None if it was a duplicate or the
            session is completed
        """
        candidate = CandidateViolation(
            kind=ViolationKind(kind),
            timestamp=timestamp or self._clock(),
            confidence=confidence,
            description=description,
            duration_ms=duration_ms,
        )
        with self._lock:
            if not self.is_active:
                return None
            event = self._record(candidate)

        if event:
            self._persist_events([event])
        return event

    def _record(self, candidate: CandidateViolation) -> Optional[DetectionEvent]:
        """Deduplicate and append. Caller holds the engine lock."""
        if not self.deduplicator.accept(candidate.kind, candidate.timestamp):
            _, bucket = self.deduplicator.key_for(candidate.kind, candidate.timestamp)
            log_duplicate_suppressed(self.id, candidate.kind.value, bucket)
            return None

        event = DetectionEvent.from_candidate(candidate)
        snapshot = self.ledger.append_event(event)
        log_violation_recorded(self.id, event.kind.value, snapshot.score, event.duration_ms)
        return event

    # ============== Deferred no-face confirmation ==============

    def _schedule_no_face_check(self, request: NoFaceCheckRequest):
        task = self.scheduler.schedule(
            self.id,
            request.delay_ms,
            lambda: self._confirm_no_face(request.onset),
        )
        self._cancel_no_face_check()
        self._no_face_task = task

    def _cancel_no_face_check(self):
        if self._no_face_task is not None:
            self._no_face_task.cancel()
            self._no_face_task = None

    def _confirm_no_face(self, onset: datetime):
        """Scheduler callback: re-read state and emit no_face if absence held."""
        with self._lock:
            if not self.is_active:
                log_deferred_check(self.id, "stale")
                return

            now = self._clock()
            candidate = self.detector.confirm_no_face(self.store.current, onset, now)
            if candidate is None:
                log_deferred_check(self.id, "discarded")
                return

            log_deferred_check(self.id, "confirmed", candidate.duration_ms)
            event = self._record(candidate)

        if event:
            self._persist_events([event])

    # ============== Lifecycle and outputs ==============

    def end_session(self) -> IntegritySession:
        """
        Complete the session. Calling it again is a no-op.

        Returns:
            The completed session snapshot
        """
        with self._lock:
            snapshot, changed = self.ledger.end_session(self._clock())
            if not changed:
                return snapshot

            self.scheduler.cancel_session(self.id)
            self._no_face_task = None

        log_session_end(self.id, snapshot.score, len(snapshot.events))
        self._persist("save_session", self.persistence.save_session, snapshot)
        return snapshot

    def save_snapshot(self) -> bool:
        """Hand the in-progress session to the persistence collaborator."""
        return self._persist("save_session", self.persistence.save_session, self.session)

    def build_report(self, now: Optional[datetime] = None) -> SessionReport:
        """Report for the current snapshot."""
        return self.report_builder.build(self.session, now or self._clock())

    def _persist_events(self, events: List[DetectionEvent]):
        for event in events:
            self._persist("log_detection_event", self.persistence.log_detection_event, self.id, event)

    def _persist(self, operation: str, func: Callable, *args) -> bool:
        try:
            func(*args)
            return True
        except Exception as e:
            self.last_persistence_error = e
            log_persistence_failure(self.id, operation, e)
            return False
