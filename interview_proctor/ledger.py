"""
Session Ledger - Append-only event log, score and lifecycle for one session
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional, Tuple

from .models import CandidateInfo, DetectionEvent, IntegritySession, SessionStatus, generate_id
from .scoring import IntegrityScorer


class ProctorError(Exception):
    """Base error for the proctoring engine"""
    pass


class SessionClosedError(ProctorError):
    """Raised when writing to a completed session"""
    pass


class SessionLedger:
    """
    Owns the IntegritySession record.

    Appending an event and recomputing the score happen under one lock,
    so a snapshot never shows an event without the score reflecting it.
    """

    def __init__(
        self,
        candidate: CandidateInfo,
        started_at: datetime,
        session_id: Optional[str] = None,
        scorer: Optional[IntegrityScorer] = None
    ):
        self.scorer = scorer or IntegrityScorer()
        self._lock = threading.Lock()
        self._session = IntegritySession(
            id=session_id or generate_id("INT_"),
            candidate_ref=candidate,
            started_at=started_at,
        )

    @property
    def session_id(self) -> str:
        return self._session.id

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def is_active(self) -> bool:
        return self._session.status != SessionStatus.COMPLETED

    @property
    def events(self) -> Tuple[DetectionEvent, ...]:
        return self._session.events

    def current_score(self) -> int:
        return self._session.score

    def snapshot(self) -> IntegritySession:
        """Immutable view of the session for consumers."""
        return self._session

    def append_event(self, event: DetectionEvent) -> IntegritySession:
        """
        Append an event and recompute the score.

        Args:
            event: Event that already passed deduplication

        Returns:
            Session snapshot including the event

        Raises:
            SessionClosedError: If the session is completed
        """
        with self._lock:
            if self._session.status == SessionStatus.COMPLETED:
                raise SessionClosedError(f"Session {self._session.id} is completed")

            events = self._session.events + (event,)
            self._session = replace(
                self._session,
                events=events,
                score=self.scorer.compute(events),
            )
            return self._session

    def end_session(self, ended_at: datetime) -> Tuple[IntegritySession, bool]:
        """
        Complete the session exactly once.

        Returns:
            Tuple of (snapshot, changed); changed is False when the session
            was already completed
        """
        with self._lock:
            if self._session.status == SessionStatus.COMPLETED:
                return self._session, False

            self._session = replace(
                self._session,
                ended_at=ended_at,
                status=SessionStatus.COMPLETED,
                score=self.scorer.compute(self._session.events),
            )
            return self._session, True
