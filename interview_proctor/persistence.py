"""
Session Persistence - Contract for storage collaborators

The engine hands events and session snapshots to a SessionPersistence
and never waits on or trusts the outcome. Implementations may raise;
the engine logs the failure and moves on.
"""

import logging
import threading
from typing import Dict, List, Optional

from .models import DetectionEvent, IntegritySession

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Error saving session data"""
    pass


class SessionPersistence:
    """Base persistence collaborator. Both hooks default to no-ops."""

    def log_detection_event(self, session_id: str, event: DetectionEvent) -> None:
        """Store a single event as it is recorded."""
        return None

    def save_session(self, session: IntegritySession) -> None:
        """Store a completed or in-progress session snapshot."""
        return None


class InMemorySessionStore(SessionPersistence):
    """
    Keeps sessions and events in process memory.

    Used when no backend is configured, and by report tooling that
    wants to look sessions up by id after they end.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, IntegritySession] = {}
        self._events: Dict[str, List[DetectionEvent]] = {}

    def log_detection_event(self, session_id: str, event: DetectionEvent) -> None:
        with self._lock:
            self._events.setdefault(session_id, []).append(event)

    def save_session(self, session: IntegritySession) -> None:
        with self._lock:
            self._sessions[session.id] = session
        logger.info(f"[PERSIST] Saved session {session.id} status={session.status.value}")

    def get_session(self, session_id: str) -> Optional[IntegritySession]:
        return self._sessions.get(session_id)

    def list_sessions(self) -> List[IntegritySession]:
        """Sessions ordered newest first."""
        return sorted(self._sessions.values(), key=lambda s: s.started_at, reverse=True)

    def get_events(self, session_id: str) -> List[DetectionEvent]:
        return list(self._events.get(session_id, []))
