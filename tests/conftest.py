"""
Pytest Configuration for Proctor Engine Tests
"""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; only moves when advanced."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int = 0, seconds: float = 0) -> datetime:
        self.now = self.now + timedelta(milliseconds=ms, seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    from interview_proctor.scheduler import ManualScheduler

    return ManualScheduler(clock)


@pytest.fixture
def candidate():
    from interview_proctor.models import CandidateInfo

    return CandidateInfo(
        name="Test Candidate",
        email="candidate@example.com",
        position="Backend Engineer",
        interview_id="interview_123",
    )


@pytest.fixture
def make_engine(clock, scheduler, candidate):
    """Factory for engines sharing the test clock and manual scheduler."""
    from interview_proctor.engine import ProctorEngine

    def _make(**kwargs):
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("scheduler", scheduler)
        return ProctorEngine(candidate, **kwargs)

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine(session_id="INT_test")
