"""
Tests for the Report Builder
"""

from datetime import timedelta

import pytest

from conftest import START


def make_session(kinds, ended_after_seconds=None):
    from interview_proctor.models import (
        CandidateInfo, DetectionEvent, IntegritySession, SessionStatus, ViolationKind,
    )
    from interview_proctor.scoring import score

    events = tuple(
        DetectionEvent(
            id=f"evt_{i}",
            kind=ViolationKind(kind),
            timestamp=START + timedelta(seconds=i),
            confidence=1.0,
            description=kind,
            duration_ms=6000 if kind == "focus_lost" else None,
        )
        for i, kind in enumerate(kinds)
    )
    ended_at = START + timedelta(seconds=ended_after_seconds) if ended_after_seconds is not None else None
    return IntegritySession(
        id="INT_report",
        candidate_ref=CandidateInfo(name="Ada", email="ada@example.com"),
        started_at=START,
        ended_at=ended_at,
        events=events,
        score=score(events),
        status=SessionStatus.COMPLETED if ended_at else SessionStatus.ACTIVE,
    )


class TestFormatDuration:
    """Tests for format_duration"""

    @pytest.mark.parametrize("ms,expected", [
        (0, "0:00"),
        (59999, "0:59"),
        (65000, "1:05"),
        (3600000, "1:00:00"),
        (3725000, "1:02:05"),
    ])
    def test_format(self, ms, expected):
        from interview_proctor.scoring import format_duration

        assert format_duration(ms) == expected


class TestSeverity:
    """Tests for severity buckets"""

    def test_severity_table(self):
        from interview_proctor.models import ViolationKind
        from interview_proctor.scoring import get_event_severity

        assert get_event_severity(ViolationKind.PHONE_DETECTED) == "high"
        assert get_event_severity(ViolationKind.NO_FACE) == "medium"
        assert get_event_severity(ViolationKind.FOCUS_LOST) == "low"

    def test_breakdown_counts(self):
        from interview_proctor.scoring import ReportBuilder

        session = make_session(["phone_detected", "no_face", "focus_lost", "background_noise"], 120)
        report = ReportBuilder().build(session)

        assert report.severity_breakdown == {"high": 1, "medium": 1, "low": 2}


class TestRecommendations:
    """Tests for generate_recommendations"""

    def test_clean_session(self):
        from interview_proctor.scoring import ReportBuilder

        recommendations = ReportBuilder().generate_recommendations([], 100)

        assert recommendations[0] == "Candidate demonstrated excellent interview integrity."
        assert recommendations[-1].startswith("No violations detected.")

    def test_phone_and_voice(self):
        from interview_proctor.scoring import ReportBuilder

        session = make_session(["phone_detected", "phone_detected", "unauthorized_voice"])
        recommendations = ReportBuilder().generate_recommendations(list(session.events), session.score)

        assert recommendations[0] == "Candidate's behavior raises concerns that should be addressed."
        assert "Mobile phone was detected 2 time(s). Consider discussing device policies." in recommendations
        assert any(r.startswith("Unauthorized voices detected.") for r in recommendations)

    def test_frequent_focus_loss(self):
        from interview_proctor.scoring import ReportBuilder

        session = make_session(["focus_lost"] * 4)
        recommendations = ReportBuilder().generate_recommendations(list(session.events), 80)

        assert recommendations[0] == "Candidate demonstrated excellent interview integrity."
        assert any(r.startswith("Frequent focus loss detected.") for r in recommendations)

    def test_acceptable_band(self):
        from interview_proctor.scoring import ReportBuilder

        recommendations = ReportBuilder().generate_recommendations([], 65)
        assert recommendations[0] == "Candidate showed acceptable behavior with minor infractions."


class TestReviewPolicy:
    """Tests for review flags and priority"""

    def test_clean_session_low_priority(self):
        from interview_proctor.scoring import ReportBuilder

        report = ReportBuilder().build(make_session([], 60))

        assert report.review_required is False
        assert report.review_priority == "low"
        assert report.grade == "A"

    def test_critical_kind_is_urgent(self):
        from interview_proctor.models import ViolationKind
        from interview_proctor.scoring import ReportBuilder

        builder = ReportBuilder()
        assert builder.requires_review([ViolationKind.MULTIPLE_FACES], 90) is True
        assert builder.get_review_priority([ViolationKind.MULTIPLE_FACES], 90, 1) == "urgent"

    def test_single_minor_kind_is_normal(self):
        from interview_proctor.models import ViolationKind
        from interview_proctor.scoring import ReportBuilder

        builder = ReportBuilder()
        assert builder.requires_review([ViolationKind.BACKGROUND_NOISE], 95) is False
        assert builder.get_review_priority([ViolationKind.BACKGROUND_NOISE], 95, 1) == "normal"

    def test_many_kinds_is_high(self):
        from interview_proctor.models import ViolationKind
        from interview_proctor.scoring import ReportBuilder

        kinds = [ViolationKind.FOCUS_LOST, ViolationKind.BACKGROUND_NOISE, ViolationKind.DEVICE_DETECTED]
        builder = ReportBuilder()
        assert builder.requires_review(kinds, 70) is True
        assert builder.get_review_priority(kinds, 70, 3) == "high"

    def test_low_score_priorities(self):
        from interview_proctor.models import ViolationKind
        from interview_proctor.scoring import ReportBuilder

        builder = ReportBuilder()
        assert builder.get_review_priority([ViolationKind.NO_FACE], 55, 3) == "high"
        assert builder.get_review_priority([ViolationKind.NO_FACE], 35, 4) == "urgent"

    def test_in_progress_duration_uses_now(self):
        from interview_proctor.scoring import ReportBuilder

        report = ReportBuilder().build(make_session(["book_detected"]), now=START + timedelta(minutes=2))

        assert report.duration_ms == 120000
        assert report.status == "active"
        assert report.penalties == {"book_detected": {"count": 1, "penalty": 15.0}}
