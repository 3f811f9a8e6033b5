"""
Tests for recorded signal replay
"""

import json
import logging

import pytest

from conftest import START


@pytest.fixture(autouse=True)
def restore_package_logger():
    """main() reconfigures the package logger; put it back afterwards"""
    package_logger = logging.getLogger("interview_proctor")
    handlers, level = package_logger.handlers[:], package_logger.level
    yield
    package_logger.handlers = handlers
    package_logger.setLevel(level)


def records_to_lines(records):
    return [json.dumps(record) for record in records]


class TestSignalReplayer:
    """Tests for SignalReplayer"""

    def test_replay_fires_deferred_check_at_deadline(self, candidate):
        """The no-face check fires at its own deadline, not at the next record"""
        from interview_proctor.models import ViolationKind
        from interview_proctor.replay import SignalReplayer

        replayer = SignalReplayer(candidate, started_at=START)
        report = replayer.run([
            {"at_ms": 1000, "signal": "face", "data": {"face_detected": False}},
            {"at_ms": 30000, "signal": "face", "data": {"face_detected": True}},
            {"at_ms": 40000, "signal": "end"},
        ])

        events = report.suspicious_events
        assert [e.kind for e in events] == [ViolationKind.NO_FACE]
        assert events[0].duration_ms == 10000
        assert report.duration_ms == 40000
        assert report.integrity_score == 80

    def test_replay_full_session(self, candidate):
        from interview_proctor.replay import SignalReplayer, read_records

        lines = records_to_lines([
            {"at_ms": 0, "signal": "face", "data": {"is_focused": False}},
            {"at_ms": 8000, "signal": "face", "data": {"is_focused": True}},
            {"at_ms": 9000, "signal": "objects", "data": {"labels": ["cell phone"]}},
            {"at_ms": 9500, "signal": "audio", "data": {"volume": 40, "background_noise": True}},
            {"at_ms": 12000, "signal": "eye", "data": {"drowsy": True}},
        ])
        lines.insert(2, "")

        report = SignalReplayer(candidate, started_at=START).run(read_records(lines))

        assert report.total_violations == 4
        assert report.integrity_score == 100 - 15 - 25 - 5 - 12
        assert report.status == "completed"
        assert report.duration_ms == 12000

    def test_out_of_order_record_rejected(self, candidate):
        from interview_proctor.replay import ReplayError, SignalReplayer

        replayer = SignalReplayer(candidate, started_at=START)
        with pytest.raises(ReplayError):
            replayer.run([
                {"at_ms": 5000, "signal": "face", "data": {}},
                {"at_ms": 1000, "signal": "face", "data": {}},
            ])

    def test_unknown_signal_rejected(self, candidate):
        from interview_proctor.replay import ReplayError, SignalReplayer

        with pytest.raises(ReplayError):
            SignalReplayer(candidate, started_at=START).apply({"at_ms": 0, "signal": "heartbeat"})

    def test_invalid_payload_rejected(self, candidate):
        from interview_proctor.replay import ReplayError, SignalReplayer

        with pytest.raises(ReplayError):
            SignalReplayer(candidate, started_at=START).apply(
                {"at_ms": 0, "signal": "audio", "data": {"volume": 500}}
            )

    def test_bad_json_line(self):
        from interview_proctor.replay import ReplayError, read_records

        with pytest.raises(ReplayError):
            list(read_records(['{"at_ms": 0', ]))


class TestReplayCommand:
    """Tests for the proctor-replay entry point"""

    def test_main_prints_report(self, tmp_path, capsys):
        from interview_proctor.replay import main

        recording = tmp_path / "session.jsonl"
        recording.write_text("\n".join(records_to_lines([
            {"at_ms": 0, "signal": "objects", "data": {"labels": ["book"]}},
            {"at_ms": 2000, "signal": "end"},
        ])))

        exit_code = main([str(recording), "--candidate", "Ada", "--interview-id", "iv_9", "--log-level", "ERROR"])

        assert exit_code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["integrity_score"] == 85
        assert report["candidate"]["interview_id"] == "iv_9"
        assert report["suspicious_events"][0]["type"] == "book_detected"

    def test_main_missing_file(self, tmp_path):
        from interview_proctor.replay import main

        assert main([str(tmp_path / "missing.jsonl"), "--log-level", "ERROR"]) == 1
