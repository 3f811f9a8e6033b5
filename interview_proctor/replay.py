"""
Signal Replay - Re-runs a recorded signal stream through a fresh engine

Input is JSON Lines, one signal per line:

    {"at_ms": 0, "signal": "face", "data": {"face_detected": true, "is_focused": false}}
    {"at_ms": 8000, "signal": "face", "data": {"is_focused": true}}
    {"at_ms": 9000, "signal": "end"}

at_ms is the offset from session start. Deferred checks fire at their own
deadlines, so the replayed log matches what a live session would record.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from .config import ProctorSettings, settings as default_settings
from .engine import ProctorEngine
from .models import CandidateInfo
from .scheduler import ManualScheduler
from .scoring import SessionReport
from .signals import AudioSignal, EyeSignal, FaceSignal, ObjectSignal
from .utils.logging import setup_logger

logger = logging.getLogger(__name__)

SIGNAL_PARSERS = {
    "face": FaceSignal,
    "eye": EyeSignal,
    "audio": AudioSignal,
    "objects": ObjectSignal,
}


class ReplayError(ValueError):
    """Malformed replay record"""
    pass


class ReplayClock:
    """Clock that only moves when the replay tells it to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now


class SignalReplayer:
    """Feeds timestamped records into a ProctorEngine driven by a ManualScheduler."""

    def __init__(
        self,
        candidate: CandidateInfo,
        settings: Optional[ProctorSettings] = None,
        started_at: Optional[datetime] = None
    ):
        self.started_at = started_at or datetime.now(timezone.utc)
        self.clock = ReplayClock(self.started_at)
        self.scheduler = ManualScheduler(self.clock)
        self.engine = ProctorEngine(
            candidate,
            settings=settings or default_settings,
            clock=self.clock,
            scheduler=self.scheduler,
        )

    def advance_to(self, offset_ms: int):
        """Move the clock forward, firing deferred checks at their deadlines."""
        target = self.started_at + timedelta(milliseconds=offset_ms)
        if target < self.clock.now:
            raise ReplayError(f"Record at {offset_ms}ms is earlier than the previous record")

        while True:
            due = [t for t in self.scheduler.pending(self.engine.id) if t.due_at <= target]
            if not due:
                break
            self.clock.now = max(self.clock.now, min(t.due_at for t in due))
            self.scheduler.run_due()

        self.clock.now = target

    def apply(self, record: Dict[str, Any]):
        """Apply one decoded record."""
        try:
            offset_ms = int(record["at_ms"])
            kind = record["signal"]
        except (KeyError, TypeError, ValueError) as e:
            raise ReplayError(f"Invalid replay record {record!r}: {e}") from e

        self.advance_to(offset_ms)

        if kind == "end":
            self.engine.end_session()
            return

        parser = SIGNAL_PARSERS.get(kind)
        if parser is None:
            raise ReplayError(f"Unknown signal type: {kind}")

        try:
            signal = parser.model_validate(record.get("data") or {})
        except ValidationError as e:
            raise ReplayError(f"Invalid {kind} signal at {offset_ms}ms: {e}") from e

        self.engine.submit(signal)

    def run(self, records: Iterable[Dict[str, Any]]) -> SessionReport:
        """Apply every record, end the session and build the report."""
        for record in records:
            if not self.engine.is_active:
                logger.warning("Records after session end are ignored")
                break
            self.apply(record)

        self.engine.end_session()
        return self.engine.build_report()


def read_records(lines: Iterable[str]) -> Iterable[Dict[str, Any]]:
    """Decode JSON Lines, skipping blank lines."""
    for number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as e:
            raise ReplayError(f"Line {number}: {e}") from e


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Replay a recorded proctoring signal stream")
    parser.add_argument("input", type=str, help="Path to a JSON Lines signal recording ('-' for stdin)")
    parser.add_argument("--candidate", type=str, default="replay", help="Candidate name for the report")
    parser.add_argument("--interview-id", type=str, default="", help="Interview ID for the report")
    parser.add_argument("--log-level", type=str, default=None, help="Override PROCTOR_LOG_LEVEL")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Entry point for proctor-replay."""
    args = parse_arguments(argv)
    setup_logger(level=args.log_level or default_settings.LOG_LEVEL)

    replayer = SignalReplayer(CandidateInfo(name=args.candidate, interview_id=args.interview_id))

    try:
        if args.input == "-":
            report = replayer.run(read_records(sys.stdin))
        else:
            with open(args.input, "r", encoding="utf-8") as f:
                report = replayer.run(read_records(f))
    except (OSError, ReplayError) as e:
        logger.error(f"Replay failed: {e}")
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
