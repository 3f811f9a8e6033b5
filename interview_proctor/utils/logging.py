"""
Proctoring Logger - Logs engine lifecycle, violations and advisory failures
"""

import logging
import sys
from datetime import datetime
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BG_RED = "\033[41m"


class ColoredFormatter(logging.Formatter):
    """Colored formatter for terminal output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM + Colors.WHITE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BG_RED + Colors.WHITE,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]

        level_str = f"{color}{record.levelname:8}{Colors.RESET}"
        time_str = f"{Colors.DIM}{timestamp}{Colors.RESET}"
        name_str = f"{Colors.CYAN}{record.name}{Colors.RESET}"

        return f"{time_str} {level_str} [{name_str}] {record.getMessage()}"


def setup_logger(name: str = "interview_proctor", level: str = "INFO") -> logging.Logger:
    """Configure colored logger for terminal output."""
    configured = logging.getLogger(name)
    configured.setLevel(level)

    # Remove existing handlers
    configured.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter())
    handler.setLevel(level)
    configured.addHandler(handler)

    return configured


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Proctoring session ID
        event_type: Type of event (session_start, violation, session_end, etc.)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, candidate_ref: str):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={"candidate": candidate_ref}
    )


def log_session_end(session_id: str, integrity_score: int, event_count: int):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            "integrity_score": integrity_score,
            "events": event_count
        }
    )


def log_violation_recorded(session_id: str, kind: str, score: int, duration_ms: Optional[int] = None):
    """Log when a violation makes it into the ledger"""
    details = {"kind": kind, "score": score}
    if duration_ms is not None:
        details["duration_ms"] = duration_ms
    log_proctor_event(
        session_id=session_id,
        event_type="violation",
        details=details,
        level="warning"
    )


def log_duplicate_suppressed(session_id: str, kind: str, bucket: int):
    """Log a candidate dropped by the dedup bucket"""
    log_proctor_event(
        session_id=session_id,
        event_type="duplicate_suppressed",
        details={"kind": kind, "bucket": bucket},
        level="debug"
    )


def log_deferred_check(session_id: str, outcome: str, elapsed_ms: Optional[int] = None):
    """Log the outcome of a deferred no-face confirmation"""
    details = {"outcome": outcome}
    if elapsed_ms is not None:
        details["elapsed_ms"] = elapsed_ms
    log_proctor_event(
        session_id=session_id,
        event_type="deferred_check",
        details=details,
        level="debug"
    )


def log_persistence_failure(session_id: str, operation: str, error: Exception):
    """Log an advisory persistence failure"""
    log_proctor_event(
        session_id=session_id,
        event_type="persistence_failed",
        details={"operation": operation, "error": error},
        level="warning"
    )
