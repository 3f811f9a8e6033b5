"""Utility modules"""

from .logging import log_proctor_event, setup_logger

__all__ = ["log_proctor_event", "setup_logger"]
