"""Utility modules for logging, retries and auditing."""
from .audit_log import (
    ChangeRecord,
    get_recent_changes,
    log_change,
    setup_audit_logging,
)
from .connection import with_retry
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
)

__all__ = [
    "ChangeRecord",
    "get_recent_changes",
    "log_change",
    "setup_audit_logging",
    "with_retry",
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
]
