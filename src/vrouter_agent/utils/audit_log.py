"""Audit logging for configuration changes applied to the device.

Every session script run is recorded as one JSON line:
- Timestamped entries for all applies, successful or not
- The exact primitive commands sent, in execution order
- Truncated script output for failed commits
"""
import json
import logging
import os
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Create dedicated audit logger
audit_logger = logging.getLogger("vrouter_agent.audit")

DEFAULT_AUDIT_DIR = "~/.vrouter-agent"
AUDIT_FILE_NAME = "audit.log"
MAX_OUTPUT_LENGTH = 1000


def get_audit_file(log_dir: Optional[str] = None) -> str:
    return os.path.join(os.path.expanduser(log_dir or DEFAULT_AUDIT_DIR), AUDIT_FILE_NAME)


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.vrouter-agent/
    """
    audit_file = get_audit_file(log_dir)
    Path(audit_file).parent.mkdir(parents=True, exist_ok=True)

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )

    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to the application logger
    audit_logger.propagate = False


@dataclass
class ChangeRecord:
    """Record of one apply against the device."""
    timestamp: str
    operation: str
    success: bool
    commands: list[str] = field(default_factory=list)
    output: str = ""
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


def log_change(
    operation: str,
    commands: list[str],
    success: bool,
    output: str = "",
    error: Optional[str] = None,
) -> ChangeRecord:
    """Log a configuration change.

    Args:
        operation: The operation performed (e.g., "apply")
        commands: Primitive commands sent to the device
        success: Whether the commit succeeded
        output: Script output
        error: Error message if failed

    Returns:
        The ChangeRecord that was logged
    """
    record = ChangeRecord(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        success=success,
        commands=list(commands),
        output=output[:MAX_OUTPUT_LENGTH] if output else "",
        error=error,
    )

    audit_logger.info(record.to_json())

    return record


def get_recent_changes(
    log_file: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.vrouter-agent/audit.log
        operation: Filter by operation type
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = get_audit_file()

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if operation and record.operation != operation:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
