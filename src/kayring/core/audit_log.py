# Core - Audit Logging
#
# Structured, append-only log of keystore activity.
# Every set/get/list/clone is recorded with a timestamp, the entry name
# and the outcome. Secrets, passwords and derived keys are never logged.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union
from uuid import uuid4

import structlog

AUDIT_LOGGER_NAME = "kayring.audit"


class EventType(str, Enum):
    """Types of keystore events that can be logged."""
    # Keystore Events
    KEYSTORE_CREATED = "keystore.created"
    KEYSTORE_OVERWRITTEN = "keystore.overwritten"
    KEYSTORE_ACCESSED = "keystore.accessed"
    KEYSTORE_ACCESS_FAILED = "keystore.access.failed"
    KEYSTORE_CLONED = "keystore.cloned"
    KEYSTORE_LISTED = "keystore.listed"
    KEYSTORE_ERROR = "keystore.error"

    # System Events
    SYSTEM_START = "system.start"


class EventSeverity(str, Enum):
    """
    Severity levels for keystore events.

    - INFO: Normal activity
    - INVESTIGATE: Something unusual, e.g. a failed decryption
    - ALERT: An operation failed in a way the user must act on
    - CRITICAL: The store itself is unusable
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"

    def to_log_level(self) -> int:
        """Map severity onto a stdlib logging level."""
        level_map = {
            EventSeverity.INFO: logging.INFO,
            EventSeverity.INVESTIGATE: logging.WARNING,
            EventSeverity.ALERT: logging.ERROR,
            EventSeverity.CRITICAL: logging.CRITICAL,
        }
        return level_map[self]


class AuditLogger:
    """
    Append-only audit logger for keystore events.

    Features:
    - Structured JSON logging (structlog)
    - Automatic timestamp and event ID
    - User and system context capture
    - Daily log files when a log directory is configured, discarded otherwise
    """

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        level: Union[int, str] = logging.WARNING,
    ):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for daily audit log files. When None, events
                     are discarded so the terminal only shows command output.
            level: Minimum stdlib level that gets written
        """
        self.log_dir = Path(log_dir) if log_dir is not None else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        # Setup structured logging
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._setup_handler(level)

        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)

    def _setup_handler(self, level: Union[int, str]):
        """Attach a daily file handler, or a NullHandler when no log dir is set."""
        if self.log_dir is not None:
            today = datetime.now().strftime("%Y-%m-%d")
            log_file = self.log_dir / f"audit_{today}.log"
            handler: logging.Handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        else:
            handler = logging.NullHandler()
        handler.setFormatter(logging.Formatter('%(message)s'))  # structlog handles formatting

        audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        for old in list(audit_logger.handlers):
            audit_logger.removeHandler(old)
            old.close()
        audit_logger.addHandler(handler)
        audit_logger.setLevel(level)
        self.handler = handler

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log a keystore event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secrets or passwords!)
            user_context: User context (os user, hostname, ...)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.log(severity.to_log_level(), "keystore_event", **event_data)

        return event_id

    def log_keystore_event(
        self,
        event_type: EventType,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: EventSeverity = EventSeverity.INFO,
    ) -> str:
        """Log a keystore event with a "Keystore: " message prefix."""
        return self.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Keystore: {message}",
            details=details
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        """Get default user context (OS user, hostname, etc.)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def configure_audit_logger(
    log_dir: Optional[Path] = None,
    level: Union[int, str] = logging.WARNING,
) -> AuditLogger:
    """Replace the global audit logger with one using the given settings."""
    global _audit_logger
    _audit_logger = AuditLogger(log_dir=log_dir, level=level)
    return _audit_logger


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Convenience function for logging keystore events.

    Usage:
        log_security_event(
            EventType.KEYSTORE_ERROR,
            EventSeverity.ALERT,
            "Could not write entry",
            details={"name": "deployer"}
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)
