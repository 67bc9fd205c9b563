"""
Structured logging configuration with an audit trail for the payroll chat client.

Log output goes to stderr and to rotating files; stdout is reserved for the
conversation itself.
"""

import json
import logging
import logging.config
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from opentelemetry import trace


_RESERVED_ATTRIBUTES = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter with OpenTelemetry trace correlation."""

    def __init__(self, include_trace: bool = True, extra_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.include_trace = include_trace
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if self.include_trace:
            current_span = trace.get_current_span()
            if current_span and current_span.is_recording():
                span_context = current_span.get_span_context()
                log_entry.update({
                    "trace_id": format(span_context.trace_id, "032x"),
                    "span_id": format(span_context.span_id, "016x")
                })

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES:
                log_entry[key] = value

        log_entry.update(self.extra_fields)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class AuditLogger:
    """Logger for session, turn and upload audit events."""

    def __init__(self, logger_name: str = "payroll_chat.audit"):
        self.logger = logging.getLogger(logger_name)

    def log_session_event(
        self,
        event_type: str,
        session_id: str,
        result: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log a session lifecycle event."""
        self.logger.info(
            f"Session event: {event_type}",
            extra={
                "audit_type": "session",
                "event_type": event_type,
                "session_id": session_id,
                "result": result,
                "metadata": metadata or {}
            }
        )

    def log_turn_event(
        self,
        session_id: str,
        result: str,
        run_id: Optional[str] = None,
        run_status: Optional[str] = None,
        error: Optional[str] = None
    ) -> None:
        """Log the outcome of a turn."""
        self.logger.info(
            f"Turn event: {result}",
            extra={
                "audit_type": "turn",
                "session_id": session_id,
                "run_id": run_id,
                "run_status": run_status,
                "result": result,
                "error": error
            }
        )

    def log_upload_event(
        self,
        session_id: str,
        file_name: str,
        byte_size: int,
        result: str,
        remote_file_id: Optional[str] = None,
        error: Optional[str] = None
    ) -> None:
        """Log an attachment upload."""
        self.logger.info(
            f"Upload event: {file_name} - {result}",
            extra={
                "audit_type": "upload",
                "session_id": session_id,
                "file_name": file_name,
                "byte_size": byte_size,
                "remote_file_id": remote_file_id,
                "result": result,
                "error": error
            }
        )


def setup_logging(config: Dict[str, Any]) -> None:
    """Setup logging from the ``logging`` configuration section."""
    log_level = config.get("level", "INFO").upper()
    log_format = config.get("format", "simple")

    log_dir = Path(config.get("directory", "~/.payroll_chat/logs")).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
                "include_trace": config.get("include_trace", True),
                "extra_fields": {"service": "payroll-chat"}
            },
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": config.get("console_level", "WARNING").upper(),
                "formatter": "structured" if log_format == "structured" else "simple",
                "stream": sys.stderr
            },
            "application_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": log_level,
                "formatter": "structured",
                "filename": str(log_dir / "payroll_chat.log"),
                "maxBytes": config.get("max_file_size", 10 * 1024 * 1024),
                "backupCount": config.get("backup_count", 5)
            },
            "audit_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "INFO",
                "formatter": "structured",
                "filename": str(log_dir / "audit.jsonl"),
                "maxBytes": config.get("max_file_size", 10 * 1024 * 1024),
                "backupCount": config.get("backup_count", 5)
            }
        },
        "loggers": {
            "payroll_chat": {
                "level": log_level,
                "handlers": ["console", "application_file"],
                "propagate": False
            },
            "payroll_chat.audit": {
                "level": "INFO",
                "handlers": ["audit_file"],
                "propagate": False
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["application_file"],
                "propagate": False
            },
            "opentelemetry": {
                "level": "WARNING",
                "handlers": ["application_file"],
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"]
        }
    }

    logging.config.dictConfig(logging_config)

    logger = logging.getLogger("payroll_chat.logging")
    logger.info("Logging initialized", extra={
        "config": {
            "level": log_level,
            "format": log_format,
            "directory": str(log_dir)
        }
    })


def get_audit_logger() -> AuditLogger:
    """Get the configured audit logger instance."""
    return AuditLogger()
