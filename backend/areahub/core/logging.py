"""Structured logging configuration for the AREA Hub backend.

This module wires the stdlib logging tree for the service:
- JSON records for log files and production consoles
- Coloured human-readable console output when DEBUG is on
- Rotating file handler (10MB max, 5 backups)
- A redaction filter on every handler so OAuth2 tokens, authorization
  codes and client secrets never reach a log sink

Structured context travels in ``extra={"context": {...}}``.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import ClassVar

from areahub.core.config import settings


class SensitiveDataFilter(logging.Filter):
    """Redact credentials from log messages and string arguments.

    Covers ``key=value`` / ``key: value`` pairs for token-like keys and
    ``Bearer``/``Basic`` authorization values.

    Examples:
        >>> logger = logging.getLogger("areahub")
        >>> logger.addFilter(SensitiveDataFilter())
        >>> logger.info("refresh_token=abc123")
        # Logs: "refresh_token: [REDACTED]"
    """

    SENSITIVE_KEYS: ClassVar[list[str]] = [
        "access_token",
        "refresh_token",
        "id_token",
        "client_secret",
        "code_verifier",
        "password",
        "secret",
        "token",
        "api_key",
        "authorization",
        "code",
    ]

    _KEY_PATTERNS: ClassVar[list[tuple[str, re.Pattern[str]]]] = [
        (key, re.compile(rf"\b{key}[\"']?\s*[:=]\s*[\"']?[^\s\"',&}}]+", re.IGNORECASE))
        for key in SENSITIVE_KEYS
    ]
    _SCHEME_PATTERN: ClassVar[re.Pattern[str]] = re.compile(
        r"\b(Bearer|Basic)\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE
    )

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact the record in place; never drops it."""
        record.msg = self.redact(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self.redact(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            else:
                record.args = tuple(
                    self.redact(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            record.context = {
                k: "[REDACTED]" if k.lower() in self.SENSITIVE_KEYS and v is not None else v
                for k, v in context.items()
            }
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        """Return ``text`` with credential values replaced by ``[REDACTED]``."""
        text = cls._SCHEME_PATTERN.sub(r"\1 [REDACTED]", text)
        for key, pattern in cls._KEY_PATTERNS:
            text = pattern.sub(f"{key}: [REDACTED]", text)
        return text


class JSONFormatter(logging.Formatter):
    """Single-line JSON log records.

    Format:
        {
            "timestamp": "2025-01-12T10:30:45.123Z",
            "level": "INFO",
            "logger": "areahub.services.service_link_service",
            "message": "Service linked",
            "service": "AREA Hub API",
            "context": {"user_id": "...", "service_id": "..."}
        }
    """

    def __init__(self, service_name: str = "AREA Hub API") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        context = getattr(record, "context", None)
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": SensitiveDataFilter.redact(str(record.exc_info[1]))
                if record.exc_info[1]
                else None,
                "traceback": self.formatException(record.exc_info),
            }

        if record.levelno >= logging.ERROR:
            log_entry["source"] = {
                "function": record.funcName,
                "line": record.lineno,
                "file": record.pathname,
            }

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Coloured console output for local development."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            line = f"{line} | Context: {json.dumps(context, default=str)}"
        return f"{color}{line}{self.RESET}"


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service_name: str = "AREA Hub API",
    enable_json: bool = True,
    enable_console: bool = True,
) -> logging.Logger:
    """Configure the root logger.

    Args:
        log_level: Level name; defaults to ``settings.LOG_LEVEL``.
        log_file: Path of the rotating log file; defaults to ``logs/app.log``.
        service_name: Service name stamped on JSON records.
        enable_json: Use JSON for the file handler.
        enable_console: Attach a stdout handler.

    Returns:
        The configured root logger.
    """
    if log_level is None:
        log_level = settings.LOG_LEVEL
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_file is None:
        log_file_path = Path("logs") / "app.log"
    else:
        log_file_path = Path(log_file)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    sensitive_filter = SensitiveDataFilter()

    file_handler = RotatingFileHandler(
        filename=str(log_file_path),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    if enable_json:
        file_handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    file_handler.addFilter(sensitive_filter)
    logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if settings.DEBUG:
            console_handler.setFormatter(ColoredConsoleFormatter())
        else:
            console_handler.setFormatter(JSONFormatter(service_name=service_name))
        console_handler.addFilter(sensitive_filter)
        logger.addHandler(console_handler)

    logger.info(
        f"Logging initialized - Level: {log_level}, File: {log_file_path}",
        extra={
            "context": {
                "log_level": log_level,
                "log_file": str(log_file_path),
                "service": service_name,
            }
        },
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a module logger that inherits the root configuration.

    Examples:
        >>> from areahub.core.logging import get_logger
        >>> logger = get_logger(__name__)
    """
    return logging.getLogger(name)


__all__ = [
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "SensitiveDataFilter",
    "get_logger",
    "setup_logging",
]
