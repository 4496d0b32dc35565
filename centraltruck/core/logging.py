"""
Secure Logging Module
=====================

Logging helpers that keep credentials out of log output.

Features:
- Redaction of passwords, salts, password hashes and tokens
- Rotating log files with size limits
- Optional JSON output for log aggregation
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Pattern

from centraltruck.core.config import LoggingConfig, PathConfig


_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("password", re.compile(r'(?i)(password|passwd|pwd|senha)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("password_hash", re.compile(r'(?i)(password_?hash)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("salt", re.compile(r'(?i)\bsalt\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("token", re.compile(r'(?i)(token|bearer)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)(secret|private[_-]?key|api[_-]?key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    # Bare hex digests and salts (32+ hex chars)
    ("hex_secret", re.compile(r'(?i)\b[a-f0-9]{32,}\b')),
    ("base64_secret", re.compile(r'[A-Za-z0-9+/]{40,}={0,2}')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"

_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class SecureLogFilter(logging.Filter):
    """
    Log filter that redacts credential material from log records.

    The record is always kept; only its message and string arguments are
    rewritten.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._additional_patterns = additional_patterns or []

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg and isinstance(record.msg, str):
            record.msg = self._sanitize(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize(v) if isinstance(v, str) else v
                               for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _sanitize(self, text: str) -> str:
        result = text

        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)

        for pattern in self._additional_patterns:
            result = pattern.sub(_REDACTED_TEXT, result)

        return result


class StructuredLogFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class SecureRotatingFileHandler(RotatingFileHandler):
    """
    Rotating file handler that validates its target path and creates the
    log directory.
    """

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,
        backupCount: int = 5,
        encoding: str = "utf-8",
    ) -> None:
        if ".." in Path(filename).parts:
            raise ValueError("Log path cannot contain path traversal sequences")

        log_path = Path(filename).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(log_path),
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
        )


def _build_handlers(
    log_file: Optional[Path],
    enable_console: bool,
    enable_json: bool,
    max_file_size: int,
    backup_count: int,
) -> list[logging.Handler]:
    secure_filter = SecureLogFilter()
    handlers: list[logging.Handler] = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console_handler.addFilter(secure_filter)
        handlers.append(console_handler)

    if log_file is not None:
        file_handler = SecureRotatingFileHandler(
            filename=log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        if enable_json:
            file_handler.setFormatter(StructuredLogFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.addFilter(secure_filter)
        handlers.append(file_handler)

    return handlers


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Create a logger with credential redaction on every handler.

    Args:
        name: Logger name (typically a dotted ``centraltruck.*`` name)
        log_dir: Directory for log files (file output is skipped without one)
        level: Logging level
        enable_console: Whether to output to stderr
        enable_file: Whether to output to a rotating file
        enable_json: Whether the file output is JSON
        max_file_size: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))

    log_file = None
    if enable_file and log_dir:
        log_file = log_dir / f"{name.replace('.', '_')}.log"

    for handler in _build_handlers(log_file, enable_console, enable_json, max_file_size, backup_count):
        logger.addHandler(handler)

    logger.propagate = False

    return logger


def configure_root_logger(
    logging_config: LoggingConfig,
    paths: Optional[PathConfig] = None,
) -> None:
    """
    Configure the root logger from configuration.

    Called once at process start so every ``centraltruck.*`` logger
    inherits the redacting handlers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, logging_config.level.upper()))
    root_logger.handlers.clear()

    log_file = None
    if logging_config.enable_file and paths is not None:
        log_file = paths.log_dir / "centraltruck.log"

    for handler in _build_handlers(
        log_file,
        logging_config.enable_console,
        logging_config.enable_json,
        logging_config.max_file_size_bytes,
        logging_config.backup_count,
    ):
        root_logger.addHandler(handler)
