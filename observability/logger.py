"""Dual-format logging system for DataDAO deployment.

Provides colored console output for humans and JSON logs for tooling.
"""

import json
import logging
import re
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# LogRecord attributes that are not user context
_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "asctime",
    "message",
}


class ColoredFormatter(logging.Formatter):
    """Terminal formatter with ANSI colors.

    Color mapping:
    - DEBUG: Cyan
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Magenta
    """

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with optional colors.

        The level name is colored on a copy so other handlers sharing the
        record keep the plain name.
        """
        if not self.use_colors:
            return super().format(record)
        colored = logging.makeLogRecord(record.__dict__)
        level_color = self.COLORS.get(record.levelno, "")
        colored.levelname = f"{level_color}{record.levelname}{self.RESET}"
        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logs.

    Produces newline-delimited JSON (JSONL). Each entry includes timestamp,
    level, logger, message, source location and a context object built from
    the ``extra`` fields of the log call.
    """

    # Control characters to remove (all except \n, \r, \t)
    _CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

    # Context keys whose values are never written to logs
    _REDACTED_KEYS = {"credentials", "privateKey", "refinementKey"}

    @classmethod
    def _sanitize(cls, value: Any) -> Any:
        """Remove control characters from strings, recursively."""
        if isinstance(value, str):
            return cls._CONTROL_CHARS_PATTERN.sub("", value)
        elif isinstance(value, (list, tuple)):
            return type(value)(cls._sanitize(v) for v in value)
        elif isinstance(value, dict):
            return {
                k: "***" if k in cls._REDACTED_KEYS else cls._sanitize(v) for k, v in value.items()
            }
        return value

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": logging.getLevelName(record.levelno),
            "logger": record.name,
            "message": self._sanitize(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self._sanitize(self.formatException(record.exc_info))

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if context:
            log_entry["context"] = self._sanitize(context)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class DeployLogger:
    """Dual-format logger with colored console and JSON file output.

    Features:
    - Colored console output for human readability (optional)
    - JSON structured logs under <log_dir>/structured/
    - Automatic log rotation (10MB max, 5 backups)
    - Context metadata support

    Example:
        logger = get_logger("datadao", log_dir, console_enabled=False)

        logger.info("Record loaded", stages=3)
        logger.log_stage_transition(
            stage="register",
            from_status="in_progress",
            to_status="failed",
            metadata={"error": "transaction reverted"},
        )
    """

    def __init__(
        self,
        name: str,
        log_dir: Path,
        console_enabled: bool = True,
        json_enabled: bool = True,
        max_file_size: int = 10_000_000,
        backup_count: int = 5,
    ):
        """Initialize dual-format logger.

        Args:
            name: Logger name.
            log_dir: Directory for log files.
            console_enabled: Enable colored console output.
            json_enabled: Enable JSON and text file logging.
            max_file_size: Maximum size of each log file before rotation.
            backup_count: Number of backup files to keep.
        """
        self.name = name
        self.log_dir = Path(log_dir)
        self.console_enabled = console_enabled
        self.json_enabled = json_enabled
        self.json_dir = self.log_dir / "structured"

        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        for handler in list(self._logger.handlers):
            handler.close()
        self._logger.handlers.clear()

        if console_enabled:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(
                ColoredFormatter(
                    fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                    use_colors=True,
                )
            )
            self._logger.addHandler(console_handler)

        if json_enabled:
            self.json_dir.mkdir(parents=True, exist_ok=True)

            json_handler = RotatingFileHandler(
                self.json_dir / f"{name}.jsonl",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            json_handler.setLevel(logging.DEBUG)
            json_handler.setFormatter(JSONFormatter())
            self._logger.addHandler(json_handler)

            text_handler = RotatingFileHandler(
                self.log_dir / f"{name}.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            text_handler.setLevel(logging.INFO)
            text_handler.setFormatter(
                logging.Formatter(
                    fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            self._logger.addHandler(text_handler)

    def debug(self, message: str, **context) -> None:
        """Log DEBUG message with optional context."""
        self._logger.debug(message, extra=context)

    def info(self, message: str, **context) -> None:
        """Log INFO message with optional context."""
        self._logger.info(message, extra=context)

    def warning(self, message: str, **context) -> None:
        """Log WARNING message with optional context."""
        self._logger.warning(message, extra=context)

    def error(self, message: str, exception: Exception | None = None, **context) -> None:
        """Log ERROR message with optional exception and context.

        Args:
            message: Log message.
            exception: Exception object (will include stack trace).
            **context: Additional metadata for JSON logs.
        """
        if exception:
            self._logger.error(
                message,
                exc_info=(type(exception), exception, exception.__traceback__),
                extra=context,
            )
        else:
            self._logger.error(message, extra=context)

    def log_operation_call(
        self,
        stage: str,
        duration: float,
        success: bool,
        error: str | None = None,
    ) -> None:
        """Structured logging for an external operation run by a stage.

        Args:
            stage: Stage id whose operation ran.
            duration: Execution duration in seconds.
            success: Whether the stage completed.
            error: Error message if it failed.
        """
        level = logging.INFO if success else logging.ERROR
        status = "SUCCESS" if success else "FAILED"

        self._logger.log(
            level,
            f"Operation {status}: {stage} ({duration:.2f}s)",
            extra={
                "stage": stage,
                "duration_seconds": duration,
                "success": success,
                "error": (error or "")[:500],
                "event_type": "operation_call",
            },
        )

    def log_stage_transition(
        self,
        stage: str,
        from_status: str,
        to_status: str,
        metadata: dict | None = None,
    ) -> None:
        """Structured logging for stage transitions.

        Args:
            stage: Stage id.
            from_status: Previous status (e.g., "pending", "in_progress").
            to_status: New status (e.g., "completed", "failed", "refused").
            metadata: Optional additional metadata.
        """
        extra = dict(metadata or {})
        extra.update(
            {
                "stage": stage,
                "from_status": from_status,
                "to_status": to_status,
                "event_type": "stage_transition",
            }
        )

        level = logging.WARNING if to_status in ("failed", "refused") else logging.INFO
        self._logger.log(
            level,
            f"Stage transition: {stage} {from_status} -> {to_status}",
            extra=extra,
        )

    @property
    def logger(self) -> logging.Logger:
        """Get the underlying Python logger."""
        return self._logger
