"""Structured JSON logger for the CLI."""

import json
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40}


class Logger:
    """Structured JSON logger.

    Writes one JSON object per line to stderr so that command output on
    stdout stays machine-readable.
    """

    def __init__(
        self,
        context: dict[str, Any] | None = None,
        *,
        level: str = "info",
        stream: TextIO | None = None,
    ) -> None:
        """Initialize logger with optional context."""
        self.context = context or {}
        self.level = level
        self.stream = stream

    def child(self, context: dict[str, Any]) -> "Logger":
        """Create child logger with additional context."""
        return Logger(
            {**self.context, **context}, level=self.level, stream=self.stream
        )

    def set_level(self, level: str) -> None:
        """Change the minimum level that gets written."""
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        self.level = level

    def enabled(self, level: str) -> bool:
        return LEVELS[level] >= LEVELS[self.level]

    def _log(self, level: str, message: str, extra: dict[str, Any] | None = None) -> None:
        """Log structured message."""
        if not self.enabled(level):
            return
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "message": message,
            **self.context,
            **(extra or {}),
        }
        print(json.dumps(entry, default=str), file=self.stream or sys.stderr, flush=True)

    def debug(self, message: str, extra: dict[str, Any] | None = None) -> None:
        """Log debug message."""
        self._log("debug", message, extra)

    def info(self, message: str, extra: dict[str, Any] | None = None) -> None:
        """Log info message."""
        self._log("info", message, extra)

    def warn(self, message: str, extra: dict[str, Any] | None = None) -> None:
        """Log warning message."""
        self._log("warn", message, extra)

    def error(self, message: str, extra: dict[str, Any] | None = None) -> None:
        """Log error message."""
        self._log("error", message, extra)


logger = Logger()
