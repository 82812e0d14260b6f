"""
Structured Logger - leveled logging engine behind every taglog sink

Each sink (console, file) owns one StructuredLogger. The engine applies the
sink's level threshold, builds a LogEntry, hands it to the sink's formatter
and writes the rendered line to the output stream.

Features:
- Seven ordered log levels (TRACE < DEBUG < INFO < WARN < ERROR < PANIC < FATAL)
- Free-form fields attached to every entry
- Output stream that can be swapped while other threads are writing
- Write failures fall back to stderr instead of raising

Usage:
    from taglog.formatter import EntryFormatter
    from taglog.structured_logger import StructuredLogger, LogLevel

    logger = StructuredLogger("console", level=LogLevel.INFO, formatter=EntryFormatter(log_to_file=False))
    logger.log(LogLevel.INFO, "Operation completed", {"tag": "API", "content": ["200"]})
"""

import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from threading import Lock
from beartype.typing import Any, Callable, Dict, Optional, TextIO


class LogLevel(IntEnum):
    """Log levels, ordered from most to least verbose"""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    PANIC = 5
    FATAL = 6

    @classmethod
    def parse(cls, name: str) -> "LogLevel":
        """
        Convert a level name to a LogLevel.

        Args:
            name: Level name, case insensitive ("warning" is accepted for WARN)

        Returns:
            Matching LogLevel

        Raises:
            ValueError: name is not a known level
        """
        level_upper = str(name).strip().upper()
        if level_upper == "WARNING":
            level_upper = "WARN"
        if level_upper not in cls.__members__:
            raise ValueError(f"Invalid log level: {name}")
        return cls[level_upper]


@dataclass
class LogEntry:
    """A single log call as seen by a formatter"""

    timestamp: datetime
    level: LogLevel
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


class StructuredLogger:
    """
    Leveled logger writing formatted entries to one output stream.

    Example:
        logger = StructuredLogger("file", level=LogLevel.DEBUG, output_stream=handle, formatter=formatter)
        logger.log(LogLevel.WARN, "Slow request", {"tag": "HTTP"})
    """

    def __init__(
        self,
        name: str,
        level: LogLevel = LogLevel.TRACE,
        output_stream: Optional[TextIO] = None,
        formatter=None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize structured logger.

        Args:
            name: Sink name, used in fallback messages
            level: Minimum log level to output
            output_stream: Output stream (default: sys.stdout)
            formatter: Object with a render(entry) -> str method
            clock: Returns the entry timestamp (default: current UTC time)
        """
        self.name = name
        self.level = level
        self.output_stream = output_stream or sys.stdout
        self.formatter = formatter
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()
        self._closed = False

    def _should_log(self, level: LogLevel) -> bool:
        """Check if message should be logged based on level"""
        return level >= self.level

    def log(self, level: LogLevel, message: str, fields: Optional[Dict[str, Any]] = None) -> bool:
        """
        Format and write an entry if its level passes the threshold.

        Args:
            level: Entry level
            message: Log message
            fields: Fields attached to the entry

        Returns:
            True if the entry was written
        """
        if not self._should_log(level):
            return False

        entry = LogEntry(timestamp=self._clock(), level=level, message=message, data=dict(fields or {}))
        line = self.formatter.render(entry)

        with self._lock:
            if self._closed:
                return False
            try:
                self.output_stream.write(line)
                self.output_stream.flush()
            except (OSError, ValueError):
                # Closed or broken stream, keep the line on stderr
                if self.output_stream is not sys.stderr:
                    sys.stderr.write(f"Logging error: failed to write to {self.name} output stream\n")
                    sys.stderr.write(line)
                return False
        return True

    def set_output(self, output_stream: TextIO) -> TextIO:
        """
        Replace the output stream.

        Waits for an in-flight write to finish, so the previous stream can be
        closed safely once this returns.

        Returns:
            The previous output stream
        """
        with self._lock:
            previous = self.output_stream
            self.output_stream = output_stream
        return previous

    def close(self):
        """
        Stop writing.

        Later log calls are dropped and return False. The output stream is
        left open, its owner closes it.
        """
        with self._lock:
            self._closed = True

    def set_level(self, level: LogLevel):
        """
        Set minimum log level.

        Example:
            logger.set_level(LogLevel.WARN)
        """
        self.level = level
