"""
File Handler - day based log file rotation and retention for taglog

Owns the log file the file sink writes to. One file is kept per UTC day,
named logs_<YYYY-MM-DD>.log, and old files are deleted once they are older
than the retention window.

Features:
- Rotation check: switches the sink to the new day's file
- Retention sweep: deletes files older than rotate_days (strictly older)
- Background thread running both checks on their own interval
- Explicit stop that flushes and closes the active file
- Automatic directory creation

Usage:
    from taglog.file_handler import LogFileManager

    manager = LogFileManager("./logs/", sink=file_sink, emit=app_logger.lib_log)
    manager.open()
    manager.start(check_interval=1800, sweep_interval=7200)
    ...
    manager.stop()
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import Event, Lock, Thread, current_thread
from time import monotonic
from beartype.typing import Callable, List, Optional, TextIO

from taglog.constants import (
    DEFAULT_ROTATE_DAYS,
    FAULT_MAPPING,
    LOG_FILE_DATE_FORMAT,
    LOG_FILE_PREFIX,
    LOG_FILE_SUFFIX,
)
from taglog.errors import LogFileError
from taglog.structured_logger import LogLevel, StructuredLogger


@dataclass
class LogFileInfo:
    """The active log file"""

    name: str
    handle: TextIO


class LogFileManager:
    """
    Keeps the file sink pointed at the current day's log file.

    Example:
        manager = LogFileManager("/var/log/app/", sink=file_sink, emit=emit, rotate_days=14)
        manager.open()
        manager.check_rotation()  # True once the UTC date changed
        manager.sweep()           # paths of the removed files
        manager.close()
    """

    def __init__(
        self,
        log_dir: str,
        sink: StructuredLogger,
        emit: Callable[..., None],
        rotate_days: int = DEFAULT_ROTATE_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
        encoding: str = "utf-8",
    ):
        """
        Initialize log file manager.

        Args:
            log_dir: Directory holding the log files
            sink: File sink whose output stream is managed
            emit: Called as emit(level, message, *content) to report events
            rotate_days: Days a log file is kept (0 means the default of 30)
            clock: Returns the current time (default: current UTC time)
            encoding: File encoding (default: utf-8)
        """
        self.log_dir = Path(log_dir)
        self.sink = sink
        self.emit = emit
        self.rotate_days = rotate_days
        self.encoding = encoding
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._current: Optional[LogFileInfo] = None
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    @property
    def current(self) -> Optional[LogFileInfo]:
        return self._current

    def _now(self) -> datetime:
        return self._clock().astimezone(timezone.utc)

    def expected_name(self) -> str:
        """Name of the log file for the current UTC date"""
        return f"{LOG_FILE_PREFIX}{self._now().strftime(LOG_FILE_DATE_FORMAT)}{LOG_FILE_SUFFIX}"

    def _open_file(self, name: str) -> TextIO:
        path = self.log_dir / name
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            # newline="" keeps the CRLF of JSON records untouched
            return open(path, "a", encoding=self.encoding, newline="")
        except OSError as e:
            raise LogFileError(path, e.strerror or str(e)) from e

    def open(self) -> LogFileInfo:
        """
        Open today's log file and point the sink at it.

        Returns:
            The active LogFileInfo

        Raises:
            LogFileError: directory or file could not be created
        """
        with self._lock:
            if self._current is None:
                name = self.expected_name()
                handle = self._open_file(name)
                self.sink.set_output(handle)
                self._current = LogFileInfo(name=name, handle=handle)
            return self._current

    def check_rotation(self) -> bool:
        """
        Switch to a new file if the UTC date changed.

        The new file is opened before the sink is switched, and the previous
        handle is closed only after the switch, so no write reaches a closed
        file. If the new file cannot be opened the previous one stays active.

        Returns:
            True if a new file was set
        """
        failure = None
        with self._lock:
            if self._current is None:
                return False
            name = self.expected_name()
            if name == self._current.name:
                return False
            try:
                handle = self._open_file(name)
            except LogFileError as e:
                failure = e
            else:
                self.sink.set_output(handle)
                self._current.handle.close()
                self._current = LogFileInfo(name=name, handle=handle)

        if failure is not None:
            self.emit(LogLevel.ERROR, FAULT_MAPPING["log_file_open_issue"], str(failure))
            return False
        self.emit(LogLevel.INFO, FAULT_MAPPING["new_log_file_set"], str(self.log_dir / name))
        return True

    def sweep(self) -> List[Path]:
        """
        Delete log files older than the retention window.

        A file is removed when floor(hours since its date / 24) is greater
        than rotate_days. Failing to remove one file does not stop the sweep,
        and the active file is never removed.

        Returns:
            Paths of the removed files
        """
        now = self._now()
        keep_days = self.rotate_days if self.rotate_days > 0 else DEFAULT_ROTATE_DAYS
        removed = []

        try:
            candidates = sorted(
                path
                for path in self.log_dir.iterdir()
                if path.is_file() and path.name.startswith(LOG_FILE_PREFIX) and path.name.endswith(LOG_FILE_SUFFIX)
            )
        except OSError as e:
            self.emit(LogLevel.ERROR, FAULT_MAPPING["log_dir_walk_issue"], str(e))
            return removed

        for path in candidates:
            date_str = path.name[len(LOG_FILE_PREFIX) : -len(LOG_FILE_SUFFIX)]
            try:
                file_date = datetime.strptime(date_str, LOG_FILE_DATE_FORMAT).replace(tzinfo=timezone.utc)
            except ValueError:
                self.emit(LogLevel.WARN, FAULT_MAPPING["log_file_bad_name"], path.name)
                continue

            age_days = math.floor((now - file_date).total_seconds() / 3600 / 24)
            if age_days <= keep_days:
                continue

            with self._lock:
                if self._current is not None and self._current.name == path.name:
                    continue
                try:
                    path.unlink()
                except OSError as e:
                    failure = e
                else:
                    failure = None

            if failure is not None:
                self.emit(LogLevel.ERROR, FAULT_MAPPING["log_file_remove_issue"], str(failure), path.name)
                continue
            self.emit(LogLevel.TRACE, FAULT_MAPPING["log_file_removed"], path.name)
            removed.append(path)

        return removed

    def start(self, check_interval: float, sweep_interval: float):
        """
        Run rotation checks and retention sweeps in a background thread.

        Only one thread runs per manager, later calls are ignored while it is
        alive.

        Args:
            check_interval: Seconds between rotation checks
            sweep_interval: Seconds between retention sweeps
        """
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = Thread(
                target=self._run,
                args=(check_interval, sweep_interval),
                name="taglog-file-rotation",
                daemon=True,
            )
            self._thread.start()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self, check_interval: float, sweep_interval: float):
        next_check = monotonic() + check_interval
        next_sweep = monotonic() + sweep_interval
        while not self._stop_event.wait(max(0.0, min(next_check, next_sweep) - monotonic())):
            now = monotonic()
            if now >= next_check:
                self._run_task("rotation check", self.check_rotation)
                next_check = now + check_interval
            if now >= next_sweep:
                self._run_task("retention sweep", self.sweep)
                next_sweep = now + sweep_interval

    def _run_task(self, name: str, task: Callable[[], object]):
        try:
            task()
        except Exception as e:
            # The scheduler thread must outlive a failing cycle
            self.emit(LogLevel.ERROR, f"Log file {name} failed", repr(e))

    def stop(self, timeout: Optional[float] = None):
        """
        Stop the background thread, then flush and close the active file.

        Args:
            timeout: Seconds to wait for the thread (default: wait until it ends)
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not current_thread():
            thread.join(timeout)
        self._thread = None
        self.close()

    def close(self):
        """
        Close the active file.

        Safe to call more than once.
        """
        with self._lock:
            if self._current is not None:
                if not self._current.handle.closed:
                    self._current.handle.flush()
                    self._current.handle.close()
                self._current = None

    def __enter__(self):
        """Context manager entry"""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.stop()
