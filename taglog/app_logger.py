"""
Application Logger - fans tagged log calls out to the console and file sinks

Usage:
    from taglog.app_logger import AppLogger
    from taglog.config import AppLoggerConfig

    app_logger = AppLogger(AppLoggerConfig(log_level="info", disabled_tags=["HEALTHCHECK"]))
    app_logger.info("HTTP", "Request started", "GET /x", sub_tags=["req"])

    http = app_logger.get_logger("HTTP")
    http.warn("Slow response", "1.8s", sub_tags=["req"], status=200)

    app_logger.close()
"""

import sys
from dataclasses import replace
from datetime import datetime
from threading import RLock

from beartype.typing import Any, Callable, Dict, Iterable, Optional, TextIO, Union
from humanfriendly import format_timespan
from serde.json import to_json

from taglog.config import AppLoggerConfig, MessageOptions, parse_interval
from taglog.constants import FAULT_MAPPING, LIB_TAG
from taglog.entry import LogValue, check_fields, stringify
from taglog.file_handler import LogFileManager
from taglog.formatter import DEFAULT_LEVEL_COLORS, EntryFormatter
from taglog.structured_logger import LogLevel, StructuredLogger


def attach_fields(
    options: MessageOptions,
    tag: str,
    sub_tags: Optional[Iterable[str]],
    content: Iterable[LogValue],
    fields: Dict[str, LogValue],
) -> Dict[str, Any]:
    """
    Build the field mapping a sink receives for one log call.

    A single string passed as sub_tags is one subtag.
    """
    if isinstance(sub_tags, str):
        sub_tags = [sub_tags]
    data = dict(fields)
    data.update(
        {
            "tag": tag,
            "subTags": [stringify(sub_tag) for sub_tag in sub_tags or []],
            "content": [stringify(value) for value in content],
            "contentDelimiter": options.content_delimiter,
            "disableSpacing": options.disable_spacing,
            "textFiller": options.text_filler,
            "messagePreallocatedSize": options.message_preallocated_size,
            "tagPreallocatedSize": options.tag_preallocated_size,
            "dateFormat": options.date_format,
            "useJsonOutput": options.use_json_output,
        }
    )
    return data


class AppLogger:
    """
    Owns the logger configuration, the sinks and the log file manager.

    The configuration is an immutable snapshot. reconfigure() publishes a new
    one by swapping a single reference, so a log call running on another
    thread sees either the old or the new configuration, never a mix.
    """

    def __init__(
        self,
        config: Optional[AppLoggerConfig] = None,
        stream: Optional[TextIO] = None,
        clock: Optional[Callable[[], datetime]] = None,
        start_scheduler: bool = True,
    ):
        """
        Initialize application logger.

        Args:
            config: Logger configuration (default: AppLoggerConfig())
            stream: Console output stream (default: sys.stdout)
            clock: Returns the current time, used for entries and file names
            start_scheduler: Run rotation checks and retention sweeps in the background

        Raises:
            ConfigError: a timer interval is not a positive timespan
            LogFileError: the log file could not be created
        """
        config = config or AppLoggerConfig()
        self._clock = clock
        self._start_scheduler = start_scheduler
        self._lock = RLock()
        self._loggers: Dict[str, "TaggedLogger"] = {}
        # log directory and timer intervals are fixed for the logger lifetime
        self._config = AppLoggerConfig(
            file_log_disabled=True,
            log_dir=config.log_dir,
            rotation_check_interval=config.rotation_check_interval,
            retention_sweep_interval=config.retention_sweep_interval,
        )

        self.console = StructuredLogger(
            "console",
            level=LogLevel.TRACE,
            output_stream=stream or sys.stdout,
            formatter=self._build_formatter(self._config, log_to_file=False),
            clock=clock,
        )
        self.file_sink: Optional[StructuredLogger] = None
        self.file_manager: Optional[LogFileManager] = None

        self.reconfigure(config)

    @property
    def config(self) -> AppLoggerConfig:
        return self._config

    @staticmethod
    def _build_formatter(config: AppLoggerConfig, log_to_file: bool) -> EntryFormatter:
        return EntryFormatter(
            log_to_file=log_to_file,
            level_colors=None if log_to_file else DEFAULT_LEVEL_COLORS,
            render_mode=config.render_mode,
            file_always_json=config.file_always_json,
        )

    def _open_file_sink(self, config: AppLoggerConfig):
        # intervals are checked before the log file is created
        check_interval = parse_interval("rotationCheckInterval", config.rotation_check_interval)
        sweep_interval = parse_interval("retentionSweepInterval", config.retention_sweep_interval)

        file_sink = StructuredLogger(
            "file",
            level=LogLevel.TRACE,
            output_stream=sys.stderr,
            formatter=self._build_formatter(config, log_to_file=True),
            clock=self._clock,
        )
        manager = LogFileManager(
            config.log_dir,
            sink=file_sink,
            emit=self.lib_log,
            rotate_days=config.log_file_rotate_days,
            clock=self._clock,
        )
        manager.open()
        self.file_sink = file_sink
        self.file_manager = manager

        if self._start_scheduler:
            manager.start(check_interval, sweep_interval)
            self.lib_log(
                LogLevel.TRACE,
                "Log file scheduler started",
                f"rotation check every {format_timespan(check_interval)}",
                f"retention sweep every {format_timespan(sweep_interval)}",
            )

    def _close_file_sink(self):
        file_sink = self.file_sink
        manager = self.file_manager
        self.file_sink = None
        self.file_manager = None
        if file_sink is not None:
            file_sink.close()
        if manager is not None:
            manager.stop()

    def reconfigure(self, new_config: AppLoggerConfig):
        """
        Publish a new configuration.

        Disabled tags, log level, file logging and message options are
        replaced as a whole; a missing messageOptions block resets them to the
        defaults. logFileRotateDays only changes when the new value is positive
        and different from the current one. An unknown log level falls back
        to trace and is reported with a warning.

        Args:
            new_config: Configuration to apply

        Raises:
            ConfigError: file logging was enabled with an invalid timer interval
            LogFileError: file logging was enabled and the log file could not be created
        """
        unknown_level = None
        with self._lock:
            current = self._config
            try:
                level = LogLevel.parse(new_config.log_level)
            except ValueError:
                level = LogLevel.TRACE
                unknown_level = new_config.log_level

            rotate_days = current.log_file_rotate_days
            if new_config.log_file_rotate_days > 0 and new_config.log_file_rotate_days != rotate_days:
                rotate_days = new_config.log_file_rotate_days

            snapshot = replace(
                new_config,
                log_level=level.name.lower(),
                log_file_rotate_days=rotate_days,
                disabled_tags=list(new_config.disabled_tags or []),
                message_options=new_config.message_options or MessageOptions(),
                log_dir=current.log_dir,
                rotation_check_interval=current.rotation_check_interval,
                retention_sweep_interval=current.retention_sweep_interval,
            )

            if snapshot.file_log_disabled:
                self._close_file_sink()
            elif self.file_sink is None:
                self._open_file_sink(snapshot)

            self.console.formatter = self._build_formatter(snapshot, log_to_file=False)
            self.console.set_level(level)
            if self.file_sink is not None:
                self.file_sink.formatter = self._build_formatter(snapshot, log_to_file=True)
                self.file_sink.set_level(level)
                self.file_manager.rotate_days = rotate_days

            self._config = snapshot

        if unknown_level is not None:
            self.lib_log(LogLevel.WARN, FAULT_MAPPING["unknown_log_level"], str(unknown_level))
        self.lib_log(LogLevel.INFO, FAULT_MAPPING["new_config_set"], to_json(snapshot))

    def log(
        self,
        level: Union[LogLevel, str],
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        """
        Log an entry on the console and, unless disabled, in the log file.

        Entries whose tag is in disabledTags are dropped without touching
        any sink.

        Args:
            level: Entry level
            tag: Entry tag
            message: Log message
            *content: Content values, joined with ","
            sub_tags: Secondary labels shown after the tag, a single string is one label
            **fields: Extra fields, rendered in the "fields" render mode

        Raises:
            TypeError: a field value is not a supported log value

        Example:
            app_logger.log(LogLevel.INFO, "HTTP", "Request started", "GET /x", sub_tags=["req"])
        """
        config = self._config
        if tag in config.disabled_tags:
            return
        if isinstance(level, str):
            level = LogLevel.parse(level)

        check_fields(fields)
        data = attach_fields(config.message_options, tag, sub_tags, content, fields)

        self.console.log(level, message, data)
        file_sink = self.file_sink
        if file_sink is not None and not config.file_log_disabled:
            file_sink.log(level, message, data)

    def lib_log(self, level: LogLevel, message: str, *content: LogValue):
        """Log an entry about the logger itself"""
        self.log(level, LIB_TAG, message, *content)

    def trace(
        self,
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        self.log(LogLevel.TRACE, tag, message, *content, sub_tags=sub_tags, **fields)

    def debug(
        self,
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        self.log(LogLevel.DEBUG, tag, message, *content, sub_tags=sub_tags, **fields)

    def info(
        self,
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        """
        Log info message.

        Example:
            app_logger.info("DB", "Connected", "primary", sub_tags=["pool"], latency_ms=12)
        """
        self.log(LogLevel.INFO, tag, message, *content, sub_tags=sub_tags, **fields)

    def warn(
        self,
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        self.log(LogLevel.WARN, tag, message, *content, sub_tags=sub_tags, **fields)

    def error(
        self,
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        self.log(LogLevel.ERROR, tag, message, *content, sub_tags=sub_tags, **fields)

    def panic(
        self,
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        """Log panic message. Only logs, never raises."""
        self.log(LogLevel.PANIC, tag, message, *content, sub_tags=sub_tags, **fields)

    def fatal(
        self,
        tag: str,
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        """Log fatal message. Only logs, the process keeps running."""
        self.log(LogLevel.FATAL, tag, message, *content, sub_tags=sub_tags, **fields)

    def get_logger(self, tag: str) -> "TaggedLogger":
        """
        Get a logger bound to tag.

        Returns cached logger if already created for this tag.

        Example:
            http = app_logger.get_logger("HTTP")
            http.info("Request started", "GET /x", sub_tags=["req"])
        """
        with self._lock:
            if tag not in self._loggers:
                self._loggers[tag] = TaggedLogger(tag, self)
            return self._loggers[tag]

    def close(self):
        """
        Stop the log file scheduler and close the log file.

        Safe to call more than once. Console logging keeps working. A log
        call racing close() may still reach the file sink; its entry is then
        dropped without a stderr report.
        """
        with self._lock:
            self._close_file_sink()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()


class TaggedLogger:
    """
    Logger bound to one tag.

    Holds no state besides the tag; configuration, sinks and suppression all
    come from the AppLogger it was created by.
    """

    def __init__(self, tag: str, app_logger: AppLogger):
        self.tag = tag
        self.app_logger = app_logger

    def log(
        self,
        level: Union[LogLevel, str],
        message: str,
        *content: LogValue,
        sub_tags: Optional[Iterable[str]] = None,
        **fields: LogValue,
    ):
        self.app_logger.log(level, self.tag, message, *content, sub_tags=sub_tags, **fields)

    def trace(self, message: str, *content: LogValue, sub_tags: Optional[Iterable[str]] = None, **fields: LogValue):
        self.log(LogLevel.TRACE, message, *content, sub_tags=sub_tags, **fields)

    def debug(self, message: str, *content: LogValue, sub_tags: Optional[Iterable[str]] = None, **fields: LogValue):
        self.log(LogLevel.DEBUG, message, *content, sub_tags=sub_tags, **fields)

    def info(self, message: str, *content: LogValue, sub_tags: Optional[Iterable[str]] = None, **fields: LogValue):
        self.log(LogLevel.INFO, message, *content, sub_tags=sub_tags, **fields)

    def warn(self, message: str, *content: LogValue, sub_tags: Optional[Iterable[str]] = None, **fields: LogValue):
        self.log(LogLevel.WARN, message, *content, sub_tags=sub_tags, **fields)

    def error(self, message: str, *content: LogValue, sub_tags: Optional[Iterable[str]] = None, **fields: LogValue):
        self.log(LogLevel.ERROR, message, *content, sub_tags=sub_tags, **fields)

    def panic(self, message: str, *content: LogValue, sub_tags: Optional[Iterable[str]] = None, **fields: LogValue):
        self.log(LogLevel.PANIC, message, *content, sub_tags=sub_tags, **fields)

    def fatal(self, message: str, *content: LogValue, sub_tags: Optional[Iterable[str]] = None, **fields: LogValue):
        self.log(LogLevel.FATAL, message, *content, sub_tags=sub_tags, **fields)
