"""
Entry Formatter - renders one log entry as a text line or a JSON record

Two outputs are supported:
- Fixed-width text with ANSI level colors (console)
- Compact JSON terminated by CRLF (file, or any sink with useJsonOutput)

The render mode decides what happens with caller fields that are not part
of the fixed layout: "fixed" drops them, "fields" renders them as key=value
pairs (text) or extra keys (JSON).
"""

import json
from dataclasses import dataclass
from beartype.typing import Dict, Optional

from taglog.constants import (
    DEFAULT_CONTENT_DELIMITER,
    DEFAULT_DATE_FORMAT,
    DEFAULT_LEVEL_SIZE,
    DEFAULT_MESSAGE_SIZE,
    DEFAULT_TAG_SIZE,
    RENDER_MODES,
    RESET_COLOR,
)
from taglog.entry import EntryInfo, LogValue, extract_entry_info, stringify
from taglog.layout import format_timestamp, pad
from taglog.structured_logger import LogEntry, LogLevel


@dataclass(frozen=True)
class LevelColors:
    """ANSI escape sequence per level"""

    log: str = "\033[37m"
    trace: str = "\033[36m"
    debug: str = "\033[37m"
    info: str = "\033[34m"
    warn: str = "\033[33m"
    error: str = "\033[31m"
    panic: str = "\033[35m"
    fatal: str = "\033[31m"

    def for_level(self, level: LogLevel) -> str:
        return getattr(self, level.name.lower(), self.log)


DEFAULT_LEVEL_COLORS = LevelColors()


class EntryFormatter:
    """
    Render log entries for one sink.

    Example:
        formatter = EntryFormatter(log_to_file=False, level_colors=DEFAULT_LEVEL_COLORS)
        line = formatter.render(entry)
    """

    def __init__(
        self,
        log_to_file: bool,
        level_colors: Optional[LevelColors] = None,
        render_mode: str = "fixed",
        file_always_json: bool = True,
    ):
        """
        Initialize entry formatter.

        Args:
            log_to_file: Rendering for the file sink (never colored)
            level_colors: Colors for console output, None disables colors
            render_mode: "fixed" or "fields"
            file_always_json: File output is always JSON, regardless of useJsonOutput
        """
        if render_mode not in RENDER_MODES:
            raise ValueError(f"Invalid render mode: {render_mode}. Must be one of: {', '.join(RENDER_MODES)}")
        self.log_to_file = log_to_file
        self.level_colors = level_colors
        self.render_mode = render_mode
        self.file_always_json = file_always_json

    def render(self, entry: LogEntry) -> str:
        """
        Render entry according to its attached formatting fields.

        Args:
            entry: Entry to render

        Returns:
            Rendered line, including the line terminator
        """
        info, residual = extract_entry_info(entry.data)
        date_format = info.date_format or DEFAULT_DATE_FORMAT
        timestamp = format_timestamp(entry.timestamp, date_format)
        extra = residual if self.render_mode == "fields" else {}

        if info.use_json_output or (self.log_to_file and self.file_always_json):
            return self._render_json(entry, info, timestamp, extra)
        return self._render_text(entry, info, timestamp, date_format, extra)

    def _level_color(self, level: LogLevel) -> str:
        if self.log_to_file or self.level_colors is None:
            return ""
        return self.level_colors.for_level(level)

    def _render_json(self, entry: LogEntry, info: EntryInfo, timestamp: str, extra: Dict[str, LogValue]) -> str:
        record = {
            "time": timestamp,
            "tag": info.tag,
            "level": entry.level.name,
            "message": entry.message,
        }
        if info.sub_tags:
            record["subTags"] = info.sub_tags
        if info.content:
            record["content"] = info.content
        for key, value in extra.items():
            record.setdefault(key, value)

        try:
            payload = json.dumps(record, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError):
            payload = json.dumps(
                {"time": timestamp, "level": entry.level.name, "message": str(entry.message)},
                separators=(",", ":"),
                ensure_ascii=False,
            )
        return payload + "\r\n"

    def _render_text(
        self, entry: LogEntry, info: EntryInfo, timestamp: str, date_format: str, extra: Dict[str, LogValue]
    ) -> str:
        message_size = info.message_preallocated_size if info.message_preallocated_size > 0 else DEFAULT_MESSAGE_SIZE
        tag_size = info.tag_preallocated_size if info.tag_preallocated_size > 0 else DEFAULT_TAG_SIZE
        delimiter = info.content_delimiter or DEFAULT_CONTENT_DELIMITER
        filler = info.text_filler
        spacing_off = info.disable_spacing
        color = self._level_color(entry.level)
        reset = RESET_COLOR if color else ""
        end_field = filler + delimiter

        line = pad(timestamp, len(date_format) + 1, filler, spacing_off) + end_field
        line += color
        line += pad(f"[{entry.level.name}]", DEFAULT_LEVEL_SIZE, filler, spacing_off) + end_field
        line += pad(info.tag + delimiter + info.sub_tags + reset, tag_size, filler, spacing_off) + end_field
        line += pad(entry.message, message_size, filler, spacing_off) + end_field
        line += info.content
        if extra:
            line += delimiter + delimiter.join(f"{key}={stringify(value)}" for key, value in extra.items())
        return line + " \n"
