"""
Configuration System - logger options and their loading for taglog

AppLoggerConfig and MessageOptions are immutable snapshots. They serialize
to camelCase keys (logFileRotateDays, messageOptions, ...), which is also the
layout of the configuration file and of the audit entry written on every
reconfiguration.

Example configuration file (taglog.yml):
    logger:
      logLevel: info
      logDir: ./logs/
      logFileRotateDays: 14
      disabledTags: [HEALTHCHECK]
      renderMode: fixed
      messageOptions:
        useJsonOutput: false
        dateFormat: YYYY-MM-DD HH:mm:ss
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path

import yaml
from beartype.typing import Any, Dict, List, Optional, Tuple
from humanfriendly import InvalidTimespan, parse_timespan
from serde import SerdeError, deserialize, field, from_dict, serialize, to_dict

from taglog.constants import (
    DEFAULT_CONTENT_DELIMITER,
    DEFAULT_DATE_FORMAT,
    DEFAULT_LOG_DIR,
    DEFAULT_MESSAGE_SIZE,
    DEFAULT_RETENTION_SWEEP_INTERVAL,
    DEFAULT_ROTATE_DAYS,
    DEFAULT_ROTATION_CHECK_INTERVAL,
    DEFAULT_TAG_SIZE,
    DEFAULT_TEXT_FILLER,
    FAULT_MAPPING,
    RENDER_MODES,
)
from taglog.errors import ConfigError

VALID_LEVELS = ["trace", "debug", "info", "warn", "error", "panic", "fatal"]


def parse_interval(name: str, value: str) -> float:
    """
    Parse a timer interval such as "30m" or "2 hours".

    Args:
        name: Option name used in the error message
        value: Timespan accepted by humanfriendly

    Returns:
        Interval in seconds

    Raises:
        ConfigError: value is not a timespan or is not positive
    """
    try:
        seconds = parse_timespan(value)
    except InvalidTimespan as e:
        raise ConfigError(f"Invalid {name} '{value}'") from e
    if seconds <= 0:
        raise ConfigError(f"{name} must be positive")
    return seconds


@serialize(rename_all="camelcase")
@deserialize(rename_all="camelcase")
@dataclass(frozen=True)
class MessageOptions:
    """Layout of a single log line"""

    disable_spacing: bool = False
    content_delimiter: str = DEFAULT_CONTENT_DELIMITER
    text_filler: str = DEFAULT_TEXT_FILLER
    message_preallocated_size: int = DEFAULT_MESSAGE_SIZE
    tag_preallocated_size: int = DEFAULT_TAG_SIZE
    date_format: str = DEFAULT_DATE_FORMAT
    use_json_output: bool = False


@serialize(rename_all="camelcase")
@deserialize(rename_all="camelcase")
@dataclass(frozen=True)
class AppLoggerConfig:
    """Options owned by the application logger"""

    log_file_rotate_days: int = DEFAULT_ROTATE_DAYS
    file_log_disabled: bool = False
    disabled_tags: List[str] = field(default_factory=list)
    log_level: str = "trace"
    message_options: Optional[MessageOptions] = field(default_factory=MessageOptions)
    log_dir: str = DEFAULT_LOG_DIR
    render_mode: str = "fixed"
    file_always_json: bool = True
    rotation_check_interval: str = DEFAULT_ROTATION_CHECK_INTERVAL
    retention_sweep_interval: str = DEFAULT_RETENTION_SWEEP_INTERVAL


class LoggingConfig:
    """
    Loads AppLoggerConfig from file and environment variables.

    Precedence: Environment > File > Default
    """

    ENV_PREFIX = "TAGLOG_"

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> AppLoggerConfig:
        """
        Load configuration from multiple sources.

        Args:
            config_path: Path to a YAML configuration file

        Returns:
            AppLoggerConfig snapshot

        Raises:
            ConfigError: file cannot be parsed or holds values of the wrong type

        Example:
            config = LoggingConfig.load("taglog.yml")
        """
        config = to_dict(AppLoggerConfig())

        # 1. Load from file
        if config_path:
            file_config = cls._load_from_file(config_path)
            section = file_config.get("logger") if isinstance(file_config, dict) else None
            if section:
                config = cls._merge(config, section)

        # 2. Override with environment variables
        config = cls._apply_env_overrides(config)

        # 3. Substitute environment variables in values
        config = cls._substitute_env_vars(config)

        try:
            return from_dict(AppLoggerConfig, config)
        except SerdeError as e:
            raise ConfigError(f"Invalid logger configuration: {e}") from e

    @classmethod
    def _load_from_file(cls, config_path: str) -> Any:
        path = Path(config_path)
        try:
            with open(path, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(FAULT_MAPPING["yaml_file_parse_issue"].format(file_path=path)) from e
        except OSError as e:
            raise ConfigError(FAULT_MAPPING["file_open_issue"].format(file_path=path)) from e

    @classmethod
    def _merge(cls, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(base)
        for key, value in update.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = cls._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides.

        Environment variables:
            TAGLOG_LOG_LEVEL: Log level (trace, debug, info, warn, error, panic, fatal)
            TAGLOG_LOG_DIR: Log directory
            TAGLOG_RENDER_MODE: fixed or fields
            TAGLOG_DISABLED_TAGS: Comma separated list of suppressed tags
            TAGLOG_ROTATE_DAYS: Days a log file is kept
            TAGLOG_FILE_LOG_DISABLED: Disable the file sink (true, false, yes, no, 1, 0)
            TAGLOG_USE_JSON_OUTPUT: JSON console output (true, false, yes, no, 1, 0)
        """
        config = dict(config)
        env = os.environ

        simple_mappings = {
            "TAGLOG_LOG_LEVEL": "logLevel",
            "TAGLOG_LOG_DIR": "logDir",
            "TAGLOG_RENDER_MODE": "renderMode",
        }
        for env_var, config_key in simple_mappings.items():
            if env_var in env:
                config[config_key] = env[env_var]

        if "TAGLOG_DISABLED_TAGS" in env:
            config["disabledTags"] = [tag.strip() for tag in env["TAGLOG_DISABLED_TAGS"].split(",") if tag.strip()]

        if "TAGLOG_ROTATE_DAYS" in env:
            try:
                config["logFileRotateDays"] = int(env["TAGLOG_ROTATE_DAYS"])
            except ValueError:
                pass

        if "TAGLOG_FILE_LOG_DISABLED" in env:
            config["fileLogDisabled"] = cls._parse_bool(env["TAGLOG_FILE_LOG_DISABLED"])

        if "TAGLOG_USE_JSON_OUTPUT" in env:
            options = dict(config.get("messageOptions") or to_dict(MessageOptions()))
            options["useJsonOutput"] = cls._parse_bool(env["TAGLOG_USE_JSON_OUTPUT"])
            config["messageOptions"] = options

        return config

    @staticmethod
    def _parse_bool(value: str) -> bool:
        return value.strip().lower() in ("true", "yes", "1", "on")

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} syntax, unknown variables are left as is.

        Example:
            logDir: /var/log/${ENVIRONMENT}/
        """
        if isinstance(config, str):

            def replace_env(match):
                return os.environ.get(match.group(1), match.group(0))

            return re.sub(r"\$\{([^}]+)\}", replace_env, config)

        elif isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}

        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]

        else:
            return config

    @classmethod
    def validate(cls, config: AppLoggerConfig) -> Tuple[bool, str]:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, error_message)

        Example:
            is_valid, error = LoggingConfig.validate(config)
            if not is_valid:
                print(f"Invalid configuration: {error}")
        """
        level = str(config.log_level).lower()
        if level not in VALID_LEVELS:
            return False, f"Invalid log level '{config.log_level}'. Must be one of: {', '.join(VALID_LEVELS)}"

        if config.render_mode not in RENDER_MODES:
            return False, f"Invalid render mode '{config.render_mode}'. Must be one of: {', '.join(RENDER_MODES)}"

        if config.log_file_rotate_days < 0:
            return False, "logFileRotateDays must not be negative"

        options = config.message_options
        if options is not None and (options.message_preallocated_size < 0 or options.tag_preallocated_size < 0):
            return False, "Preallocated sizes must not be negative"

        for name, value in (
            ("rotationCheckInterval", config.rotation_check_interval),
            ("retentionSweepInterval", config.retention_sweep_interval),
        ):
            try:
                parse_interval(name, value)
            except ConfigError as e:
                return False, str(e)

        return True, ""
