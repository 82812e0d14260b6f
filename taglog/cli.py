import json
import sys
from dataclasses import replace
from pathlib import Path

import click
from beartype.typing import Callable
from serde import to_dict

from taglog import __version__
from taglog.app_logger import AppLogger, attach_fields
from taglog.config import AppLoggerConfig, LoggingConfig, MessageOptions
from taglog.constants import LIB_TAG
from taglog.errors import ConfigError, TaglogError
from taglog.file_handler import LogFileManager
from taglog.formatter import DEFAULT_LEVEL_COLORS, EntryFormatter
from taglog.structured_logger import LogLevel, StructuredLogger
CONTEXT_SETTINGS = dict(auto_envvar_prefix="TAGLOG_CLI")

LEVEL_NAMES = [level.name.lower() for level in LogLevel]


class Environment:
    def __init__(self):
        self.config_path = None
        self.log_dir = None
        self._config = None

    @staticmethod
    def log(msg: str, new_line=True):
        click.echo(msg, file=sys.stdout, nl=new_line)

    @staticmethod
    def elog(msg: str, new_line=True):
        """Logs a message to stderr."""
        click.echo(msg, file=sys.stderr, nl=new_line)

    @property
    def config(self) -> AppLoggerConfig:
        """Effective configuration: file and environment, then command line options"""
        if self._config is None:
            try:
                config = LoggingConfig.load(self.config_path)
            except ConfigError as e:
                self.elog(str(e))
                exit(1)
            if self.log_dir:
                config = replace(config, log_dir=self.log_dir)
            self._config = config
        return self._config


def console_emitter(config: AppLoggerConfig) -> Callable[..., None]:
    """Reports library events on stdout, as an AppLogger would without its file sink"""
    try:
        level = LogLevel.parse(config.log_level)
    except ValueError:
        level = LogLevel.TRACE
    console = StructuredLogger(
        "console",
        level=level,
        formatter=EntryFormatter(log_to_file=False, level_colors=DEFAULT_LEVEL_COLORS, render_mode=config.render_mode),
    )
    options = config.message_options or MessageOptions()

    def emit(level: LogLevel, message: str, *content):
        if LIB_TAG not in config.disabled_tags:
            console.log(level, message, attach_fields(options, LIB_TAG, None, content, {}))

    return emit


pass_environment = click.make_pass_decorator(Environment, ensure=True)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, prog_name="taglog")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    metavar="",
    help="Path to a YAML file with a 'logger' section.",
)
@click.option("--log-dir", type=click.Path(file_okay=False), metavar="", help="Directory holding the log files.")
@pass_environment
def cli(environment: Environment, config, log_dir):
    """Tagged console and file logging"""
    environment.config_path = config
    environment.log_dir = log_dir


@cli.command()
@click.argument("level", type=click.Choice(LEVEL_NAMES, case_sensitive=False))
@click.argument("tag")
@click.argument("message")
@click.argument("content", nargs=-1)
@click.option("-s", "--sub-tag", "sub_tags", multiple=True, metavar="", help="Subtag, may be repeated.")
@click.option("--json", "use_json", is_flag=True, help="Write the console line as JSON.")
@pass_environment
def emit(environment: Environment, level, tag, message, content, sub_tags, use_json):
    """Write one entry to the console and the log file"""
    config = environment.config
    if use_json:
        options = config.message_options or MessageOptions()
        config = replace(config, message_options=replace(options, use_json_output=True))
    try:
        with AppLogger(config, start_scheduler=False) as app_logger:
            app_logger.log(LogLevel.parse(level), tag, message, *content, sub_tags=list(sub_tags))
    except TaglogError as e:
        environment.elog(str(e))
        exit(1)


@cli.command()
@click.option("--days", type=click.IntRange(min=1), metavar="", help="Override logFileRotateDays.")
@pass_environment
def sweep(environment: Environment, days):
    """Delete log files older than the retention window"""
    config = environment.config
    manager = LogFileManager(
        config.log_dir,
        sink=StructuredLogger("file"),
        emit=console_emitter(config),
        rotate_days=days or config.log_file_rotate_days,
    )
    removed = manager.sweep()
    for path in removed:
        environment.log(str(path))
    environment.log(f"Removed {len(removed)} log file(s)")


@cli.command("show-config")
@pass_environment
def show_config(environment: Environment):
    """Print the effective configuration as JSON"""
    environment.log(json.dumps(to_dict(environment.config), indent=2))


@cli.command()
@pass_environment
def validate(environment: Environment):
    """Check the configuration"""
    is_valid, error = LoggingConfig.validate(environment.config)
    if not is_valid:
        environment.elog(f"Invalid configuration: {error}")
        exit(1)
    environment.log("Configuration is valid")
