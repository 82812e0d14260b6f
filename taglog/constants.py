LIB_TAG = "TAGLOG"

LOG_FILE_PREFIX = "logs_"
LOG_FILE_SUFFIX = ".log"
LOG_FILE_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_LOG_DIR = "./logs/"

DEFAULT_ROTATE_DAYS = 30
DEFAULT_ROTATION_CHECK_INTERVAL = "30m"
DEFAULT_RETENTION_SWEEP_INTERVAL = "2h"

DEFAULT_DATE_FORMAT = "YYYY-MM-DD HH:mm:ss.SSS"
DEFAULT_CONTENT_DELIMITER = " "
DEFAULT_TEXT_FILLER = " "
DEFAULT_MESSAGE_SIZE = 50
DEFAULT_TAG_SIZE = 25
DEFAULT_LEVEL_SIZE = 10

RENDER_MODES = ("fixed", "fields")

RESET_COLOR = "\033[0m"

# Keys the dispatcher attaches to every entry and the formatter consumes
RESERVED_KEYS = (
    "tag",
    "subTags",
    "content",
    "contentDelimiter",
    "textFiller",
    "messagePreallocatedSize",
    "tagPreallocatedSize",
    "dateFormat",
    "useJsonOutput",
    "disableSpacing",
)

FAULT_MAPPING = dict(
    unknown_log_level="Unknown log level on log config update, trace level set",
    new_config_set="New logger config set",
    new_log_file_set="New log file set",
    log_file_open_issue="Error opening new log file",
    log_file_removed="Log file removed",
    log_file_remove_issue="Error removing log file",
    log_file_bad_name="Skipping log file with unparsable date",
    log_dir_walk_issue="Error cleaning older logs",
    yaml_file_parse_issue="Error occurred while parsing yaml file ({file_path}). "
    "Make sure that structure of a file is correct.",
    file_open_issue="Error occurred while opening the file ({file_path}). "
    "Make sure that the file exists or the path is correct.",
)
