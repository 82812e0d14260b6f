class TaglogError(Exception):
    """Base class for errors raised by taglog"""


class ConfigError(TaglogError):
    """Configuration file could not be read or parsed"""


class LogFileError(TaglogError):
    """Log directory or log file could not be created or opened"""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Unable to open log file {self.path}: {reason}")
