"""
Layout helpers - column padding and timestamp rendering for text output

Date formats use moment-style tokens (YYYY, MM, DD, HH, mm, ss, SSS) instead
of strftime directives, so a rendered timestamp is exactly as long as its
format string. The text formatter relies on that to size the time column.
"""

import re
from datetime import datetime

_DATE_TOKENS = re.compile(r"YYYY|YY|MM|DD|HH|mm|ss|SSS")

_TOKEN_RENDERERS = {
    "YYYY": lambda moment: f"{moment.year:04d}",
    "YY": lambda moment: f"{moment.year % 100:02d}",
    "MM": lambda moment: f"{moment.month:02d}",
    "DD": lambda moment: f"{moment.day:02d}",
    "HH": lambda moment: f"{moment.hour:02d}",
    "mm": lambda moment: f"{moment.minute:02d}",
    "ss": lambda moment: f"{moment.second:02d}",
    "SSS": lambda moment: f"{moment.microsecond // 1000:03d}",
}


def pad(text: str, target_width: int, fill_char: str = " ", disable_spacing: bool = False) -> str:
    """
    Fill text up to target_width for column alignment.

    Text that is already as long as the column is returned as is, it is
    never truncated.

    Args:
        text: Field value
        target_width: Minimum width of the column
        fill_char: Filler appended to the text (empty means a space)
        disable_spacing: Return the text untouched

    Returns:
        Padded text

    Example:
        pad("[INFO]", 10)  # "[INFO]    "
    """
    if disable_spacing or len(text) >= target_width:
        return text
    if not fill_char:
        fill_char = " "
    return text + fill_char * (target_width - len(text))


def format_timestamp(moment: datetime, date_format: str) -> str:
    """Render moment using the token based date format"""
    return _DATE_TOKENS.sub(lambda match: _TOKEN_RENDERERS[match.group(0)](moment), date_format)
