"""
Entry info extraction - reads formatting data attached to a log entry

The dispatcher attaches the tag, subtags, content and the current message
options to every entry as plain fields. The formatter pulls those reserved
keys back out with extract_entry_info(); whatever else the caller attached
is returned untouched as residual fields.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from beartype.typing import Any, Dict, Mapping, Sequence, Tuple, Union

from taglog.constants import RESERVED_KEYS

LogValue = Union[str, bool, int, float, Sequence[str]]


def stringify(value: LogValue) -> str:
    """
    Convert an attached log value to text.

    Args:
        value: str, bool, int, float or a sequence of str

    Returns:
        Text form of the value

    Raises:
        TypeError: value is not a supported log value
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return ",".join(value)
    raise TypeError(f"Unsupported log value type: {type(value).__name__}")


def check_fields(fields: Mapping[str, Any]):
    """Reject attached fields outside the supported value types"""
    for key, value in fields.items():
        try:
            stringify(value)
        except TypeError:
            raise TypeError(f"Unsupported value for log field '{key}': {type(value).__name__}") from None


def _format_float(value: float) -> str:
    # shortest round-trip digits, positional notation
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _to_int(value: LogValue) -> int:
    try:
        return int(stringify(value), 10)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class EntryInfo:
    """Formatting data extracted from the fields of a single entry"""

    tag: str = ""
    sub_tags: str = ""
    content: str = ""
    content_delimiter: str = ""
    text_filler: str = ""
    message_preallocated_size: int = 0
    tag_preallocated_size: int = 0
    date_format: str = ""
    use_json_output: bool = False
    disable_spacing: bool = False


def extract_entry_info(data: Mapping[str, LogValue]) -> Tuple[EntryInfo, Dict[str, LogValue]]:
    """
    Split entry fields into formatting info and residual fields.

    The input mapping is left untouched.

    Args:
        data: Fields attached to the entry

    Returns:
        Tuple of (EntryInfo, residual fields)

    Example:
        info, extra = extract_entry_info({"tag": "HTTP", "subTags": ["req"], "status": 200})
        # info.tag == "HTTP", info.sub_tags == "req", extra == {"status": 200}
    """
    residual = {key: value for key, value in data.items() if key not in RESERVED_KEYS}

    def text(key: str) -> str:
        return stringify(data[key]) if key in data else ""

    info = EntryInfo(
        tag=text("tag"),
        sub_tags=text("subTags"),
        content=text("content"),
        content_delimiter=text("contentDelimiter"),
        text_filler=text("textFiller"),
        message_preallocated_size=_to_int(data["messagePreallocatedSize"]) if "messagePreallocatedSize" in data else 0,
        tag_preallocated_size=_to_int(data["tagPreallocatedSize"]) if "tagPreallocatedSize" in data else 0,
        date_format=text("dateFormat"),
        use_json_output=data.get("useJsonOutput") is True,
        disable_spacing=data.get("disableSpacing") is True,
    )
    return info, residual
