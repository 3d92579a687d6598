"""Default conversion of backtick strings into typed values."""

import datetime
import logging
import os
import re
from typing import Any

from .exceptions import CfgTreeError
from .tokens import NULL

logger = logging.getLogger(__name__)

ISO_DATETIME_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})"
    r"(([ T])(((\d{2}):(\d{2}):(\d{2}))(\.\d{1,6})?"
    r"(([+-])(\d{2}):(\d{2})(:(\d{2})(\.\d{1,6})?)?)?))?$"
)
ENV_VALUE_PATTERN = re.compile(r"^\$(\w+)(\|(.*))?$")
COLON_OBJECT_PATTERN = re.compile(r"^([A-Za-z_]\w*(\.[A-Za-z_]\w*)*)(:([A-Za-z_]\w*))?$")
INTERPOLATION_PATTERN = re.compile(r"\$\{([^}]+)\}")


def string_for(value: Any) -> str:
    """Render a value the way it appears inside an interpolated string."""
    if isinstance(value, list):
        return f"[{', '.join(string_for(v) for v in value)}]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {string_for(v)}" for k, v in value.items()) + "}"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value) if value is not NULL else "null"


def _microseconds(fraction: str) -> int:
    # '.5' -> 500000
    return int(fraction[1:].ljust(6, "0")) if fraction else 0


def _convert_datetime(m: re.Match) -> Any:
    year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if not m.group(5):
        return datetime.date(year, month, day)

    hour, minute, second = int(m.group(8)), int(m.group(9)), int(m.group(10))
    microsecond = _microseconds(m.group(11))
    tzinfo = None
    if m.group(13):
        sign = -1 if m.group(13) == "-" else 1
        offset = datetime.timedelta(
            hours=int(m.group(14)),
            minutes=int(m.group(15)),
            seconds=int(m.group(17) or 0),
            microseconds=_microseconds(m.group(18)),
        )
        tzinfo = datetime.timezone(sign * offset)
    return datetime.datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tzinfo)


def _interpolate(s: str, config: Any) -> Any:
    parts = []  # List[str] (literal text and rendered values)
    pos = 0
    for m in INTERPOLATION_PATTERN.finditer(s):
        parts.append(s[pos : m.start()])
        try:
            parts.append(string_for(config.get(m.group(1))))
        except CfgTreeError as e:
            logger.debug("Unable to interpolate %r into %r: %s", m.group(1), s, e)
            return s
        pos = m.end()
    parts.append(s[pos:])
    return "".join(parts)


def default_string_converter(s: str, config: Any) -> Any:
    """Convert a backtick string to a value.

    Tries, in order: an ISO date or date-time, an environment variable
    reference ``$NAME`` or ``$NAME|default``, a named object
    ``package.module:member`` and finally ``${path}`` interpolation.

    Args:
        s: Text between the backticks  # (escapes already decoded)
        config: Document the string belongs to

    Returns:
        Converted value, or s itself if no rule applies
    """
    m = ISO_DATETIME_PATTERN.match(s)
    if m:
        try:
            return _convert_datetime(m)
        except ValueError as e:
            logger.debug("Not a valid date/time %r: %s", s, e)
            return s

    m = ENV_VALUE_PATTERN.match(s)
    if m:
        default = m.group(3) if m.group(2) else NULL
        return os.environ.get(m.group(1), default)

    m = COLON_OBJECT_PATTERN.match(s)
    if m:
        try:
            return config.object_resolver(m.group(1), m.group(4))
        except (ImportError, AttributeError) as e:
            logger.debug("Unable to resolve object %r: %s", s, e)
            return s

    if INTERPOLATION_PATTERN.search(s):
        return _interpolate(s, config)
    return s
