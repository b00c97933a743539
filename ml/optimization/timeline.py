"""
Time-of-Day Helpers

All scheduling happens on a single local day measured in minutes since
midnight (0-1440). Windows written as ``HH:MM`` may wrap midnight
(``end <= start``); they are normalised here into non-wrapping
``[start, end)`` minute intervals so every lookup downstream is plain
interval containment.
"""

import re
from typing import List, Tuple

from ml.optimization.exceptions import MalformedInput

MINUTES_PER_DAY = 24 * 60

# Window times are wall-clock times in this zone unless a household says otherwise
DEFAULT_TIMEZONE = "Asia/Colombo"

_HHMM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(value: str, field: str = "time", allow_end_of_day: bool = False) -> int:
    """Parse an ``HH:MM`` string into minutes since midnight.

    Args:
        value: Time string such as "05:30"
        field: Field name reported if the value is malformed
        allow_end_of_day: Accept "24:00" as 1440

    Returns:
        Minutes since midnight

    Raises:
        MalformedInput: If the string is missing or not a valid time
    """
    if not isinstance(value, str):
        raise MalformedInput(field, f"Field '{field}' must be an HH:MM string, got {value!r}")

    match = _HHMM_PATTERN.match(value.strip())
    if not match:
        raise MalformedInput(field, f"Field '{field}' must be HH:MM, got '{value}'")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if allow_end_of_day and hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise MalformedInput(field, f"Field '{field}' is not a valid time of day: '{value}'")
    return hours * 60 + minutes


def format_hhmm(minute: int) -> str:
    """Format minutes since midnight as ``HH:MM`` (1440 renders as 24:00)."""
    if minute == MINUTES_PER_DAY:
        return "24:00"
    return f"{(minute // 60) % 24:02d}:{minute % 60:02d}"


def tag_hhmm(minute: int) -> str:
    """Format minutes as ``HH_MM`` for reason tags."""
    return format_hhmm(minute).replace(":", "_")


def split_wrapping(start: int, end: int) -> List[Tuple[int, int]]:
    """Split a possibly midnight-wrapping window into ``[start, end)`` intervals.

    ``end <= start`` means the window runs across 24:00; ``start == end``
    therefore covers the whole day.
    """
    if end > start:
        return [(start, end)]
    intervals = [(start, MINUTES_PER_DAY)]
    if end > 0:
        intervals.append((0, end))
    return intervals


def overlap_minutes(a: Tuple[int, int], b: Tuple[int, int]) -> int:
    """Length of the overlap between two ``[start, end)`` intervals."""
    return max(0, min(a[1], b[1]) - max(a[0], b[0]))
