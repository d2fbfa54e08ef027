"""Design system utilities — value formatting for reports and exports.

- Counts: plain integers, no separators (CSV-safe)
- Achievement: round(actual / target * 100)%, halves rounded up
- Achieved flag: actual >= target
"""

import math

from .models import ColumnType


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 away from zero for positives.

    Python's built-in ``round`` uses banker's rounding (``round(2.5) == 2``);
    spreadsheet users expect 2.5 -> 3.
    """
    return int(math.floor(value + 0.5))


def achievement_pct(actual: int | float | None, target: int | float | None) -> int | None:
    """Whole-number percentage of target achieved, or None without a target."""
    if actual is None or target is None or target <= 0:
        return None
    return round_half_up(actual / target * 100)


def format_achievement(actual: int | float | None, target: int | float | None) -> str:
    """Format an achievement percentage as ``NN%``."""
    pct = achievement_pct(actual, target)
    if pct is None:
        return "N/A"
    return f"{pct}%"


def format_count(value: int | float | None) -> str:
    """Format an activity count."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "0"
    return str(int(value))


def is_achieved(actual: int | float | None, target: int | float | None) -> bool:
    """True when the actual count meets or beats the target."""
    if actual is None or target is None:
        return False
    return actual >= target


def format_value(value, column_type: ColumnType, target=None) -> str:
    """Format a value according to its export ColumnType."""
    if column_type is ColumnType.COUNT:
        return format_count(value)
    if column_type is ColumnType.ACHIEVEMENT:
        return format_achievement(value, target)
    return "" if value is None else str(value)


def achievement_marker(actual, target) -> str:
    """Short text marker used by the terminal summary."""
    return "✓" if is_achieved(actual, target) else "✗"
