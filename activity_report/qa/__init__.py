"""QA validation package for the activity report.

Validates the raw activity and mapping feeds against their configured
layouts — row widths, dates, employee codes, activity types, duplicate and
unmapped branch codes.
"""

from .validator import (
    FeedValidator,
    Issue,
    QAResult,
    validate_feeds,
)

__all__ = [
    "FeedValidator",
    "Issue",
    "QAResult",
    "validate_feeds",
]
