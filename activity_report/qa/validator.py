"""QA validator — data-quality checks over the raw activity and mapping feeds.

Aggregation drops bad rows silently so one broken line never spoils a
report.  This module is where those rows get reported instead: ragged
rows, dates that will never match a month, rows without an employee code,
activity types that are neither a visit nor a call, duplicated branch
codes in the mapping table and branch codes the mapping table lacks.

Usage::

    from activity_report.qa.validator import FeedValidator

    validator = FeedValidator(config)
    result = validator.validate(activity_text, mapping_text)
    print(result.report())
"""

from collections import Counter
from dataclasses import dataclass, field

from ..processor.aggregate import classify, month_index
from ..processor.ingestion import (
    normalize_activity,
    normalize_mapping,
    parse_rows,
    read_header,
)
from ..schema.models import ReportConfig


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Issue:
    """A single QA issue found during validation."""
    severity: str       # "error" or "warning"
    feed: str           # "activity" or "mapping"
    line: int           # 1-based line in the feed, header = 1; 0 for feed-level
    category: str       # e.g. "row_width", "date", "missing_code"
    message: str

    def __str__(self) -> str:
        loc = self.feed
        if self.line:
            loc += f" line {self.line}"
        return f"[{self.severity.upper()}] {loc}: {self.message}"


@dataclass
class QAResult:
    """Aggregated result of feed validation."""
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def by_category(self) -> dict[str, int]:
        return dict(Counter(i.category for i in self.issues))

    def summary(self) -> str:
        """One-line summary string."""
        status = "PASS" if self.passed else "FAIL"
        return (
            f"QA {status}: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)"
        )

    def report(self) -> str:
        """Multi-line report of all issues."""
        lines = [self.summary()]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# FeedValidator
# ---------------------------------------------------------------------------

class FeedValidator:
    """Validates raw feed text against the configured layouts.

    Parameters
    ----------
    config : ReportConfig
        Supplies the activity and mapping layouts.
    """

    def __init__(self, config: ReportConfig) -> None:
        self.config = config

    def validate(self, activity_text: str, mapping_text: str = "") -> QAResult:
        """Run all checks on both feeds."""
        result = QAResult()
        mapped_codes = self._check_mapping(mapping_text, result)
        self._check_activity(activity_text, mapped_codes, result)
        return result

    # ------------------------------------------------------------------
    # Activity feed
    # ------------------------------------------------------------------

    def _check_activity(self, text: str, mapped_codes: set[str] | None,
                        result: QAResult) -> None:
        layout = self.config.activity_layout
        if layout is None:
            return
        rows = parse_rows(text, delimiter=layout.delimiter)
        if not rows:
            result.issues.append(Issue(
                severity="error", feed="activity", line=0, category="empty",
                message="Activity feed has no data rows",
            ))
            return

        header_width = len(read_header(text, delimiter=layout.delimiter))
        self._check_widths("activity", rows, header_width, layout.width, result)

        records = normalize_activity(rows, layout)
        unknown_codes: Counter = Counter()
        for line, record in enumerate(records, start=2):
            if not record.has_code:
                result.issues.append(Issue(
                    severity="warning", feed="activity", line=line,
                    category="missing_code",
                    message="No employee code; row is never counted",
                ))
            if record.date and month_index(record.date) is None:
                result.issues.append(Issue(
                    severity="warning", feed="activity", line=line,
                    category="date",
                    message=f"Unparseable date {record.date!r} (expected dd/mm/yyyy)",
                ))
            elif not record.date:
                result.issues.append(Issue(
                    severity="warning", feed="activity", line=line,
                    category="date", message="Missing date",
                ))
            if classify(record.activity_type) == (False, False):
                result.issues.append(Issue(
                    severity="warning", feed="activity", line=line,
                    category="activity_type",
                    message=f"Activity type {record.activity_type!r} is neither a visit nor a call",
                ))
            if (mapped_codes is not None and layout.has_field("branch_code")
                    and record.branch_code and record.branch_code not in mapped_codes):
                unknown_codes[record.branch_code] += 1

        for code, count in sorted(unknown_codes.items()):
            result.issues.append(Issue(
                severity="warning", feed="activity", line=0,
                category="unmapped_branch",
                message=f"Branch code {code!r} has no mapping row ({count} row(s))",
            ))

    # ------------------------------------------------------------------
    # Mapping feed
    # ------------------------------------------------------------------

    def _check_mapping(self, text: str, result: QAResult) -> set[str] | None:
        """Check the mapping feed; return its branch codes, or None if absent."""
        layout = self.config.mapping_layout
        if layout is None:
            return None
        rows = parse_rows(text, delimiter=layout.delimiter)
        if not rows:
            if self.config.mapping_source or self.config.special_cases:
                result.issues.append(Issue(
                    severity="warning", feed="mapping", line=0, category="empty",
                    message="Mapping feed has no data rows; rosters are unavailable",
                ))
            return None

        header_width = len(read_header(text, delimiter=layout.delimiter))
        self._check_widths("mapping", rows, header_width, layout.width, result)

        records = normalize_mapping(rows, layout)
        first_seen: dict[str, int] = {}
        for line, record in enumerate(records, start=2):
            if not record.branch_code:
                if not record.special_case_code:
                    result.issues.append(Issue(
                        severity="warning", feed="mapping", line=line,
                        category="missing_code", message="No branch code",
                    ))
                continue
            if record.branch_code in first_seen:
                result.issues.append(Issue(
                    severity="warning", feed="mapping", line=line,
                    category="duplicate_branch",
                    message=(
                        f"Branch code {record.branch_code!r} already mapped on "
                        f"line {first_seen[record.branch_code]}; first row wins"
                    ),
                ))
            else:
                first_seen[record.branch_code] = line
        return set(first_seen)

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    @staticmethod
    def _check_widths(feed: str, rows: list[list[str]], header_width: int,
                      layout_width: int, result: QAResult) -> None:
        if header_width and header_width < layout_width:
            result.issues.append(Issue(
                severity="error", feed=feed, line=1, category="header_width",
                message=(
                    f"Header has {header_width} column(s) but the layout "
                    f"reads column {layout_width}"
                ),
            ))
        for line, row in enumerate(rows, start=2):
            if header_width and len(row) != header_width:
                result.issues.append(Issue(
                    severity="warning", feed=feed, line=line, category="row_width",
                    message=f"Row has {len(row)} field(s), header has {header_width}",
                ))


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------

def validate_feeds(config: ReportConfig, activity_text: str,
                   mapping_text: str = "") -> QAResult:
    """One-shot convenience: validate both feeds against a config."""
    return FeedValidator(config).validate(activity_text, mapping_text)
