"""Data processor module for the activity report."""

from .ingestion import (
    ActivityRecord,
    FeedData,
    MappingRecord,
    fetch_text,
    ingest,
    ingest_activity,
    ingest_mapping,
    load_feeds,
    normalize_activity,
    normalize_code,
    normalize_mapping,
    parse_rows,
    read_header,
    split_line,
    SOURCE_TYPES,
)
from .hierarchy import (
    HierarchyResolver,
    Placement,
)
from .aggregate import (
    BranchReport,
    EmployeeActivity,
    HierarchyReport,
    aggregate_by_branch,
    aggregate_roster,
    classify,
    month_index,
)
from .export import (
    EmptyReportError,
    export_csv,
    export_frame,
    write_export,
)
from .session import ReportSession
