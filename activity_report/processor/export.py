"""CSV export of aggregated activity reports.

A pure transform: the caller passes the report it just aggregated and the
targets in force, and gets CSV text back.  Column sets are versioned
:class:`ExportSchema` definitions (see ``schema.defaults``).

Text fields are quoted, counts are not, and the header row is written
bare:

    Branch,Associate ID,Associate Name,Visits Actual,Visits Target,Calls Actual,Calls Target
    "Kochi","VF01","RAHUL RAJ",1,2,1,50
"""

import csv
from pathlib import Path

import pandas as pd

from ..schema.defaults import get_export_schema
from ..schema.design_system import format_value
from ..schema.models import ColumnType, ExportSchema, Targets
from .aggregate import BranchReport, HierarchyReport


class EmptyReportError(ValueError):
    """Raised when there is nothing to export."""


def _resolve_schema(report, schema: ExportSchema | str | None) -> ExportSchema:
    if schema is None:
        schema = "roster" if isinstance(report, HierarchyReport) else "branch"
    if isinstance(schema, str):
        schema = get_export_schema(schema)
    if schema.roster and not isinstance(report, HierarchyReport):
        raise ValueError(f"Export schema '{schema.name}' needs a territory-manager roster")
    return schema


def export_frame(report: BranchReport | HierarchyReport, targets: Targets,
                 schema: ExportSchema | str | None = None) -> pd.DataFrame:
    """Build the export table: one row per employee, headers as columns.

    Counts stay integers; achievement columns are ``NN%`` strings.

    Raises:
        EmptyReportError: If the report has no employees.
        ValueError: If the schema does not fit the report type.
    """
    schema = _resolve_schema(report, schema)
    rows = report.rows()
    if not rows:
        raise EmptyReportError("No data to export for the selected month")

    records = []
    for row in rows:
        values = dict(row, visits_target=targets.visits, calls_target=targets.calls)
        record = {}
        for col in schema.columns:
            value = values.get(col.data_key, "")
            if col.column_type is ColumnType.COUNT:
                record[col.header] = int(value or 0)
            else:
                target = values.get(col.target_key) if col.target_key else None
                record[col.header] = format_value(value, col.column_type, target)
        records.append(record)
    return pd.DataFrame(records, columns=schema.headers)


def export_csv(report: BranchReport | HierarchyReport, targets: Targets,
               schema: ExportSchema | str | None = None) -> str:
    """Render a report as CSV text.

    Args:
        report: The BranchReport or HierarchyReport to export.
        targets: Visit/call targets written alongside the actuals.
        schema: ExportSchema or built-in schema name.  Defaults to
            ``branch`` for branch reports and ``roster`` for rosters.

    Raises:
        EmptyReportError: If the report has no employees.
    """
    schema = _resolve_schema(report, schema)
    frame = export_frame(report, targets, schema)
    header = ",".join(schema.headers)
    body = frame.to_csv(index=False, header=False, quoting=csv.QUOTE_NONNUMERIC,
                        lineterminator="\n")
    return f"{header}\n{body}"


def export_filename(report: BranchReport | HierarchyReport, year: int | None = None) -> str:
    """Default file name for an export, e.g. ``activity_march.csv``."""
    parts = ["activity"]
    if isinstance(report, HierarchyReport):
        parts.append(report.territory_manager.lower().replace(" ", "_"))
    parts.append(report.month_name.lower())
    if year is not None:
        parts.append(str(year))
    return "_".join(parts) + ".csv"


def write_export(path: str | Path, text: str) -> Path:
    """Write export text to *path* (UTF-8), creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
