"""Built-in feed layouts, export schemas and the default report config.

Column positions are zero-based offsets into a parsed feed row:

    activity           date=B, branch=C, name=D, code=E, type=G
    activity_mapped    as above, plus branch code in column K
    mapping            branch code, UM, DM, RM, TM owner, special code,
                       special-case UM in columns A-G
"""

from .models import (
    ColumnType,
    ExportColumn,
    ExportSchema,
    FeedKind,
    FeedLayout,
    FieldSpec,
    ReportConfig,
    Targets,
)

ACTIVITY_CSV_URL = (
    "https://docs.google.com/spreadsheets/d/e/2PACX-1vTOdQ33IqaCOXKXhjzPMB9e35fajKZfN7n6AOn5Citte64Fu9KXz4hWh1GK52848y-1YIm7vnp9tArr"
    "/pub?gid=1745453083&single=true&output=csv"
)

UNKNOWN_BRANCH = "Unknown"
MISSING = "N/A"


# ---------------------------------------------------------------------------
# Feed layouts
# ---------------------------------------------------------------------------

def _activity_fields() -> dict[str, FieldSpec]:
    return {
        "date": FieldSpec(column=1),
        "branch_name": FieldSpec(column=2, default=UNKNOWN_BRANCH),
        "employee_name": FieldSpec(column=3, default=MISSING),
        "employee_code": FieldSpec(column=4, default=MISSING, identifier=True),
        "activity_type": FieldSpec(column=6),
    }


def activity_layout() -> FeedLayout:
    """Branch-only activity log layout."""
    return FeedLayout(name="activity", kind=FeedKind.ACTIVITY, fields=_activity_fields())


def activity_mapped_layout() -> FeedLayout:
    """Activity log layout carrying a branch code for the org mapping join."""
    fields = _activity_fields()
    fields["branch_code"] = FieldSpec(column=10, identifier=True)
    return FeedLayout(name="activity_mapped", kind=FeedKind.ACTIVITY, fields=fields)


def mapping_layout() -> FeedLayout:
    """Organisational mapping table layout."""
    return FeedLayout(
        name="mapping",
        kind=FeedKind.MAPPING,
        fields={
            "branch_code": FieldSpec(column=0, identifier=True),
            "unit_manager": FieldSpec(column=1),
            "district_manager": FieldSpec(column=2),
            "regional_manager": FieldSpec(column=3),
            "territory_manager": FieldSpec(column=4),
            "special_case_code": FieldSpec(column=5, identifier=True),
            "special_case_unit_manager": FieldSpec(column=6),
        },
    )


LAYOUTS = {
    "activity": activity_layout,
    "activity_mapped": activity_mapped_layout,
    "mapping": mapping_layout,
}


def get_layout(name: str) -> FeedLayout:
    """Return a fresh copy of a built-in layout by name."""
    if name not in LAYOUTS:
        raise ValueError(
            f"Unknown layout '{name}'. Valid layouts: {', '.join(sorted(LAYOUTS))}"
        )
    return LAYOUTS[name]()


# ---------------------------------------------------------------------------
# Export schemas
# ---------------------------------------------------------------------------

_TEXT = ColumnType.TEXT
_COUNT = ColumnType.COUNT
_PCT = ColumnType.ACHIEVEMENT


def _branch_columns(with_achievement: bool) -> list[ExportColumn]:
    columns = [
        ExportColumn("Branch", "branch"),
        ExportColumn("Associate ID", "code"),
        ExportColumn("Associate Name", "name"),
        ExportColumn("Visits Actual", "visits", _COUNT),
        ExportColumn("Visits Target", "visits_target", _COUNT),
    ]
    if with_achievement:
        columns.append(ExportColumn("Visits %", "visits", _PCT, target_key="visits_target"))
    columns += [
        ExportColumn("Calls Actual", "calls", _COUNT),
        ExportColumn("Calls Target", "calls_target", _COUNT),
    ]
    if with_achievement:
        columns.append(ExportColumn("Calls %", "calls", _PCT, target_key="calls_target"))
    return columns


def branch_export_schema() -> ExportSchema:
    return ExportSchema(name="branch", columns=_branch_columns(False))


def branch_achievement_export_schema() -> ExportSchema:
    return ExportSchema(name="branch_achievement", columns=_branch_columns(True))


def roster_export_schema() -> ExportSchema:
    return ExportSchema(
        name="roster",
        roster=True,
        columns=[
            ExportColumn("District Manager", "district_manager"),
            ExportColumn("Unit Manager", "unit_manager"),
            ExportColumn("Branch Code", "branch_code"),
            ExportColumn("Associate ID", "code"),
            ExportColumn("Associate Name", "name"),
            ExportColumn("Visits Actual", "visits", _COUNT),
            ExportColumn("Visits Target", "visits_target", _COUNT),
            ExportColumn("Visits %", "visits", _PCT, target_key="visits_target"),
            ExportColumn("Calls Actual", "calls", _COUNT),
            ExportColumn("Calls Target", "calls_target", _COUNT),
            ExportColumn("Calls %", "calls", _PCT, target_key="calls_target"),
        ],
    )


EXPORT_SCHEMAS = {
    "branch": branch_export_schema,
    "branch_achievement": branch_achievement_export_schema,
    "roster": roster_export_schema,
}


def get_export_schema(name: str) -> ExportSchema:
    """Return a built-in export schema by name."""
    if name not in EXPORT_SCHEMAS:
        raise ValueError(
            f"Unknown export schema '{name}'. "
            f"Valid schemas: {', '.join(sorted(EXPORT_SCHEMAS))}"
        )
    return EXPORT_SCHEMAS[name]()


# ---------------------------------------------------------------------------
# Default config
# ---------------------------------------------------------------------------

def default_config() -> ReportConfig:
    """The configuration used when no YAML file is supplied."""
    return ReportConfig(
        activity_source=ACTIVITY_CSV_URL,
        mapping_source="",
        activity_layout=activity_mapped_layout(),
        mapping_layout=mapping_layout(),
        targets=Targets(visits=2, calls=50),
        special_cases=[],
        export_schema="branch",
    )
