"""Report schema models - the contract between ingestion, aggregation and export.

Defines the typed structure of the two input feeds (which column holds which
field), the activity targets, the special-case territory-manager rules and
the versioned export layouts.  Every model round-trips through plain dicts so
the whole configuration can be reviewed and edited as YAML.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FeedKind(Enum):
    """Which input feed a layout describes."""
    ACTIVITY = "activity"    # Visit/call log, one row per activity
    MAPPING = "mapping"      # Branch -> org hierarchy table


class ColumnType(Enum):
    """How an export column value is rendered."""
    TEXT = "text"                # Quoted free text
    COUNT = "count"              # Unquoted integer
    ACHIEVEMENT = "achievement"  # round(actual / target * 100)%


# ---------------------------------------------------------------------------
# Feed layouts
# ---------------------------------------------------------------------------

@dataclass
class FieldSpec:
    """Where a named field lives in a feed row, and what to use when absent."""
    column: int
    default: str = ""
    identifier: bool = False    # Upper-case + trim at ingestion

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"column": self.column}
        if self.default:
            d["default"] = self.default
        if self.identifier:
            d["identifier"] = True
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "FieldSpec":
        if "column" not in d:
            raise ValueError(f"Field spec is missing 'column': {d!r}")
        column = int(d["column"])
        if column < 0:
            raise ValueError(f"Field column must be >= 0, got {column}")
        return cls(
            column=column,
            default=str(d.get("default", "")),
            identifier=bool(d.get("identifier", False)),
        )


ACTIVITY_FIELDS = (
    "date", "branch_name", "employee_name", "employee_code",
    "activity_type", "branch_code",
)

MAPPING_FIELDS = (
    "branch_code", "unit_manager", "district_manager", "regional_manager",
    "territory_manager", "special_case_code", "special_case_unit_manager",
)

_FIELDS_BY_KIND = {
    FeedKind.ACTIVITY: ACTIVITY_FIELDS,
    FeedKind.MAPPING: MAPPING_FIELDS,
}


@dataclass
class FeedLayout:
    """Column layout of one delimited feed.

    ``fields`` maps a field name to its :class:`FieldSpec`.  Fields omitted
    from the layout are read as their empty default, which is how the
    branch-only ``activity`` layout works without a branch code.
    """
    name: str
    kind: FeedKind
    fields: dict[str, FieldSpec] = field(default_factory=dict)
    delimiter: str = ","

    def __post_init__(self):
        allowed = _FIELDS_BY_KIND[self.kind]
        unknown = [f for f in self.fields if f not in allowed]
        if unknown:
            raise ValueError(
                f"Unknown field(s) for {self.kind.value} layout '{self.name}': "
                f"{', '.join(unknown)}. Valid fields: {', '.join(allowed)}"
            )

    @property
    def width(self) -> int:
        """Minimum row width needed to hold every configured field."""
        if not self.fields:
            return 0
        return max(spec.column for spec in self.fields.values()) + 1

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind.value,
            "fields": {k: v.to_dict() for k, v in self.fields.items()},
        }
        if self.delimiter != ",":
            d["delimiter"] = self.delimiter
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "FeedLayout":
        return cls(
            name=d["name"],
            kind=FeedKind(d["kind"]),
            fields={k: FieldSpec.from_dict(v) for k, v in (d.get("fields") or {}).items()},
            delimiter=d.get("delimiter", ","),
        )


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------

@dataclass
class Targets:
    """Monthly activity targets per employee.  Display-only: they never
    change the counts, only the achieved flags and percentages."""
    visits: int = 2
    calls: int = 50

    def to_dict(self) -> dict:
        return {"visits": self.visits, "calls": self.calls}

    @classmethod
    def from_dict(cls, d: dict) -> "Targets":
        return cls(visits=int(d.get("visits", 2)), calls=int(d.get("calls", 50)))


# ---------------------------------------------------------------------------
# Special-case territory managers
# ---------------------------------------------------------------------------

@dataclass
class SpecialCaseRule:
    """A territory manager whose staff are identified by employee code.

    Membership ignores branch assignment entirely.  Codes come from the
    mapping feed's ``special_case_code`` column (when ``use_mapping_codes``)
    plus any listed in ``codes``.  The display overrides replace the
    district/regional manager labels; ``unit_manager`` replaces the unit
    manager label unless the member's mapping row names
    ``retained_unit_manager`` in its ``special_case_unit_manager`` column.
    """
    territory_manager: str
    district_manager: str = ""
    regional_manager: str = ""
    unit_manager: str = ""
    retained_unit_manager: str | None = None
    use_mapping_codes: bool = True
    codes: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.codes = [c.strip().upper() for c in self.codes if c and c.strip()]

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "territory_manager": self.territory_manager,
            "district_manager": self.district_manager,
            "regional_manager": self.regional_manager,
            "unit_manager": self.unit_manager,
        }
        if self.retained_unit_manager:
            d["retained_unit_manager"] = self.retained_unit_manager
        if not self.use_mapping_codes:
            d["use_mapping_codes"] = False
        if self.codes:
            d["codes"] = list(self.codes)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "SpecialCaseRule":
        if not d.get("territory_manager"):
            raise ValueError(f"Special-case rule needs a territory_manager: {d!r}")
        return cls(
            territory_manager=d["territory_manager"],
            district_manager=d.get("district_manager", ""),
            regional_manager=d.get("regional_manager", ""),
            unit_manager=d.get("unit_manager", ""),
            retained_unit_manager=d.get("retained_unit_manager"),
            use_mapping_codes=d.get("use_mapping_codes", True),
            codes=list(d.get("codes") or []),
        )


def check_unique_managers(rules: list[SpecialCaseRule]) -> None:
    """Raise ValueError if two rules name the same territory manager."""
    seen = set()
    for rule in rules:
        if rule.territory_manager in seen:
            raise ValueError(
                f"Duplicate special-case rule for territory manager "
                f"'{rule.territory_manager}'; merge its codes into one rule"
            )
        seen.add(rule.territory_manager)


# ---------------------------------------------------------------------------
# Export layouts
# ---------------------------------------------------------------------------

@dataclass
class ExportColumn:
    """A single column of a CSV export."""
    header: str
    data_key: str              # Key into the flattened employee row
    column_type: ColumnType = ColumnType.TEXT
    target_key: str | None = None   # For ACHIEVEMENT columns

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "header": self.header,
            "data_key": self.data_key,
            "column_type": self.column_type.value,
        }
        if self.target_key:
            d["target_key"] = self.target_key
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ExportColumn":
        return cls(
            header=d["header"],
            data_key=d["data_key"],
            column_type=ColumnType(d.get("column_type", "text")),
            target_key=d.get("target_key"),
        )


@dataclass
class ExportSchema:
    """A versioned CSV export layout."""
    name: str
    columns: list[ExportColumn] = field(default_factory=list)
    roster: bool = False       # Consumes a HierarchyReport instead of a BranchReport

    @property
    def headers(self) -> list[str]:
        return [c.header for c in self.columns]

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
        }
        if self.roster:
            d["roster"] = True
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ExportSchema":
        return cls(
            name=d["name"],
            columns=[ExportColumn.from_dict(c) for c in d.get("columns", [])],
            roster=d.get("roster", False),
        )


# ---------------------------------------------------------------------------
# ReportConfig — top-level container
# ---------------------------------------------------------------------------

@dataclass
class ReportConfig:
    """Everything a report session needs besides the feed contents."""
    activity_source: str = ""
    mapping_source: str = ""
    activity_layout: FeedLayout | None = None
    mapping_layout: FeedLayout | None = None
    targets: Targets = field(default_factory=Targets)
    special_cases: list[SpecialCaseRule] = field(default_factory=list)
    export_schema: str = "branch"
    timeout_seconds: float = 30.0

    def __post_init__(self):
        check_unique_managers(self.special_cases)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "activity_source": self.activity_source,
            "mapping_source": self.mapping_source,
        }
        if self.activity_layout:
            d["activity_layout"] = self.activity_layout.to_dict()
        if self.mapping_layout:
            d["mapping_layout"] = self.mapping_layout.to_dict()
        d["targets"] = self.targets.to_dict()
        d["special_cases"] = [r.to_dict() for r in self.special_cases]
        d["export_schema"] = self.export_schema
        d["timeout_seconds"] = self.timeout_seconds
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ReportConfig":
        activity_layout = d.get("activity_layout")
        mapping_layout = d.get("mapping_layout")
        return cls(
            activity_source=d.get("activity_source", ""),
            mapping_source=d.get("mapping_source", ""),
            activity_layout=FeedLayout.from_dict(activity_layout) if activity_layout else None,
            mapping_layout=FeedLayout.from_dict(mapping_layout) if mapping_layout else None,
            targets=Targets.from_dict(d.get("targets") or {}),
            special_cases=[SpecialCaseRule.from_dict(r) for r in d.get("special_cases") or []],
            export_schema=d.get("export_schema", "branch"),
            timeout_seconds=float(d.get("timeout_seconds", 30.0)),
        )
