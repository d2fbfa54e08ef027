"""Activity aggregation for the field activity report.

Turns normalized activity records into per-employee visit/call counts for
one calendar month, grouped by branch or, for a territory-manager roster,
by district manager / unit manager / branch code.

Every call builds its result from scratch and returns it; nothing is
cached between calls, so the same records and month always produce the
same report.

Usage::

    report = aggregate_by_branch(feeds.activity, month=2)   # March
    for branch in report.branches:
        for emp in branch.employees:
            print(branch.branch, emp.code, emp.visits, emp.calls)
"""

import calendar
import math
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Callable

import pandas as pd

from ..schema.design_system import is_achieved
from ..schema.models import Targets
from .hierarchy import HierarchyResolver
from .ingestion import ActivityRecord


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------

def month_index(date: str) -> int | None:
    """Zero-based month of a ``dd/mm/yyyy`` date, or None when malformed.

    Examples:
        "15/03/2024" -> 2
        "15/3/2024"  -> 2
        "2024-03-15" -> None
        "15/xx/2024" -> None
    """
    if not date:
        return None
    parts = date.split("/")
    if len(parts) != 3:
        return None
    component = parts[1].strip()
    try:
        value = float(component)
    except ValueError:
        return None
    if not math.isfinite(value) or value != int(value):
        return None
    return int(value) - 1


def classify(activity_type: str) -> tuple[bool, bool]:
    """Return (is_visit, is_call) for an activity type label.

    Substring matches, case-insensitive.  A label containing both words
    counts as both.
    """
    label = (activity_type or "").lower().strip()
    return "visit" in label, "call" in label


def is_countable(record: ActivityRecord, month: int) -> bool:
    """True when *record* has a code and falls in *month* (0-11)."""
    if not record.date or not record.has_code:
        return False
    return month_index(record.date) == month


def name_sort_key(name: str) -> tuple[str, str]:
    """Collation key for person names: accents and case folded first."""
    decomposed = unicodedata.normalize("NFKD", name or "")
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return folded.casefold(), name or ""


def _check_month(month: int) -> None:
    if not isinstance(month, int) or isinstance(month, bool) or not 0 <= month <= 11:
        raise ValueError(f"Month index must be an integer 0-11, got {month!r}")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class EmployeeActivity:
    """Visit/call counts for one employee in one bucket."""
    code: str
    name: str
    visits: int = 0
    calls: int = 0

    def add(self, record: ActivityRecord) -> None:
        is_visit, is_call = classify(record.activity_type)
        if is_visit:
            self.visits += 1
        if is_call:
            self.calls += 1

    def visits_achieved(self, targets: Targets) -> bool:
        return is_achieved(self.visits, targets.visits)

    def calls_achieved(self, targets: Targets) -> bool:
        return is_achieved(self.calls, targets.calls)

    def to_dict(self) -> dict:
        return {"name": self.name, "code": self.code,
                "visits": self.visits, "calls": self.calls}


def _sorted_employees(employees: dict[str, EmployeeActivity]) -> list[EmployeeActivity]:
    return sorted(employees.values(), key=lambda e: (name_sort_key(e.name), e.code))


@dataclass
class BranchGroup:
    """All employees counted under one branch name."""
    branch: str
    employees: list[EmployeeActivity] = field(default_factory=list)


@dataclass
class BranchReport:
    """Result of :func:`aggregate_by_branch`."""
    month: int
    branches: list[BranchGroup] = field(default_factory=list)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month + 1]

    @property
    def is_empty(self) -> bool:
        return not any(b.employees for b in self.branches)

    @property
    def employee_count(self) -> int:
        return sum(len(b.employees) for b in self.branches)

    def branch(self, name: str) -> BranchGroup | None:
        for group in self.branches:
            if group.branch == name:
                return group
        return None

    def rows(self) -> list[dict[str, Any]]:
        """One flat dict per (branch, employee), in report order."""
        return [
            {"branch": group.branch, **emp.to_dict()}
            for group in self.branches
            for emp in group.employees
        ]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows(), columns=["branch", "name", "code", "visits", "calls"])


@dataclass
class BranchCodeGroup:
    """Employees under one branch code in a roster."""
    branch_code: str
    employees: list[EmployeeActivity] = field(default_factory=list)


@dataclass
class UnitGroup:
    """Branch-code groups under one unit manager."""
    unit_manager: str
    branches: list[BranchCodeGroup] = field(default_factory=list)


@dataclass
class DistrictGroup:
    """Unit groups under one district manager."""
    district_manager: str
    regional_manager: str = ""
    units: list[UnitGroup] = field(default_factory=list)


@dataclass
class HierarchyReport:
    """Result of :func:`aggregate_roster`."""
    territory_manager: str
    month: int
    districts: list[DistrictGroup] = field(default_factory=list)
    unmapped_branch_codes: list[str] = field(default_factory=list)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month + 1]

    @property
    def is_empty(self) -> bool:
        return not self.rows()

    @property
    def employee_count(self) -> int:
        return len(self.rows())

    def rows(self) -> list[dict[str, Any]]:
        """One flat dict per roster employee, in report order."""
        rows = []
        for district in self.districts:
            for unit in district.units:
                for branch in unit.branches:
                    for emp in branch.employees:
                        rows.append({
                            "territory_manager": self.territory_manager,
                            "regional_manager": district.regional_manager,
                            "district_manager": district.district_manager,
                            "unit_manager": unit.unit_manager,
                            "branch_code": branch.branch_code,
                            **emp.to_dict(),
                        })
        return rows

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows(), columns=[
            "territory_manager", "regional_manager", "district_manager",
            "unit_manager", "branch_code", "name", "code", "visits", "calls",
        ])


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate_by_branch(records: list[ActivityRecord], month: int,
                        include: Callable[[ActivityRecord], bool] | None = None) -> BranchReport:
    """Count visits and calls per employee per branch for one month.

    Args:
        records: Normalized activity records.
        month: Zero-based month index (0 = January).
        include: Optional extra predicate; records it rejects are skipped.

    Returns:
        BranchReport with branches sorted by name and employees sorted by
        collated employee name.

    Raises:
        ValueError: If *month* is not 0-11.
    """
    _check_month(month)
    grouped: dict[str, dict[str, EmployeeActivity]] = {}
    for record in records:
        if not is_countable(record, month):
            continue
        if include is not None and not include(record):
            continue
        employees = grouped.setdefault(record.branch_name, {})
        emp = employees.get(record.employee_code)
        if emp is None:
            emp = employees[record.employee_code] = EmployeeActivity(
                code=record.employee_code, name=record.employee_name)
        emp.add(record)

    return BranchReport(
        month=month,
        branches=[
            BranchGroup(branch=name, employees=_sorted_employees(grouped[name]))
            for name in sorted(grouped)
        ],
    )


def aggregate_roster(records: list[ActivityRecord], resolver: HierarchyResolver,
                     territory_manager: str, month: int) -> HierarchyReport:
    """Count visits and calls for one territory manager's roster.

    Records are placed with :meth:`HierarchyResolver.resolve`.  Records on
    branch codes that no mapping row knows are left out and their codes
    listed in ``unmapped_branch_codes``.

    Raises:
        ValueError: If *month* is not 0-11.
    """
    _check_month(month)
    tree: dict[str, dict[str, dict[str, dict[str, EmployeeActivity]]]] = {}
    regional: dict[str, str] = {}
    unmapped: set[str] = set()

    for record in records:
        if not is_countable(record, month):
            continue
        placement = resolver.resolve(record, territory_manager)
        if placement is None:
            if (not resolver.is_special(territory_manager)
                    and record.branch_code
                    and not resolver.is_mapped(record.branch_code)):
                unmapped.add(record.branch_code)
            continue
        regional.setdefault(placement.district_manager, placement.regional_manager)
        units = tree.setdefault(placement.district_manager, {})
        branches = units.setdefault(placement.unit_manager, {})
        employees = branches.setdefault(placement.branch_code, {})
        emp = employees.get(record.employee_code)
        if emp is None:
            emp = employees[record.employee_code] = EmployeeActivity(
                code=record.employee_code, name=record.employee_name)
        emp.add(record)

    districts = []
    for dm in sorted(tree):
        units = []
        for um in sorted(tree[dm]):
            units.append(UnitGroup(
                unit_manager=um,
                branches=[
                    BranchCodeGroup(branch_code=code,
                                    employees=_sorted_employees(tree[dm][um][code]))
                    for code in sorted(tree[dm][um])
                ],
            ))
        districts.append(DistrictGroup(district_manager=dm,
                                       regional_manager=regional.get(dm, ""),
                                       units=units))

    return HierarchyReport(
        territory_manager=territory_manager,
        month=month,
        districts=districts,
        unmapped_branch_codes=sorted(unmapped),
    )
