"""Org hierarchy resolution for territory-manager rosters.

Places an activity record into a (district manager, unit manager, branch
code) bucket for a selected territory manager.  Two disjoint strategies:

- Branch-based: the record's branch code is looked up among the mapping
  rows owned by the territory manager (first matching row wins).
- Special-case: a territory manager listed in the config's special-case
  rules owns staff by employee code, whatever their branch.  Display
  labels come from the rule.

Codes claimed by a special-case rule, and every code in the mapping feed's
special-case column, never appear in a branch-based roster.

Usage::

    resolver = HierarchyResolver(feeds.mapping, config.special_cases)
    placement = resolver.resolve(record, "ANITHA K")
    if placement is not None:
        print(placement.district_manager, placement.unit_manager)
"""

from dataclasses import dataclass

from ..schema.models import SpecialCaseRule, check_unique_managers
from .ingestion import ActivityRecord, MappingRecord


@dataclass(frozen=True)
class Placement:
    """Where a record lands in a territory manager's roster."""
    district_manager: str
    unit_manager: str
    regional_manager: str
    branch_code: str


class HierarchyResolver:
    """Resolve activity records against the org mapping table.

    Args:
        mapping: Normalized mapping rows, in feed order.
        rules: Special-case territory-manager rules, in priority order.
    """

    def __init__(self, mapping: list[MappingRecord],
                 rules: list[SpecialCaseRule] | None = None):
        self.mapping = list(mapping)
        self.rules = list(rules or [])
        check_unique_managers(self.rules)
        self._rules_by_tm = {rule.territory_manager: rule for rule in self.rules}

        self._branches_by_tm: dict[str, dict[str, MappingRecord]] = {}
        self._mapped_codes: set[str] = set()
        self._special_rows: dict[str, MappingRecord] = {}
        for row in self.mapping:
            if row.branch_code:
                self._mapped_codes.add(row.branch_code)
                owned = self._branches_by_tm.setdefault(row.territory_manager, {})
                owned.setdefault(row.branch_code, row)
            if row.special_case_code:
                self._special_rows.setdefault(row.special_case_code, row)

        self._claims = self._build_claims()
        self._excluded = frozenset(self._claims) | frozenset(self._special_rows)

    def _build_claims(self) -> dict[str, SpecialCaseRule]:
        """Map each special-case employee code to the rule that owns it.

        Explicit rule codes are claimed first, in rule order.  Codes from the
        mapping feed's special-case column then go to the first rule that
        draws on that column.
        """
        claims: dict[str, SpecialCaseRule] = {}
        for rule in self.rules:
            for code in rule.codes:
                claims.setdefault(code, rule)
        column_rule = next((r for r in self.rules if r.use_mapping_codes), None)
        if column_rule is not None:
            for code in self._special_rows:
                claims.setdefault(code, column_rule)
        return claims

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def special_codes(self) -> frozenset[str]:
        """Every employee code kept out of branch-based rosters."""
        return self._excluded

    def is_special(self, territory_manager: str) -> bool:
        return territory_manager in self._rules_by_tm

    def is_mapped(self, branch_code: str) -> bool:
        """True when any mapping row carries this branch code."""
        return branch_code in self._mapped_codes

    def territory_managers(self) -> list[str]:
        """All roster choices: mapping owners plus special-case managers."""
        names = {tm for tm in self._branches_by_tm if tm}
        names.update(self._rules_by_tm)
        return sorted(names)

    def branch_codes_for(self, territory_manager: str) -> list[str]:
        """Branch codes owned by a territory manager, in feed order."""
        return list(self._branches_by_tm.get(territory_manager, {}))

    def resolve(self, record: ActivityRecord, territory_manager: str) -> Placement | None:
        """Place *record* in *territory_manager*'s roster, or return None."""
        claimed_by = self._claims.get(record.employee_code)
        rule = self._rules_by_tm.get(territory_manager)

        if rule is not None:
            if claimed_by is not rule:
                return None
            return self._special_placement(record, rule)

        if record.employee_code in self.special_codes:
            return None

        row = self._branches_by_tm.get(territory_manager, {}).get(record.branch_code)
        if row is None:
            return None
        return Placement(
            district_manager=row.district_manager,
            unit_manager=row.unit_manager,
            regional_manager=row.regional_manager,
            branch_code=record.branch_code,
        )

    def _special_placement(self, record: ActivityRecord, rule: SpecialCaseRule) -> Placement:
        unit_manager = rule.unit_manager
        row = self._special_rows.get(record.employee_code)
        if (rule.retained_unit_manager and row is not None
                and row.special_case_unit_manager == rule.retained_unit_manager):
            unit_manager = rule.retained_unit_manager
        return Placement(
            district_manager=rule.district_manager,
            unit_manager=unit_manager,
            regional_manager=rule.regional_manager,
            branch_code=record.branch_code,
        )
