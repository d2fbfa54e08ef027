"""Tests for the activity aggregation module."""

import pandas as pd
import pytest

from activity_report.processor.aggregate import (
    BranchReport,
    EmployeeActivity,
    aggregate_by_branch,
    classify,
    is_countable,
    month_index,
    name_sort_key,
)
from activity_report.processor.ingestion import ActivityRecord, ingest_activity
from activity_report.schema.defaults import activity_layout
from activity_report.schema.models import Targets


def _rec(date="15/03/2024", branch="Kochi", name="RAHUL RAJ", code="VF01",
         kind="Visit", branch_code=""):
    return ActivityRecord(date=date, branch_name=branch, employee_name=name,
                          employee_code=code, activity_type=kind,
                          branch_code=branch_code)


# ---------------------------------------------------------------------------
# month_index
# ---------------------------------------------------------------------------

class TestMonthIndex:
    def test_march(self):
        assert month_index("15/03/2024") == 2

    def test_unpadded(self):
        assert month_index("5/3/2024") == 2

    def test_january_and_december(self):
        assert month_index("01/01/2024") == 0
        assert month_index("31/12/2024") == 11

    def test_padded_whitespace(self):
        assert month_index("15/ 03 /2024") == 2

    def test_wrong_component_count(self):
        assert month_index("2024-03-15") is None
        assert month_index("15/03") is None
        assert month_index("15/03/2024/1") is None

    def test_non_numeric_month(self):
        assert month_index("15/Mar/2024") is None

    def test_fractional_month(self):
        assert month_index("15/3.5/2024") is None

    def test_empty(self):
        assert month_index("") is None

    def test_empty_month_component(self):
        assert month_index("15//2024") is None

    def test_out_of_range_month_never_matches(self):
        assert month_index("15/13/2024") == 12
        assert month_index("15/00/2024") == -1


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------

class TestClassify:
    @pytest.mark.parametrize("label", ["Visits", "visit", "  VISIT  ", "Branch Visit"])
    def test_visits(self, label):
        assert classify(label) == (True, False)

    @pytest.mark.parametrize("label", ["Call", "Calls", "phone call"])
    def test_calls(self, label):
        assert classify(label) == (False, True)

    def test_both(self):
        assert classify("VISIT CALL") == (True, True)

    def test_neither(self):
        assert classify("Meeting") == (False, False)

    def test_empty(self):
        assert classify("") == (False, False)
        assert classify(None) == (False, False)


# ---------------------------------------------------------------------------
# is_countable
# ---------------------------------------------------------------------------

class TestIsCountable:
    def test_matching_month(self):
        assert is_countable(_rec(date="15/03/2024"), 2)

    def test_other_month(self):
        assert not is_countable(_rec(date="15/03/2024"), 1)

    def test_missing_code(self):
        assert not is_countable(_rec(code="N/A"), 2)

    def test_empty_code(self):
        assert not is_countable(_rec(code=""), 2)

    def test_missing_date(self):
        assert not is_countable(_rec(date=""), 2)

    def test_malformed_date(self):
        assert not is_countable(_rec(date="March 15"), 2)


# ---------------------------------------------------------------------------
# name_sort_key
# ---------------------------------------------------------------------------

class TestNameSortKey:
    def test_case_insensitive(self):
        names = ["bina", "Anil", "Chitra"]
        assert sorted(names, key=name_sort_key) == ["Anil", "bina", "Chitra"]

    def test_accents_folded(self):
        names = ["Zoe", "Émile", "Daniel"]
        assert sorted(names, key=name_sort_key) == ["Daniel", "Émile", "Zoe"]

    def test_empty(self):
        assert name_sort_key("") == ("", "")


# ---------------------------------------------------------------------------
# EmployeeActivity
# ---------------------------------------------------------------------------

class TestEmployeeActivity:
    def test_add_counts(self):
        emp = EmployeeActivity(code="VF01", name="A")
        emp.add(_rec(kind="Visit"))
        emp.add(_rec(kind="Calls"))
        emp.add(_rec(kind="Visit Call"))
        emp.add(_rec(kind="Meeting"))
        assert (emp.visits, emp.calls) == (2, 2)

    def test_achieved_flags(self):
        targets = Targets(visits=2, calls=50)
        emp = EmployeeActivity(code="VF01", name="A", visits=2, calls=49)
        assert emp.visits_achieved(targets)
        assert not emp.calls_achieved(targets)

    def test_to_dict(self):
        emp = EmployeeActivity(code="VF01", name="RAHUL RAJ", visits=1, calls=1)
        assert emp.to_dict() == {"name": "RAHUL RAJ", "code": "VF01",
                                 "visits": 1, "calls": 1}


# ---------------------------------------------------------------------------
# aggregate_by_branch
# ---------------------------------------------------------------------------

class TestAggregateByBranch:
    def test_visit_and_call_same_employee(self):
        text = "\n".join([
            "h",
            ",15/03/2024,Kochi,RAHUL RAJ,VF01,,Visit",
            ",15/03/2024,Kochi,RAHUL RAJ,VF01,,Call",
        ])
        records = ingest_activity(text, activity_layout())
        report = aggregate_by_branch(records, 2)

        assert [b.branch for b in report.branches] == ["Kochi"]
        [emp] = report.branch("Kochi").employees
        assert emp.to_dict() == {"name": "RAHUL RAJ", "code": "VF01",
                                 "visits": 1, "calls": 1}

    def test_month_filter(self):
        records = [_rec(date="15/03/2024"), _rec(date="15/04/2024")]
        assert aggregate_by_branch(records, 2).employee_count == 1
        assert aggregate_by_branch(records, 1).is_empty

    def test_missing_code_excluded(self):
        text = "\n".join([
            "h",
            ",15/03/2024,Kochi,NO CODE,,,Visit",
            ",15/03/2024,Kochi,SHORT ROW",
        ])
        records = ingest_activity(text, activity_layout())
        report = aggregate_by_branch(records, 2)
        assert report.is_empty
        assert report.branches == []

    def test_code_variants_merge(self):
        records = [_rec(code="VF01"), _rec(code="VF01", kind="Visits")]
        text = "h\n,15/03/2024,Kochi,RAHUL RAJ, vf01 ,,Visit"
        records.extend(ingest_activity(text, activity_layout()))
        [emp] = aggregate_by_branch(records, 2).branch("Kochi").employees
        assert emp.visits == 3

    def test_name_first_seen_wins(self):
        records = [_rec(name="Rahul Raj"), _rec(name="RAHUL RAJ K")]
        [emp] = aggregate_by_branch(records, 2).branch("Kochi").employees
        assert emp.name == "Rahul Raj"

    def test_same_code_in_two_branches(self):
        records = [_rec(branch="Kochi"), _rec(branch="Aluva")]
        report = aggregate_by_branch(records, 2)
        assert [b.branch for b in report.branches] == ["Aluva", "Kochi"]
        assert report.employee_count == 2

    def test_branch_and_employee_ordering(self):
        records = [
            _rec(branch="Thrissur", name="Zara", code="E3"),
            _rec(branch="Kochi", name="meera", code="E2"),
            _rec(branch="Kochi", name="Anil", code="E1"),
            _rec(branch="Kochi", name="Bala", code="E4"),
        ]
        report = aggregate_by_branch(records, 2)
        assert [b.branch for b in report.branches] == ["Kochi", "Thrissur"]
        names = [e.name for e in report.branch("Kochi").employees]
        assert names == ["Anil", "Bala", "meera"]

    def test_unknown_branch_default(self):
        records = ingest_activity("h\n,15/03/2024,,A,VF01,,Visit", activity_layout())
        report = aggregate_by_branch(records, 2)
        assert report.branches[0].branch == "Unknown"

    def test_visit_call_label_counts_both(self):
        [emp] = aggregate_by_branch([_rec(kind="VISIT CALL")], 2).branches[0].employees
        assert (emp.visits, emp.calls) == (1, 1)

    def test_unclassified_activity_still_lists_employee(self):
        [emp] = aggregate_by_branch([_rec(kind="Meeting")], 2).branches[0].employees
        assert (emp.visits, emp.calls) == (0, 0)

    def test_include_predicate(self):
        records = [_rec(code="VF01"), _rec(code="VF02", name="B")]
        report = aggregate_by_branch(records, 2, include=lambda r: r.employee_code == "VF02")
        assert [e.code for e in report.branches[0].employees] == ["VF02"]

    def test_idempotent(self):
        records = [
            _rec(branch="Kochi", name="A", code="E1"),
            _rec(branch="Kochi", name="B", code="E2", kind="Call"),
            _rec(branch="Aluva", name="C", code="E3"),
        ]
        first = aggregate_by_branch(records, 2)
        second = aggregate_by_branch(records, 2)
        assert first == second
        assert first.rows() == second.rows()

    def test_fresh_result_each_call(self):
        records = [_rec()]
        first = aggregate_by_branch(records, 2)
        first.branches[0].employees[0].visits = 99
        second = aggregate_by_branch(records, 2)
        assert second.branches[0].employees[0].visits == 1

    @pytest.mark.parametrize("month", [-1, 12, 2.0, None, True])
    def test_invalid_month(self, month):
        with pytest.raises(ValueError, match="0-11"):
            aggregate_by_branch([], month)

    def test_empty_records(self):
        report = aggregate_by_branch([], 0)
        assert report.is_empty
        assert report.month_name == "January"


# ---------------------------------------------------------------------------
# BranchReport helpers
# ---------------------------------------------------------------------------

class TestBranchReport:
    def test_rows_flat(self):
        report = aggregate_by_branch([_rec(), _rec(branch="Aluva", code="VF02", name="B")], 2)
        rows = report.rows()
        assert rows[0]["branch"] == "Aluva"
        assert rows[1] == {"branch": "Kochi", "name": "RAHUL RAJ", "code": "VF01",
                           "visits": 1, "calls": 0}

    def test_to_frame(self):
        df = aggregate_by_branch([_rec()], 2).to_frame()
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ["branch", "name", "code", "visits", "calls"]
        assert df.loc[0, "visits"] == 1

    def test_to_frame_empty(self):
        df = BranchReport(month=0).to_frame()
        assert df.empty
        assert "branch" in df.columns

    def test_month_name(self):
        assert BranchReport(month=2).month_name == "March"

    def test_branch_lookup_missing(self):
        assert BranchReport(month=2).branch("Nowhere") is None
