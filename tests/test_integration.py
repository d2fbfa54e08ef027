"""End-to-end integration tests over local feed files.

Exercises the full pipeline:
    feed CSV files → load_feeds → ReportSession → reports → CSV export / QA

The feeds mirror the published activity sheet (quoted cells, a header
row, mixed-case codes) and the org mapping sheet with its special-case
columns.
"""

import csv
import io
from unittest.mock import MagicMock, patch

import pytest

from activity_report.processor.export import EmptyReportError
from activity_report.processor.session import ReportSession
from activity_report.qa.validator import validate_feeds
from activity_report.schema.defaults import activity_layout, default_config
from activity_report.schema.models import SpecialCaseRule, Targets


ACTIVITY_CSV = "\n".join([
    '"Timestamp","Date","Branch","Name","Code","Remarks","Type","Place","Customer","Phone","Branch Code"',
    '"15/03/2024 10:02","15/03/2024","Kochi","RAHUL RAJ","vf01","","Visit","","","","br01"',
    '"16/03/2024 11:40","16/03/2024","Kochi","RAHUL RAJ","VF01 ","","Call","","","","BR01"',
    '"16/03/2024 12:00","16/03/2024","Kochi","Ébin","VF05","","Visit Call","","","","BR01"',
    '"17/03/2024 09:15","17/03/2024","Aluva","SANDHYAMOL, T","VF02","","Visit","","","","BR02"',
    '"18/03/2024 16:30","18/03/2024","Kochi","SARA","SP01","","Visit","","","","BR01"',
    '"19/03/2024 16:30","19/03/2024","","NO BRANCH","VF09","","Call","","","",""',
    '"20/03/2024 08:00","20/03/2024","Thrissur","LOST","VF08","","Visit","","","","BR99"',
    '"21/03/2024 08:00","21/03/2024","Kochi","","","","Visit","","","","BR01"',
    '"01/04/2024 10:00","01/04/2024","Kochi","RAHUL RAJ","VF01","","Visit","","","","BR01"',
    '"bad date","bad date","Kochi","RAHUL RAJ","VF01","","Visit","","","","BR01"',
])

MAPPING_CSV = "\n".join([
    "Branch Code,Unit Manager,District Manager,Regional Manager,Territory Manager,Special Code,Special UM",
    "BR01,Usha,Dinesh,Ravi,ANITHA,,",
    "BR02,Umesh,Deepa,Ravi,BIJU,,",
    ",,,,,sp01,Suresh",
])


@pytest.fixture
def config(tmp_path):
    activity = tmp_path / "activity.csv"
    activity.write_text(ACTIVITY_CSV, encoding="utf-8")
    mapping = tmp_path / "mapping.csv"
    mapping.write_text(MAPPING_CSV, encoding="utf-8")

    config = default_config()
    config.activity_source = str(activity)
    config.mapping_source = str(mapping)
    config.special_cases = [SpecialCaseRule(
        territory_manager="MANOJ",
        district_manager="Direct",
        regional_manager="Direct",
        unit_manager="Direct Team",
        retained_unit_manager="Suresh",
    )]
    return config


@pytest.fixture
def session(config):
    return ReportSession.open(config)


def _parse(text):
    return list(csv.reader(io.StringIO(text)))


# ---------------------------------------------------------------------------
# Branch summary
# ---------------------------------------------------------------------------

class TestBranchPipeline:
    def test_feeds_loaded(self, session):
        assert session.has_activity
        assert len(session.feeds.activity) == 10
        assert len(session.feeds.mapping) == 3

    def test_codes_normalized_once(self, session):
        codes = {r.employee_code for r in session.feeds.activity}
        assert "VF01" in codes
        assert "vf01" not in codes
        assert "VF01 " not in codes

    def test_rahul_counts(self, session):
        report = session.branch_report(2)
        kochi = report.branch("Kochi")
        rahul = next(e for e in kochi.employees if e.code == "VF01")
        assert (rahul.name, rahul.visits, rahul.calls) == ("RAHUL RAJ", 1, 1)

    def test_visit_call_counts_both(self, session):
        kochi = session.branch_report(2).branch("Kochi")
        ebin = next(e for e in kochi.employees if e.code == "VF05")
        assert (ebin.visits, ebin.calls) == (1, 1)

    def test_branch_order(self, session):
        names = [b.branch for b in session.branch_report(2).branches]
        assert names == sorted(names)
        assert "Unknown" in names

    def test_accent_folded_employee_order(self, session):
        kochi = session.branch_report(2).branch("Kochi")
        assert [e.name for e in kochi.employees] == ["Ébin", "RAHUL RAJ", "SARA"]

    def test_missing_code_dropped(self, session):
        report = session.branch_report(2)
        assert all(r["code"] != "N/A" for r in report.rows())

    def test_other_month(self, session):
        report = session.branch_report(3)
        assert report.employee_count == 1
        assert session.branch_report(5).is_empty

    def test_branch_export(self, session):
        rows = _parse(session.export(session.branch_report(2)))
        assert rows[0][0] == "Branch"
        assert ["Kochi", "VF01", "RAHUL RAJ", "1", "2", "1", "50"] in rows
        assert ["Aluva", "VF02", "SANDHYAMOL, T", "1", "2", "0", "50"] in rows

    def test_empty_export(self, session):
        with pytest.raises(EmptyReportError):
            session.export(session.branch_report(5))


# ---------------------------------------------------------------------------
# Territory-manager rosters
# ---------------------------------------------------------------------------

class TestRosterPipeline:
    def test_managers(self, session):
        assert session.territory_managers() == ["ANITHA", "BIJU", "MANOJ"]

    def test_anitha_roster(self, session):
        report = session.roster("ANITHA", 2)
        rows = report.rows()
        assert {r["code"] for r in rows} == {"VF01", "VF05"}
        assert all(r["district_manager"] == "Dinesh" for r in rows)
        assert all(r["unit_manager"] == "Usha" for r in rows)
        assert report.unmapped_branch_codes == ["BR99"]

    def test_special_member_only_in_special_roster(self, session):
        assert "SP01" not in {r["code"] for r in session.roster("ANITHA", 2).rows()}
        [row] = session.roster("MANOJ", 2).rows()
        assert row["code"] == "SP01"
        assert row["district_manager"] == "Direct"
        assert row["regional_manager"] == "Direct"
        assert row["unit_manager"] == "Suresh"
        assert row["branch_code"] == "BR01"

    def test_special_roster_reports_no_unmapped(self, session):
        assert session.roster("MANOJ", 2).unmapped_branch_codes == []

    def test_unknown_manager(self, session):
        with pytest.raises(ValueError, match="Unknown territory manager"):
            session.roster("NOBODY", 2)

    def test_crlf_feed_keeps_branch_join(self, config):
        header = ACTIVITY_CSV.split("\n")[0]
        row = '"x","15/03/2024","Kochi","{name}","{code}","","Visit","","","","BR01"'
        body = "\r\n".join([header, row.format(name="RAHUL RAJ", code="VF01"),
                            row.format(name="ANU", code="VF02")]) + "\r\n"
        response = MagicMock(content=body.encode("utf-8"))
        config.activity_source = "https://example.com/activity.csv"
        with patch("activity_report.processor.ingestion.requests.get",
                   return_value=response):
            report = ReportSession.open(config).roster("ANITHA", 2)
        assert sorted(r["code"] for r in report.rows()) == ["VF01", "VF02"]
        assert report.unmapped_branch_codes == []

    def test_roster_export(self, session):
        rows = _parse(session.export(session.roster("BIJU", 2)))
        assert rows[0][:3] == ["District Manager", "Unit Manager", "Branch Code"]
        assert rows[1] == ["Deepa", "Umesh", "BR02", "VF02", "SANDHYAMOL, T",
                           "1", "2", "50%", "0", "50", "0%"]

    def test_custom_targets(self, session):
        session.config.targets = Targets(visits=1, calls=1)
        rows = _parse(session.export(session.roster("BIJU", 2)))
        assert rows[1][5:] == ["1", "1", "100%", "0", "1", "0%"]


# ---------------------------------------------------------------------------
# Degraded feeds
# ---------------------------------------------------------------------------

class TestDegradedFeeds:
    def test_missing_mapping_file(self, config, tmp_path):
        config.mapping_source = str(tmp_path / "missing.csv")
        session = ReportSession.open(config)
        assert session.branch_report(2).employee_count > 0
        assert session.territory_managers() == ["MANOJ"]
        assert session.roster("MANOJ", 2).is_empty

    def test_missing_activity_file(self, config, tmp_path):
        config.activity_source = str(tmp_path / "missing.csv")
        session = ReportSession.open(config)
        assert not session.has_activity
        assert session.branch_report(2).is_empty

    def test_branch_only_layout(self, config):
        config.activity_layout = activity_layout()
        config.mapping_source = ""
        config.mapping_layout = None
        session = ReportSession.open(config)
        assert session.feeds.mapping == []
        assert all(r.branch_code == "" for r in session.feeds.activity)
        assert session.branch_report(2).branch("Kochi") is not None


# ---------------------------------------------------------------------------
# QA over the same feeds
# ---------------------------------------------------------------------------

class TestFeedQA:
    def test_issues_found(self, session):
        result = validate_feeds(session.config, session.feeds.activity_text,
                                session.feeds.mapping_text)
        categories = result.by_category()
        assert categories["date"] == 1
        assert categories["missing_code"] == 1
        assert categories["unmapped_branch"] == 1
        assert result.passed
