"""CLI entry point for the field activity report.

Orchestrates the full pipeline: config loading, feed fetching, month
aggregation, territory-manager rosters, CSV export and feed QA.

Usage::

    # Branch summary for March
    activity-report summary --month 3

    # Roster of one territory manager, from local CSV files
    activity-report roster --month 3 --territory-manager "ANITHA K" \\
        --activity data/activity.csv --mapping data/mapping.csv

    # List the territory managers the mapping feed knows
    activity-report roster --list --mapping data/mapping.csv

    # Export March to CSV (branch layout with achievement %)
    activity-report export --month 3 --schema branch_achievement \\
        -o output/activity_march.csv

    # Data-quality report over both feeds
    activity-report check --config report.yaml

    # Show / write the effective configuration
    activity-report config --write report.yaml
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml

from activity_report.processor.aggregate import BranchReport, HierarchyReport
from activity_report.processor.export import (
    EmptyReportError,
    export_filename,
    write_export,
)
from activity_report.processor.session import ReportSession
from activity_report.qa.validator import FeedValidator
from activity_report.schema.defaults import EXPORT_SCHEMAS
from activity_report.schema.design_system import achievement_marker
from activity_report.schema.loader import dump_config, load_config, save_config
from activity_report.schema.models import Targets


# ---------------------------------------------------------------------------
# Config and session loading
# ---------------------------------------------------------------------------

def _load_config(args):
    """Load a ReportConfig from --config, applying feed source overrides."""
    path = getattr(args, "config", None)
    if path and not Path(path).exists():
        _error(f"Config file not found: {path}")
    try:
        config = load_config(path)
    except (ValueError, yaml.YAMLError) as exc:
        _error(f"Invalid config {path}: {exc}")

    if getattr(args, "activity", None):
        config.activity_source = args.activity
    if getattr(args, "mapping", None):
        config.mapping_source = args.mapping
    return config


def _open_session(args):
    """Fetch both feeds and return a ReportSession."""
    config = _load_config(args)
    _info(f"Fetching activity feed: {config.activity_source or '(none)'}")
    if config.mapping_source:
        _info(f"Fetching mapping feed: {config.mapping_source}")
    session = ReportSession.open(config)
    if not session.has_activity:
        _warn("Activity feed is empty — reports will have no rows")
    return session


def _month_index(args):
    """Zero-based month from --month, or exit when no month was chosen."""
    month = getattr(args, "month", None)
    if month is None:
        _error("No month selected. Pass --month 1-12.")
    return month - 1


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------

def _employee_line(emp, targets: Targets, indent: str) -> str:
    visit_mark = achievement_marker(emp.visits, targets.visits)
    call_mark = achievement_marker(emp.calls, targets.calls)
    label = f"{emp.name} ({emp.code})"
    return (f"{indent}{label:<40} Visits: {emp.visits:>3}/{targets.visits} {visit_mark}"
            f"   Calls: {emp.calls:>3}/{targets.calls} {call_mark}")


def format_branch_report(report: BranchReport, targets: Targets) -> str:
    """Render a branch report as plain text."""
    lines = [f"Actual Activity Summary — {report.month_name}", ""]
    if report.is_empty:
        lines.append("No activity recorded for this month.")
        return "\n".join(lines)
    for group in report.branches:
        lines.append(group.branch.upper())
        for emp in group.employees:
            lines.append(_employee_line(emp, targets, "  "))
        lines.append("")
    return "\n".join(lines).rstrip()


def format_roster(report: HierarchyReport, targets: Targets) -> str:
    """Render a territory-manager roster as plain text."""
    lines = [f"{report.territory_manager} — {report.month_name}", ""]
    if report.is_empty:
        lines.append("No activity recorded for this roster and month.")
        return "\n".join(lines)
    for district in report.districts:
        header = f"DM: {district.district_manager or '(none)'}"
        if district.regional_manager:
            header += f"   RM: {district.regional_manager}"
        lines.append(header)
        for unit in district.units:
            lines.append(f"  UM: {unit.unit_manager or '(none)'}")
            for branch in unit.branches:
                lines.append(f"    Branch {branch.branch_code or '(none)'}")
                for emp in branch.employees:
                    lines.append(_employee_line(emp, targets, "      "))
        lines.append("")
    return "\n".join(lines).rstrip()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_summary(args):
    """Print the branch summary for a month."""
    month = _month_index(args)
    session = _open_session(args)
    report = session.branch_report(month)
    print(format_branch_report(report, session.config.targets))


def cmd_roster(args):
    """Print a territory manager's roster, or list the managers."""
    if args.list:
        session = _open_session(args)
        managers = session.territory_managers()
        if not managers:
            _warn("No territory managers found — is the mapping feed loaded?")
        for name in managers:
            print(name)
        return

    if not args.territory_manager:
        _error("No territory manager selected. Pass --territory-manager NAME "
               "or --list to see the choices.")
    month = _month_index(args)
    session = _open_session(args)
    try:
        report = session.roster(args.territory_manager, month)
    except ValueError as exc:
        _error(str(exc))
    if report.unmapped_branch_codes:
        _warn(f"{len(report.unmapped_branch_codes)} branch code(s) have no mapping row")
    print(format_roster(report, session.config.targets))


def cmd_export(args):
    """Write a month's report as CSV."""
    month = _month_index(args)
    session = _open_session(args)
    if args.territory_manager:
        try:
            report = session.roster(args.territory_manager, month)
        except ValueError as exc:
            _error(str(exc))
    else:
        report = session.branch_report(month)

    try:
        text = session.export(report, args.schema)
    except EmptyReportError:
        _error(f"No data to export for {report.month_name}. Nothing written.")
    except ValueError as exc:
        _error(str(exc))

    output = Path(args.output) if args.output else Path(export_filename(report))
    write_export(output, text)
    _info(f"Written: {output} ({report.employee_count} row(s))")


def cmd_check(args):
    """Run feed QA and print the report."""
    session = _open_session(args)
    validator = FeedValidator(session.config)
    result = validator.validate(session.feeds.activity_text, session.feeds.mapping_text)

    if args.verbose or not result.passed:
        print(result.report())
    else:
        print(result.summary())
        for category, count in sorted(result.by_category().items()):
            print(f"  {category}: {count}")
    sys.exit(0 if result.passed else 1)


def cmd_config(args):
    """Print or write the effective configuration."""
    config = _load_config(args)
    if args.write:
        save_config(config, args.write)
        _info(f"Written: {args.write}")
    else:
        print(dump_config(config), end="")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="activity-report",
        description="Monthly visit/call activity reports from the field activity log.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- summary ----
    summ = subparsers.add_parser(
        "summary",
        help="Print visits and calls per branch and employee for a month.",
    )
    _add_common_args(summ)
    _add_month_arg(summ)
    summ.set_defaults(func=cmd_summary)

    # ---- roster ----
    rost = subparsers.add_parser(
        "roster",
        help="Print a territory manager's roster by district and unit manager.",
    )
    _add_common_args(rost)
    _add_month_arg(rost)
    rost.add_argument(
        "--territory-manager",
        dest="territory_manager",
        help="Territory manager whose roster to show.",
    )
    rost.add_argument(
        "--list",
        action="store_true",
        default=False,
        help="List known territory managers and exit.",
    )
    rost.set_defaults(func=cmd_roster)

    # ---- export ----
    exp = subparsers.add_parser(
        "export",
        help="Write a month's report as CSV.",
    )
    _add_common_args(exp)
    _add_month_arg(exp)
    exp.add_argument(
        "--territory-manager",
        dest="territory_manager",
        help="Export this territory manager's roster instead of branches.",
    )
    exp.add_argument(
        "--schema",
        choices=sorted(EXPORT_SCHEMAS),
        default=None,
        help="Export column layout (default: config export_schema, "
             "or 'roster' with --territory-manager).",
    )
    exp.add_argument(
        "-o", "--output",
        help="Output CSV path (default: activity_<month>.csv).",
    )
    exp.set_defaults(func=cmd_export)

    # ---- check ----
    chk = subparsers.add_parser(
        "check",
        help="Report data-quality issues in the feeds.",
    )
    _add_common_args(chk)
    chk.set_defaults(func=cmd_check)

    # ---- config ----
    cfg = subparsers.add_parser(
        "config",
        help="Show the effective configuration as YAML.",
    )
    _add_common_args(cfg)
    cfg.add_argument(
        "--write",
        help="Write the configuration to this YAML file instead of printing it.",
    )
    cfg.set_defaults(func=cmd_config)

    return parser


def _add_common_args(parser):
    """Add config, feed source and verbosity args to a subparser."""
    parser.add_argument(
        "--config",
        help="Path to a YAML report config.",
    )
    feeds = parser.add_argument_group("feed sources")
    feeds.add_argument(
        "--activity",
        help="Activity log CSV (URL or file path); overrides the config.",
    )
    feeds.add_argument(
        "--mapping",
        help="Org mapping CSV (URL or file path); overrides the config.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Show progress logging and full QA detail.",
    )


def _add_month_arg(parser):
    """Add --month (1-12).  No default: a month must be chosen."""
    parser.add_argument(
        "--month",
        type=int,
        choices=range(1, 13),
        metavar="1-12",
        help="Report month (1 = January).",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
