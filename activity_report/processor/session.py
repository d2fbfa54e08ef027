"""Report session — one load of both feeds, many aggregations.

Sits between ingestion and the CLI.  The feeds are fetched once when the
session is opened; every month or roster selection afterwards is a fresh,
synchronous aggregation over the same records.

Usage::

    from activity_report.processor.session import ReportSession
    from activity_report.schema.loader import load_config

    session = ReportSession.open(load_config("report.yaml"))
    report = session.branch_report(month=2)
    csv_text = session.export(report)
"""

import logging

from ..schema.models import ExportSchema, ReportConfig
from .aggregate import BranchReport, HierarchyReport, aggregate_by_branch, aggregate_roster
from .export import export_csv
from .hierarchy import HierarchyResolver
from .ingestion import FeedData, load_feeds

logger = logging.getLogger(__name__)


class ReportSession:
    """Loaded feeds plus the operations a report user can trigger.

    Args:
        config: The ReportConfig the feeds were loaded with.
        feeds: Fetched and normalized feed data.
    """

    def __init__(self, config: ReportConfig, feeds: FeedData):
        self.config = config
        self.feeds = feeds
        self.resolver = HierarchyResolver(feeds.mapping, config.special_cases)

    @classmethod
    def open(cls, config: ReportConfig) -> "ReportSession":
        """Fetch both feeds and start a session."""
        return cls(config, load_feeds(config))

    @property
    def has_activity(self) -> bool:
        return bool(self.feeds.activity)

    def territory_managers(self) -> list[str]:
        return self.resolver.territory_managers()

    def branch_report(self, month: int) -> BranchReport:
        """Branch/employee counts for a zero-based month."""
        report = aggregate_by_branch(self.feeds.activity, month)
        logger.info("%s: %d branch(es), %d employee(s)",
                    report.month_name, len(report.branches), report.employee_count)
        return report

    def roster(self, territory_manager: str, month: int) -> HierarchyReport:
        """Hierarchy roster of one territory manager for a zero-based month.

        Raises:
            ValueError: If the territory manager is unknown.
        """
        known = self.territory_managers()
        if territory_manager not in known:
            raise ValueError(
                f"Unknown territory manager '{territory_manager}'. "
                f"Known: {', '.join(known) or '(none - is the mapping feed loaded?)'}"
            )
        report = aggregate_roster(self.feeds.activity, self.resolver, territory_manager, month)
        if report.unmapped_branch_codes:
            logger.info("%d branch code(s) have no mapping row: %s",
                        len(report.unmapped_branch_codes),
                        ", ".join(report.unmapped_branch_codes))
        return report

    def export(self, report: BranchReport | HierarchyReport,
               schema: ExportSchema | str | None = None) -> str:
        """CSV text for a report produced by this session."""
        if schema is None and isinstance(report, BranchReport):
            schema = self.config.export_schema
        return export_csv(report, self.config.targets, schema)
