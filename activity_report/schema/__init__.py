"""Report schema package — typed models for feeds, targets and exports.

Provides the contract between ingestion, aggregation and export:

- models.py: Core dataclasses (FeedLayout, FieldSpec, Targets, SpecialCaseRule, etc.)
- design_system.py: Value formatting functions (counts, achievement %)
- defaults.py: Built-in feed layouts, export schemas and default config
- loader.py: YAML serialization/deserialization
"""

from .defaults import (
    default_config,
    get_export_schema,
    get_layout,
)
from .design_system import (
    achievement_pct,
    format_achievement,
    format_count,
    format_value,
    is_achieved,
)
from .loader import dump_config, load_config, save_config
from .models import (
    ColumnType,
    ExportColumn,
    ExportSchema,
    FeedKind,
    FeedLayout,
    FieldSpec,
    ReportConfig,
    SpecialCaseRule,
    Targets,
)

__all__ = [
    # Models
    "ColumnType",
    "ExportColumn",
    "ExportSchema",
    "FeedKind",
    "FeedLayout",
    "FieldSpec",
    "ReportConfig",
    "SpecialCaseRule",
    "Targets",
    # Built-ins
    "default_config",
    "get_export_schema",
    "get_layout",
    # Loader
    "dump_config",
    "load_config",
    "save_config",
    # Formatting
    "achievement_pct",
    "format_achievement",
    "format_count",
    "format_value",
    "is_achieved",
]
