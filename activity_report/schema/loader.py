"""Config loader — YAML serialization and deserialization for ReportConfig.

Provides round-trip save/load so feed layouts, targets and special-case
rules can be reviewed, version-controlled and edited as YAML.  Keys missing
from a file fall back to :func:`default_config`.
"""

from pathlib import Path

import yaml

from .defaults import default_config
from .models import ReportConfig


def save_config(config: ReportConfig, path: str | Path) -> None:
    """Serialize a ReportConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dump_config(config))


def dump_config(config: ReportConfig) -> str:
    """Serialize a ReportConfig to a YAML string."""
    return yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False,
                     allow_unicode=True, width=120)


def load_config(path: str | Path | None = None) -> ReportConfig:
    """Deserialize a ReportConfig from a YAML file, layered over defaults."""
    if path is None:
        return default_config()
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    merged = default_config().to_dict()
    merged.update(data)
    return ReportConfig.from_dict(merged)
