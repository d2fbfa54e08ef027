"""Feed ingestion module for the activity report.

Handles fetching, splitting and normalizing the two delimited feeds:
- Activity log (published spreadsheet CSV): one row per visit or call
- Org mapping (published spreadsheet CSV): branch -> manager hierarchy

Both feeds are fetched once per session, in parallel.  A feed that cannot
be fetched is logged and treated as empty so the rest of the report still
loads.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import requests

from ..schema.defaults import MISSING
from ..schema.models import FeedKind, FeedLayout, ReportConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActivityRecord:
    """One row of the activity feed, normalized."""
    date: str
    branch_name: str
    employee_name: str
    employee_code: str
    activity_type: str
    branch_code: str = ""

    @property
    def has_code(self) -> bool:
        return bool(self.employee_code) and self.employee_code != MISSING


@dataclass(frozen=True)
class MappingRecord:
    """One row of the organisational mapping feed, normalized."""
    branch_code: str = ""
    unit_manager: str = ""
    district_manager: str = ""
    regional_manager: str = ""
    territory_manager: str = ""
    special_case_code: str = ""
    special_case_unit_manager: str = ""


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------

def _strip_quotes(cell: str, quote: str = '"') -> str:
    """Drop one leading and one trailing quote, then trim whitespace."""
    if cell.startswith(quote):
        cell = cell[1:]
    if cell.endswith(quote):
        cell = cell[:-1]
    return cell.strip()


def split_line(line: str, delimiter: str = ",", quote: str = '"') -> list[str]:
    """Split one line on *delimiter*, ignoring delimiters inside quotes.

    A delimiter only splits when an even number of quote characters precede
    it on the line.  Quote characters are kept in the raw cell; use
    :func:`parse_rows` for cleaned cells.

    Examples:
        'a,"b,c",d'   -> ['a', '"b,c"', 'd']
        'a,,b'        -> ['a', '', 'b']
    """
    cells = []
    current = []
    in_quotes = False
    for ch in line:
        if ch == quote:
            in_quotes = not in_quotes
            current.append(ch)
        elif ch == delimiter and not in_quotes:
            cells.append("".join(current))
            current = []
        else:
            current.append(ch)
    cells.append("".join(current))
    return cells


def _lines(text: str) -> list[str]:
    text = text.strip()
    if not text:
        return []
    # CRLF feeds: the \r must go before quotes are stripped from the last cell
    return [line.rstrip("\r") for line in text.split("\n")]


def parse_rows(text: str, delimiter: str = ",", quote: str = '"',
               skip_header: bool = True) -> list[list[str]]:
    """Parse raw feed text into rows of cleaned string cells.

    The first line is treated as a header and discarded unless
    *skip_header* is False.  Rows keep whatever width the line produced;
    consumers index by position and fall back to defaults.
    """
    lines = _lines(text)
    if skip_header:
        lines = lines[1:]
    return [
        [_strip_quotes(cell, quote) for cell in split_line(line, delimiter, quote)]
        for line in lines
    ]


def read_header(text: str, delimiter: str = ",", quote: str = '"') -> list[str]:
    """Return the cleaned header cells of a feed (empty list for no text)."""
    lines = _lines(text)
    if not lines:
        return []
    return [_strip_quotes(cell, quote) for cell in split_line(lines[0], delimiter, quote)]


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize_code(value) -> str:
    """Canonical identifier form: trimmed and upper-cased."""
    if value is None:
        return ""
    return str(value).strip().upper()


def _field_values(row: list[str], layout: FeedLayout) -> dict[str, str]:
    values = {}
    for name, spec in layout.fields.items():
        raw = row[spec.column] if spec.column < len(row) else ""
        if spec.identifier:
            raw = normalize_code(raw)
        values[name] = raw or spec.default
    return values


def normalize_activity(rows: list[list[str]], layout: FeedLayout) -> list[ActivityRecord]:
    """Map positional activity rows to ActivityRecords."""
    if layout.kind is not FeedKind.ACTIVITY:
        raise ValueError(f"Layout '{layout.name}' is not an activity layout")
    records = []
    for row in rows:
        values = _field_values(row, layout)
        records.append(ActivityRecord(
            date=values.get("date", ""),
            branch_name=values.get("branch_name", ""),
            employee_name=values.get("employee_name", ""),
            employee_code=values.get("employee_code", MISSING),
            activity_type=values.get("activity_type", ""),
            branch_code=values.get("branch_code", ""),
        ))
    return records


def normalize_mapping(rows: list[list[str]], layout: FeedLayout) -> list[MappingRecord]:
    """Map positional mapping rows to MappingRecords."""
    if layout.kind is not FeedKind.MAPPING:
        raise ValueError(f"Layout '{layout.name}' is not a mapping layout")
    return [MappingRecord(**_field_values(row, layout)) for row in rows]


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def read_source(source: str, timeout: float = 30.0) -> str:
    """Read feed text from a URL or a local file path.

    Raises:
        requests.RequestException: on HTTP failure.
        OSError: if a local file cannot be read.
    """
    if _is_url(source):
        response = requests.get(source, timeout=timeout)
        response.raise_for_status()
        # Published sheets omit the charset; requests would guess latin-1.
        return response.content.decode("utf-8-sig", errors="replace")
    return Path(source).read_text(encoding="utf-8-sig")


def fetch_text(source: str, timeout: float = 30.0) -> str:
    """Read feed text, degrading any failure to an empty feed."""
    if not source:
        logger.info("No source configured; using an empty feed")
        return ""
    try:
        text = read_source(source, timeout=timeout)
    except (requests.RequestException, OSError) as exc:
        logger.warning("Failed to fetch %s: %s", source, exc)
        return ""
    logger.info("Fetched %s (%d bytes)", source, len(text))
    return text


@dataclass
class FeedData:
    """Raw text and normalized records of both feeds for one session."""
    activity_text: str = ""
    mapping_text: str = ""
    activity: list[ActivityRecord] = field(default_factory=list)
    mapping: list[MappingRecord] = field(default_factory=list)

    @property
    def has_mapping(self) -> bool:
        return bool(self.mapping)


def ingest_activity(text: str, layout: FeedLayout) -> list[ActivityRecord]:
    """Parse and normalize activity feed text."""
    return normalize_activity(parse_rows(text, delimiter=layout.delimiter), layout)


def ingest_mapping(text: str, layout: FeedLayout) -> list[MappingRecord]:
    """Parse and normalize mapping feed text."""
    return normalize_mapping(parse_rows(text, delimiter=layout.delimiter), layout)


def load_feeds(config: ReportConfig) -> FeedData:
    """Fetch both feeds concurrently and normalize them.

    The two fetches have no ordering dependency.  Either may come back
    empty; the mapping feed is skipped entirely when the config has no
    mapping layout.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        activity_future = pool.submit(fetch_text, config.activity_source, config.timeout_seconds)
        mapping_future = pool.submit(fetch_text, config.mapping_source, config.timeout_seconds)
        activity_text = activity_future.result()
        mapping_text = mapping_future.result()

    data = FeedData(activity_text=activity_text, mapping_text=mapping_text)
    if config.activity_layout is not None:
        data.activity = ingest_activity(activity_text, config.activity_layout)
    if config.mapping_layout is not None:
        data.mapping = ingest_mapping(mapping_text, config.mapping_layout)
    logger.info("Loaded %d activity row(s), %d mapping row(s)",
                len(data.activity), len(data.mapping))
    return data


# ---------------------------------------------------------------------------
# Source type registry
# ---------------------------------------------------------------------------

SOURCE_TYPES = {
    "activity": ingest_activity,
    "mapping": ingest_mapping,
}


def ingest(text: str, source_type: str, layout: FeedLayout):
    """Ingest feed text by source type.

    Raises:
        ValueError: If source_type is not recognized.
    """
    if source_type not in SOURCE_TYPES:
        raise ValueError(
            f"Unknown source type '{source_type}'. "
            f"Valid types: {', '.join(sorted(SOURCE_TYPES))}"
        )
    return SOURCE_TYPES[source_type](text, layout)
