"""Schema-aware bulk import of article rows and JSON backups.

Rows arrive already read from a tabular source (one mapping per row, keyed by
the source's header names). This module only maps and normalizes them.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field

from .models import Article, DataIssue
from .normalize import normalize_text, parse_count
from .reconcile import recompute

_TEXT_FIELDS = (
    "sparte",
    "materialnummer",
    "materialbezeichnung",
    "charge",
    "spalte1",
    "serialnummer",
    "kommentar_sales",
    "kommentar_scm",
)
_REQUIRED_FIELDS = frozenset({"materialnummer", "soll"})


@dataclass(frozen=True, slots=True)
class SchemaDefinition:
    """Defines how an input schema maps source columns to article fields."""

    name: str
    column_map: dict[str, str]
    reset_scans: bool

    def normalized_columns(self) -> dict[str, str]:
        """Return article field by normalized source header."""

        return {_normalize_header(header): article_field for article_field, header in self.column_map.items()}


_SCHEMAS = (
    SchemaDefinition(
        name="export_columns",
        column_map={
            "sparte": "Sparte",
            "materialnummer": "Materialnummer",
            "materialbezeichnung": "Materialbezeichnung",
            "soll": "SOLL",
            "charge": "Charge",
            "ist_scan": "IST Scan",
            "manuelle_zaehlung": "Manuelle Zählung",
            "spalte1": "Spalte1",
            "serialnummer": "Serialnummer(n)",
            "kommentar_sales": "Kommentar Sales",
            "kommentar_scm": "Kommentar SCM",
        },
        reset_scans=True,
    ),
    SchemaDefinition(
        name="backup_fields",
        column_map={
            name: name
            for name in (
                *_TEXT_FIELDS,
                "soll",
                "ist_scan",
                "manuelle_zaehlung",
                "id",
            )
        },
        reset_scans=False,
    ),
)


@dataclass(frozen=True, slots=True)
class RowIssue:
    """Data-quality issue tied to one source row."""

    source_row: int
    issue: DataIssue


@dataclass(slots=True)
class ImportResult:
    """Articles built from one tabular source plus their quality issues."""

    source: str
    schema_name: str
    articles: list[Article]
    row_issues: list[RowIssue] = field(default_factory=list)
    file_issues: list[DataIssue] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        """Return the number of imported, non-skipped rows."""

        return len(self.articles)

    @property
    def rows_with_issues(self) -> int:
        """Return the number of distinct source rows with one or more issues."""

        return len({item.source_row for item in self.row_issues})


def _normalize_header(header: str | None) -> str:
    """Normalize header names so schema matching is resilient to formatting."""

    if header is None:
        return ""
    return " ".join(header.split()).casefold()


def get_schema(name: str) -> SchemaDefinition:
    for schema in _SCHEMAS:
        if schema.name == name:
            return schema
    raise ValueError(f"Unsupported import schema: {name}")


def detect_schema(headers: Sequence[str | None] | None) -> SchemaDefinition:
    """Return the schema that recognizes the most headers.

    Extra, unknown columns are tolerated. The required article fields must be
    present, otherwise the input is rejected instead of guessing a mapping.
    """

    if not headers:
        raise ValueError("Input has no header row")

    normalized = {_normalize_header(header) for header in headers}
    best: SchemaDefinition | None = None
    best_score = 0
    for schema in _SCHEMAS:
        columns = schema.normalized_columns()
        mapped = {columns[header] for header in normalized if header in columns}
        if not _REQUIRED_FIELDS <= mapped:
            continue
        if len(mapped) > best_score:
            best, best_score = schema, len(mapped)

    if best is None:
        sorted_fields = ", ".join(sorted(header for header in normalized if header))
        raise ValueError(f"Unrecognized article columns: {sorted_fields}")
    return best


def _is_blank_row(raw_row: Mapping[str, object]) -> bool:
    """Return True when every value in a row is empty."""

    return all(value is None or str(value).strip() == "" for value in raw_row.values())


def _to_article(
    values: Mapping[str, object],
    *,
    schema: SchemaDefinition,
    line_number: int,
) -> tuple[Article, list[RowIssue]]:
    """Convert one mapped row into a recomputed article with its issues."""

    issues: list[DataIssue] = []
    text: dict[str, str] = {}
    for name in _TEXT_FIELDS:
        text[name], text_issues = normalize_text(values.get(name), field=name)
        issues.extend(text_issues)

    soll, soll_issues = parse_count(values.get("soll"), field="soll", required=True)
    manuelle_zaehlung, manual_issues = parse_count(values.get("manuelle_zaehlung"), field="manuelle_zaehlung")
    issues.extend(soll_issues)
    issues.extend(manual_issues)

    ist_scan = 0
    if not schema.reset_scans:
        ist_scan, scan_issues = parse_count(values.get("ist_scan"), field="ist_scan")
        issues.extend(scan_issues)

    article_id = values.get("id")
    article = recompute(
        Article(
            id=article_id if isinstance(article_id, int) and not isinstance(article_id, bool) else None,
            soll=soll,
            ist_scan=ist_scan,
            manuelle_zaehlung=manuelle_zaehlung,
            **text,
        )
    )
    return article, [RowIssue(source_row=line_number, issue=issue) for issue in issues]


def build_articles(
    headers: Sequence[str],
    rows: Iterable[Mapping[str, object]],
    *,
    source: str = "",
    schema: SchemaDefinition | None = None,
) -> ImportResult:
    """Build articles from header-keyed rows.

    Spreadsheet-style imports reset the scan count to 0 and keep the manual
    count; backup restores keep both. Derived fields are always recomputed.
    """

    schema = schema or detect_schema(headers)
    columns = schema.normalized_columns()
    header_to_field = {
        header: columns[_normalize_header(header)] for header in headers if _normalize_header(header) in columns
    }

    articles: list[Article] = []
    row_issues: list[RowIssue] = []
    file_issues: list[DataIssue] = []

    # Line 1 is the header row.
    for line_number, raw_row in enumerate(rows, start=2):
        if _is_blank_row(raw_row):
            file_issues.append(
                DataIssue(code="blank_row_skipped", message=f"Row {line_number} is blank and was skipped")
            )
            continue

        values = {article_field: raw_row.get(header) for header, article_field in header_to_field.items()}
        materialnummer, _ = normalize_text(values.get("materialnummer"), field="materialnummer")
        if not materialnummer:
            file_issues.append(
                DataIssue(
                    code="missing_materialnummer_skipped",
                    message=f"Row {line_number} has no Materialnummer and was skipped",
                    field="materialnummer",
                )
            )
            continue

        article, issues = _to_article(values, schema=schema, line_number=line_number)
        articles.append(article)
        row_issues.extend(issues)

    return ImportResult(
        source=source,
        schema_name=schema.name,
        articles=articles,
        row_issues=row_issues,
        file_issues=file_issues,
    )


def dump_backup(articles: Iterable[Article]) -> str:
    """Serialize articles, including their current counts, to a JSON backup."""

    return json.dumps([asdict(article) for article in articles], indent=2, ensure_ascii=False) + "\n"


def load_backup(text: str, *, source: str = "backup") -> ImportResult:
    """Restore articles from a JSON backup produced by `dump_backup`."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Backup is not valid JSON: {exc}") from exc
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValueError("Backup must be a JSON list of article objects")

    schema = get_schema("backup_fields")
    headers = list(schema.column_map.values())
    return build_articles(headers, payload, source=source, schema=schema)
