"""Core typed models shared by decoding, matching and reconciliation modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, TypeAlias

ArticleStatus: TypeAlias = Literal["complete", "partial", "missing", "open"]
ARTICLE_STATUSES: tuple[ArticleStatus, ...] = ("complete", "partial", "missing", "open")


@dataclass(frozen=True, slots=True)
class DataIssue:
    """Structured data-quality issue emitted during decoding or import."""

    code: str
    message: str
    field: str | None = None


@dataclass(slots=True)
class Article:
    """One line of the target inventory.

    `gueltige_zaehlung`, `abweichung` and `auto_kommentar` are derived fields.
    They are only ever written by `reconcile.recompute`.
    """

    materialnummer: str
    soll: int = 0
    sparte: str = ""
    materialbezeichnung: str = ""
    charge: str = ""
    ist_scan: int = 0
    manuelle_zaehlung: int = 0
    gueltige_zaehlung: int = 0
    abweichung: int = 0
    spalte1: str = ""
    auto_kommentar: str = ""
    serialnummer: str = ""
    kommentar_sales: str = ""
    kommentar_scm: str = ""
    id: int | None = None


@dataclass(slots=True)
class ScanResult:
    """Structured identity and expiry fields decoded from one barcode payload."""

    raw_data: str
    ref: str = ""
    lot: str = ""
    gtin: str = ""
    expiry_date: date | None = None
    serial_number: str | None = None
    issues: list[DataIssue] = field(default_factory=list)

    @property
    def has_identity(self) -> bool:
        """Return whether at least one identifying field was decoded."""

        return bool(self.lot or self.ref or self.gtin)


@dataclass(frozen=True, slots=True)
class ScanHistoryEntry:
    """Append-only record of one applied scan."""

    inventory_id: int
    article_id: int
    timestamp: datetime
    scan: ScanResult
    id: int | None = None


@dataclass(frozen=True, slots=True)
class Statistics:
    """Per-status tally of an article collection."""

    total: int = 0
    complete: int = 0
    partial: int = 0
    missing: int = 0
    open: int = 0
    total_duration: float | None = None
    average_scan_time: float | None = None

    @property
    def progress_percent(self) -> int:
        """Return the rounded share of complete articles, 0 for an empty set."""

        if self.total == 0:
            return 0
        return int(self.complete * 100 / self.total + 0.5)
