"""Pure reconciliation operations over single articles and the scan history.

Every operation that changes `ist_scan`, `manuelle_zaehlung` or `soll` returns
an article that has already been passed through `recompute`, so callers never
see derived fields that disagree with the counters.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Literal, TypeAlias

from .errors import UndoError, ValidationError
from .expiry import expires_soon, is_expired
from .models import Article, ArticleStatus, ScanHistoryEntry, ScanResult

Advisory: TypeAlias = Literal["overstock", "expired", "expires_soon"]
CommentField: TypeAlias = Literal["kommentar_sales", "kommentar_scm", "spalte1"]

COMMENT_FIELDS: frozenset[str] = frozenset({"kommentar_sales", "kommentar_scm", "spalte1"})


def generate_auto_comment(article: Article) -> str:
    """Return the system annotation for the article's current deviation."""

    if article.abweichung > 0:
        return f"FEHLBESTAND: {article.abweichung} Stück fehlen"
    if article.abweichung < 0:
        return f"ÜBERBESTAND: {abs(article.abweichung)} Stück zu viel"
    if article.gueltige_zaehlung == article.soll and article.soll > 0:
        return "✓ Vollständig"
    return ""


def recompute(article: Article) -> Article:
    """Return a copy of the article with all derived fields re-derived."""

    gueltige_zaehlung = article.ist_scan + article.manuelle_zaehlung
    updated = replace(
        article,
        gueltige_zaehlung=gueltige_zaehlung,
        abweichung=article.soll - gueltige_zaehlung,
    )
    updated.auto_kommentar = generate_auto_comment(updated)
    return updated


def classify_status(article: Article) -> ArticleStatus:
    """Classify an article; the first matching rule wins.

    Articles with `soll == 0` and no scans stay `open`, the same as articles
    that have not been touched yet.
    """

    if article.abweichung == 0 and article.soll > 0:
        return "complete"
    if article.ist_scan > 0 and article.abweichung != 0:
        return "partial"
    if article.ist_scan == 0 and article.abweichung > 0:
        return "missing"
    return "open"


def apply_scan(article: Article) -> Article:
    """Count one scanned unit for the article."""

    return recompute(replace(article, ist_scan=article.ist_scan + 1))


def scan_advisories(
    article: Article,
    scan: ScanResult | None = None,
    *,
    today: date | None = None,
) -> list[Advisory]:
    """Return caller-visible warnings for an article after a scan was applied.

    Advisories never block the count; the scan is recorded regardless.
    """

    advisories: list[Advisory] = []
    if scan is not None and scan.expiry_date is not None:
        if is_expired(scan.expiry_date, today=today):
            advisories.append("expired")
        elif expires_soon(scan.expiry_date, today=today):
            advisories.append("expires_soon")
    if article.gueltige_zaehlung > article.soll:
        advisories.append("overstock")
    return advisories


def apply_manual(article: Article, new_count: int) -> Article | ValidationError:
    """Set the manual count to an absolute, non-negative value."""

    if isinstance(new_count, bool) or not isinstance(new_count, int):
        return ValidationError(
            code="invalid_count",
            message=f"Manual count must be a whole number: {new_count!r}",
            field="manuelle_zaehlung",
        )
    if new_count < 0:
        return ValidationError(
            code="negative_count",
            message=f"Manual count must not be negative: {new_count}",
            field="manuelle_zaehlung",
        )
    return recompute(replace(article, manuelle_zaehlung=new_count))


def set_comment(article: Article, field: str, text: str) -> Article | ValidationError:
    """Set one of the free-text annotation fields of an article."""

    if field not in COMMENT_FIELDS:
        return ValidationError(
            code="unknown_comment_field",
            message=f"Not an editable comment field: {field}",
            field=field,
        )
    return replace(article, **{field: text})


def undo_last_scan(
    history: list[ScanHistoryEntry],
    articles: list[Article],
) -> tuple[Article, list[ScanHistoryEntry]] | UndoError:
    """Reverse the most recent scan.

    `history` is ordered most recent first. On success the consumed entry is
    dropped from the returned history; the article's scan count is only
    decremented while it is above zero. Nothing changes on failure.
    """

    if not history:
        return UndoError(code="no_scans_to_undo", message="No scans to undo")

    last_entry = history[0]
    article = next((item for item in articles if item.id == last_entry.article_id), None)
    if article is None:
        return UndoError(
            code="article_not_found",
            message=f"Article {last_entry.article_id} referenced by the last scan no longer exists",
        )

    if article.ist_scan > 0:
        article = recompute(replace(article, ist_scan=article.ist_scan - 1))
    return article, history[1:]
