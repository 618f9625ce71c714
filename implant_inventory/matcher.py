"""Resolve decoded scans to inventory articles."""

from __future__ import annotations

from collections.abc import Iterable

from .errors import MatchError
from .models import Article, ScanResult


def find_by_lot(articles: Iterable[Article], lot: str) -> Article | None:
    """Return the first article whose LOT (charge) equals `lot`."""

    if not lot:
        return None
    return next((article for article in articles if article.charge == lot), None)


def find_by_ref(articles: Iterable[Article], ref: str) -> Article | None:
    """Return the first article whose REF (materialnummer) equals `ref`."""

    if not ref:
        return None
    return next((article for article in articles if article.materialnummer == ref), None)


def match_article(result: ScanResult, articles: list[Article]) -> Article | None:
    """Match a scan to an article by LOT first, then by REF.

    LOT identifies one production batch, while a REF is shared by every unit
    of a catalog item, so a LOT hit always wins over a REF hit.
    """

    by_lot = find_by_lot(articles, result.lot)
    if by_lot is not None:
        return by_lot
    return find_by_ref(articles, result.ref)


def resolve_article(result: ScanResult, articles: list[Article]) -> Article | MatchError:
    """Return the matching article or a `MatchError` naming the scanned identity."""

    article = match_article(result, articles)
    if article is None:
        return MatchError(
            code="article_not_found",
            message="Article not in list",
            lot=result.lot,
            ref=result.ref,
        )
    return article
