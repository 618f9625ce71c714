"""Search and filter helpers over the article list."""

from __future__ import annotations

from collections.abc import Iterable

from .models import ARTICLE_STATUSES, Article, ArticleStatus
from .reconcile import classify_status


def _matches_query(article: Article, query: str) -> bool:
    needle = query.casefold()
    haystack = (article.materialnummer, article.materialbezeichnung, article.charge, article.sparte)
    return any(needle in value.casefold() for value in haystack)


def filter_articles(
    articles: Iterable[Article],
    *,
    query: str | None = None,
    status: ArticleStatus | None = None,
    sparte: str | None = None,
) -> list[Article]:
    """Return articles matching every given criterion, in their original order.

    `query` is a case-insensitive substring search over REF, description, LOT
    and category. `status` is evaluated fresh with `classify_status`.
    """

    if status is not None and status not in ARTICLE_STATUSES:
        raise ValueError(f"Unsupported article status: {status}")

    selected: list[Article] = []
    for article in articles:
        if query and not _matches_query(article, query):
            continue
        if status is not None and classify_status(article) != status:
            continue
        if sparte is not None and article.sparte != sparte:
            continue
        selected.append(article)
    return selected


def list_sparten(articles: Iterable[Article]) -> list[str]:
    """Return the sorted, de-duplicated categories present in the article list."""

    return sorted({article.sparte for article in articles})
