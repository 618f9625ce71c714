"""Persistence ports used by the engine, with in-memory implementations."""

from __future__ import annotations

from dataclasses import replace
from itertools import count
from typing import Any, Protocol

from .models import Article, ScanHistoryEntry


class ArticleStore(Protocol):
    """Persistence port for the articles of one inventory."""

    def load_all(self) -> list[Article]:
        """Return every stored article."""

    def save(self, article: Article) -> int:
        """Store a new article and return its assigned id."""

    def update(self, article_id: int, fields: dict[str, Any]) -> None:
        """Overwrite the given fields of a stored article."""

    def clear_all(self) -> None:
        """Delete every stored article."""


class HistoryStore(Protocol):
    """Persistence port for the scan history log."""

    def append(self, entry: ScanHistoryEntry) -> int:
        """Store a history entry and return its assigned id."""

    def most_recent_first(self) -> list[ScanHistoryEntry]:
        """Return all entries, most recent first."""

    def remove(self, entry_id: int) -> None:
        """Delete one entry by id."""

    def clear_all(self) -> None:
        """Delete every entry."""


class InMemoryArticleStore:
    """Article store backed by a dict, assigning sequential ids on save."""

    def __init__(self) -> None:
        """Start empty with ids counting from 1."""

        self._articles: dict[int, Article] = {}
        self._ids = count(1)

    def load_all(self) -> list[Article]:
        """Return all stored articles in save order."""

        return list(self._articles.values())

    def save(self, article: Article) -> int:
        """Store `article` under the next sequential id."""

        article_id = next(self._ids)
        self._articles[article_id] = replace(article, id=article_id)
        return article_id

    def update(self, article_id: int, fields: dict[str, Any]) -> None:
        """Replace fields of a stored article; KeyError for unknown ids."""

        if article_id not in self._articles:
            raise KeyError(f"Unknown article id: {article_id}")
        self._articles[article_id] = replace(self._articles[article_id], **fields)

    def clear_all(self) -> None:
        """Drop all stored articles; ids keep counting."""

        self._articles.clear()


class InMemoryHistoryStore:
    """History store keeping entries in insertion order."""

    def __init__(self) -> None:
        """Start empty with ids counting from 1."""

        self._entries: list[ScanHistoryEntry] = []
        self._ids = count(1)

    def append(self, entry: ScanHistoryEntry) -> int:
        """Store `entry` under the next sequential id."""

        entry_id = next(self._ids)
        self._entries.append(replace(entry, id=entry_id))
        return entry_id

    def most_recent_first(self) -> list[ScanHistoryEntry]:
        """Return entries newest first."""

        return list(reversed(self._entries))

    def remove(self, entry_id: int) -> None:
        """Delete one entry; KeyError for unknown ids."""

        remaining = [entry for entry in self._entries if entry.id != entry_id]
        if len(remaining) == len(self._entries):
            raise KeyError(f"Unknown history entry id: {entry_id}")
        self._entries = remaining

    def clear_all(self) -> None:
        """Drop all entries; ids keep counting."""

        self._entries.clear()
