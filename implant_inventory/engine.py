"""Stateful reconciliation engine owning the article list and scan history.

The engine processes one operation to completion before the next is accepted.
Callers guarantee that no second scan is in flight (see `ScanGate`). Each
mutating operation either completes fully (mutation, recompute, history
append and store writes) or leaves the engine state untouched.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from . import reconcile
from .errors import DecodeError, MatchError, UndoError, ValidationError
from .gs1 import decode_payload
from .matcher import resolve_article
from .models import Article, ScanHistoryEntry, ScanResult, Statistics
from .reconcile import Advisory
from .stats import aggregate
from .stores import ArticleStore, HistoryStore

log = logging.getLogger(__name__)

RESULT_DISPLAY_SECONDS = 3.0
DEFAULT_INVENTORY_ID = 1

Clock = Callable[[], datetime]

_COUNTING_FIELDS = ("ist_scan", "manuelle_zaehlung", "gueltige_zaehlung", "abweichung", "auto_kommentar")


@dataclass(slots=True)
class ScanOutcome:
    """Result of feeding one raw payload through decode, match and count."""

    raw_data: str
    scan: ScanResult | None = None
    article: Article | None = None
    entry: ScanHistoryEntry | None = None
    advisories: list[Advisory] = field(default_factory=list)
    error: DecodeError | MatchError | None = None

    @property
    def ok(self) -> bool:
        """Whether the payload was counted against an article."""

        return self.error is None


class ScanGate:
    """Busy flag that keeps a single scan in flight.

    After a scan starts, its result stays on display and new scans are refused
    until the caller dismisses it or the display timeout elapses.
    """

    def __init__(
        self,
        display_seconds: float = RESULT_DISPLAY_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._display_seconds = display_seconds
        self._monotonic = monotonic
        self._started_at: float | None = None

    @property
    def busy(self) -> bool:
        """Whether a result is still on display; clears itself after the timeout."""

        if self._started_at is None:
            return False
        if self._monotonic() - self._started_at >= self._display_seconds:
            self._started_at = None
            return False
        return True

    def try_begin(self) -> bool:
        """Claim the gate for a new scan; False while a result is still shown."""

        if self.busy:
            return False
        self._started_at = self._monotonic()
        return True

    def dismiss(self) -> None:
        """Release the gate before the display timeout elapses."""

        self._started_at = None


class ReconciliationEngine:
    """Owns the article collection and scan history of one inventory session."""

    def __init__(
        self,
        *,
        inventory_id: int = DEFAULT_INVENTORY_ID,
        article_store: ArticleStore | None = None,
        history_store: HistoryStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.inventory_id = inventory_id
        self._article_store = article_store
        self._history_store = history_store
        self._clock: Clock = clock or datetime.now
        self._articles: list[Article] = []
        # Most recent entry first.
        self._history: list[ScanHistoryEntry] = []

    @classmethod
    def from_stores(
        cls,
        article_store: ArticleStore,
        history_store: HistoryStore,
        *,
        inventory_id: int = DEFAULT_INVENTORY_ID,
        clock: Clock | None = None,
    ) -> ReconciliationEngine:
        """Build an engine from previously persisted articles and history."""

        engine = cls(
            inventory_id=inventory_id,
            article_store=article_store,
            history_store=history_store,
            clock=clock,
        )
        engine._articles = [reconcile.recompute(article) for article in article_store.load_all()]
        engine._history = [
            entry for entry in history_store.most_recent_first() if entry.inventory_id == inventory_id
        ]
        return engine

    @property
    def articles(self) -> list[Article]:
        """Snapshot of the current articles, in import order."""

        return list(self._articles)

    def history_most_recent_first(self) -> list[ScanHistoryEntry]:
        """Snapshot of this inventory's scan history, most recent entry first."""

        return list(self._history)

    def get_article(self, article_id: int) -> Article | None:
        """Return the article with `article_id`, or None when it is not loaded."""

        return next((article for article in self._articles if article.id == article_id), None)

    def load_articles(self, articles: Iterable[Article]) -> list[Article]:
        """Replace the article collection with a fresh bulk import.

        Previous articles and scan history are cleared. Articles get their id
        from the article store when one is configured. Otherwise an article
        keeps its own id unless it is missing or already taken by an earlier
        article, in which case it gets the next free one.
        """

        if self._article_store is not None:
            self._article_store.clear_all()
        if self._history_store is not None:
            self._history_store.clear_all()

        incoming = [reconcile.recompute(article) for article in articles]
        next_id = max((article.id for article in incoming if article.id is not None), default=0) + 1

        loaded: list[Article] = []
        seen_ids: set[int] = set()
        for article in incoming:
            if self._article_store is not None:
                article = replace(article, id=self._article_store.save(article))
            elif article.id is None or article.id in seen_ids:
                if article.id is not None:
                    log.warning(
                        "Duplicate article id %d for %s; reassigned to %d",
                        article.id,
                        article.materialnummer,
                        next_id,
                    )
                article = replace(article, id=next_id)
                next_id += 1
            seen_ids.add(article.id)
            loaded.append(article)

        self._articles = loaded
        self._history = []
        log.info("Loaded %d articles into inventory %d", len(loaded), self.inventory_id)
        return list(loaded)

    def process_scan(self, raw: str) -> ScanOutcome:
        """Decode a raw payload, match it to an article and count it."""

        decoded = decode_payload(raw, today=self._clock().date())
        if isinstance(decoded, DecodeError):
            log.warning("Scan rejected: %s", decoded.message)
            return ScanOutcome(raw_data=raw, error=decoded)

        matched = resolve_article(decoded, self._articles)
        if isinstance(matched, MatchError):
            log.warning("Scan not in list: lot=%r ref=%r", decoded.lot, decoded.ref)
            return ScanOutcome(raw_data=raw, scan=decoded, error=matched)

        return self._record_scan(matched, decoded)

    def apply_scan(self, article_id: int, scan: ScanResult) -> ScanOutcome:
        """Count an already decoded scan against the article with `article_id`."""

        article = self.get_article(article_id)
        if article is None:
            return ScanOutcome(
                raw_data=scan.raw_data,
                scan=scan,
                error=MatchError(
                    code="article_not_found",
                    message=f"Article {article_id} is not in the list",
                    lot=scan.lot,
                    ref=scan.ref,
                ),
            )
        return self._record_scan(article, scan)

    def apply_manual(self, article_id: int, new_count: int) -> Article | ValidationError:
        """Set the manual count of an article; manual edits add no history."""

        article = self.get_article(article_id)
        if article is None:
            return ValidationError(
                code="article_not_found",
                message=f"Article {article_id} is not in the list",
            )

        updated = reconcile.apply_manual(article, new_count)
        if isinstance(updated, ValidationError):
            log.warning("Manual count rejected for article %d: %s", article_id, updated.message)
            return updated

        self._persist_article(updated, _COUNTING_FIELDS)
        self._replace_article(updated)
        log.info("Manual count of article %d set to %d", article_id, new_count)
        return updated

    def set_comment(self, article_id: int, field_name: str, text: str) -> Article | ValidationError:
        """Replace one free-text comment field; counts and history are untouched."""

        article = self.get_article(article_id)
        if article is None:
            return ValidationError(
                code="article_not_found",
                message=f"Article {article_id} is not in the list",
            )

        updated = reconcile.set_comment(article, field_name, text)
        if isinstance(updated, ValidationError):
            return updated

        self._persist_article(updated, (field_name,))
        self._replace_article(updated)
        return updated

    def undo_last_scan(self) -> Article | UndoError:
        """Reverse the most recent scan and drop its history entry."""

        result = reconcile.undo_last_scan(self._history, self._articles)
        if isinstance(result, UndoError):
            log.warning("Undo not possible: %s", result.message)
            return result

        article, remaining = result
        undone = self._history[0]
        previous = self.get_article(undone.article_id)
        self._persist_article(article, _COUNTING_FIELDS)
        if self._history_store is not None and undone.id is not None:
            try:
                self._history_store.remove(undone.id)
            except Exception:
                # Put the stored counts back so both stores agree again.
                if previous is not None:
                    self._persist_article(previous, _COUNTING_FIELDS)
                raise

        self._replace_article(article)
        self._history = remaining
        log.info("Undid scan of article %d, ist_scan now %d", article.id, article.ist_scan)
        return article

    def statistics(self) -> Statistics:
        """Aggregate status counts and session timing for the current state."""

        return aggregate(self._articles, self._history)

    def _record_scan(self, article: Article, scan: ScanResult) -> ScanOutcome:
        """Count one scan against `article`, persisting history before the article."""

        if article.id is None:
            raise ValueError("Articles must carry an id before scans can be recorded")

        updated = reconcile.apply_scan(article)
        entry = ScanHistoryEntry(
            inventory_id=self.inventory_id,
            article_id=article.id,
            timestamp=self._next_timestamp(),
            scan=scan,
        )

        if self._history_store is not None:
            entry = replace(entry, id=self._history_store.append(entry))
        try:
            self._persist_article(updated, _COUNTING_FIELDS)
        except Exception:
            if self._history_store is not None and entry.id is not None:
                self._history_store.remove(entry.id)
            raise

        self._replace_article(updated)
        self._history.insert(0, entry)

        advisories = reconcile.scan_advisories(updated, scan, today=entry.timestamp.date())
        log.info(
            "Counted article %d (ref=%s lot=%s): %d/%d%s",
            updated.id,
            updated.materialnummer,
            updated.charge,
            updated.gueltige_zaehlung,
            updated.soll,
            f" [{', '.join(advisories)}]" if advisories else "",
        )
        return ScanOutcome(
            raw_data=scan.raw_data,
            scan=scan,
            article=updated,
            entry=entry,
            advisories=advisories,
        )

    def _next_timestamp(self) -> datetime:
        """Return a timestamp strictly after the latest history entry."""

        timestamp = self._clock()
        if self._history and timestamp <= self._history[0].timestamp:
            timestamp = self._history[0].timestamp + timedelta(microseconds=1)
        return timestamp

    def _persist_article(self, article: Article, field_names: Iterable[str]) -> None:
        """Write the named fields of `article` to the article store, if any."""

        if self._article_store is None or article.id is None:
            return
        fields: dict[str, Any] = {name: getattr(article, name) for name in field_names}
        self._article_store.update(article.id, fields)

    def _replace_article(self, updated: Article) -> None:
        """Swap the in-memory article sharing `updated.id` for `updated`."""

        self._articles = [updated if article.id == updated.id else article for article in self._articles]
