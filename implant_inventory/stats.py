"""Per-status statistics over an article collection."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from .models import Article, ScanHistoryEntry, Statistics
from .reconcile import classify_status


def _session_timing(history: Sequence[ScanHistoryEntry]) -> tuple[float | None, float | None]:
    """Return total session duration and mean time between scans, in seconds."""

    if len(history) < 2:
        return None, None
    timestamps = sorted(entry.timestamp for entry in history)
    total = (timestamps[-1] - timestamps[0]).total_seconds()
    return total, total / (len(timestamps) - 1)


def aggregate(articles: Iterable[Article], history: Sequence[ScanHistoryEntry] | None = None) -> Statistics:
    """Fold articles into status counters in a single pass.

    `total == complete + partial + missing + open` always holds because every
    article is classified into exactly one status.
    """

    counts: Counter[str] = Counter()
    total = 0
    for article in articles:
        counts[classify_status(article)] += 1
        total += 1

    total_duration, average_scan_time = _session_timing(history or ())
    return Statistics(
        total=total,
        complete=counts["complete"],
        partial=counts["partial"],
        missing=counts["missing"],
        open=counts["open"],
        total_duration=total_duration,
        average_scan_time=average_scan_time,
    )
