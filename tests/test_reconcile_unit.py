"""Small-scale unit tests for the pure reconciliation operations.

These tests use explicit handcrafted articles so each rule (derived fields,
status table, auto comment, undo) can be verified in isolation.
"""

from __future__ import annotations

from datetime import date, datetime

from implant_inventory.errors import UndoError, ValidationError
from implant_inventory.models import Article, ScanHistoryEntry, ScanResult
from implant_inventory.reconcile import (
    apply_manual,
    apply_scan,
    classify_status,
    generate_auto_comment,
    recompute,
    scan_advisories,
    set_comment,
    undo_last_scan,
)

TODAY = date(2026, 10, 16)


def _article(
    *,
    soll: int,
    ist_scan: int = 0,
    manuelle_zaehlung: int = 0,
    article_id: int = 1,
) -> Article:
    """Build a recomputed article for targeted reconciliation tests."""
    return recompute(
        Article(
            id=article_id,
            materialnummer=f"REF-{article_id}",
            charge=f"LOT-{article_id}",
            soll=soll,
            ist_scan=ist_scan,
            manuelle_zaehlung=manuelle_zaehlung,
        )
    )


def _entry(article_id: int, minute: int = 0) -> ScanHistoryEntry:
    return ScanHistoryEntry(
        inventory_id=1,
        article_id=article_id,
        timestamp=datetime(2026, 10, 16, 9, minute),
        scan=ScanResult(raw_data="10LOT", lot="LOT"),
    )


def test_recompute_derives_counts_and_comment() -> None:
    """Valid count is scan + manual; deviation is target minus valid count."""
    article = recompute(Article(materialnummer="R1", soll=5, ist_scan=2, manuelle_zaehlung=1, gueltige_zaehlung=99))
    assert article.gueltige_zaehlung == 3
    assert article.abweichung == 2
    assert article.auto_kommentar == "FEHLBESTAND: 2 Stück fehlen"


def test_recompute_is_idempotent() -> None:
    once = _article(soll=3, ist_scan=5, manuelle_zaehlung=1)
    assert recompute(once) == once


def test_auto_comment_covers_overage_completeness_and_empty() -> None:
    """At most one clause fires per article."""
    assert _article(soll=2, ist_scan=3).auto_kommentar == "ÜBERBESTAND: 1 Stück zu viel"
    assert _article(soll=2, ist_scan=2).auto_kommentar == "✓ Vollständig"
    assert _article(soll=0).auto_kommentar == ""
    assert generate_auto_comment(_article(soll=4, manuelle_zaehlung=1)) == "FEHLBESTAND: 3 Stück fehlen"


def test_classify_status_follows_rule_order() -> None:
    """Each article falls into exactly one status, first matching rule wins."""
    assert classify_status(_article(soll=3, ist_scan=3)) == "complete"
    assert classify_status(_article(soll=2, manuelle_zaehlung=2)) == "complete"
    assert classify_status(_article(soll=3, ist_scan=1)) == "partial"
    assert classify_status(_article(soll=1, ist_scan=2)) == "partial"
    assert classify_status(_article(soll=0, ist_scan=1)) == "partial"
    assert classify_status(_article(soll=3)) == "missing"
    assert classify_status(_article(soll=3, manuelle_zaehlung=1)) == "missing"
    assert classify_status(_article(soll=0)) == "open"
    assert classify_status(_article(soll=0, manuelle_zaehlung=1)) == "open"


def test_apply_scan_increments_without_mutating_input() -> None:
    before = _article(soll=2)
    after = apply_scan(before)

    assert before.ist_scan == 0
    assert after.ist_scan == 1
    assert after.gueltige_zaehlung == 1
    assert after.abweichung == 1


def test_scan_advisories_report_overstock_and_expiry() -> None:
    """Advisories are signals only; the scanned article is already updated."""
    overstocked = apply_scan(_article(soll=1, ist_scan=1))
    expired_scan = ScanResult(raw_data="x", lot="L", expiry_date=date(2026, 1, 1))
    soon_scan = ScanResult(raw_data="x", lot="L", expiry_date=date(2027, 1, 1))

    assert scan_advisories(overstocked, expired_scan, today=TODAY) == ["expired", "overstock"]
    assert scan_advisories(_article(soll=5, ist_scan=1), soon_scan, today=TODAY) == ["expires_soon"]
    assert scan_advisories(_article(soll=5, ist_scan=1), None, today=TODAY) == []


def test_apply_manual_sets_absolute_count() -> None:
    updated = apply_manual(_article(soll=4, ist_scan=1, manuelle_zaehlung=2), 3)
    assert isinstance(updated, Article)
    assert updated.manuelle_zaehlung == 3
    assert updated.gueltige_zaehlung == 4
    assert updated.abweichung == 0


def test_apply_manual_rejects_negative_and_non_integer_counts() -> None:
    """Rejected input returns an error value and leaves the article unchanged."""
    article = _article(soll=4, manuelle_zaehlung=2)

    negative = apply_manual(article, -1)
    fractional = apply_manual(article, 2.5)  # type: ignore[arg-type]

    assert isinstance(negative, ValidationError)
    assert negative.code == "negative_count"
    assert isinstance(fractional, ValidationError)
    assert fractional.code == "invalid_count"
    assert article.manuelle_zaehlung == 2


def test_set_comment_only_accepts_annotation_fields() -> None:
    article = _article(soll=1)

    updated = set_comment(article, "kommentar_scm", "Nachlieferung bestellt")
    rejected = set_comment(article, "soll", "7")

    assert isinstance(updated, Article)
    assert updated.kommentar_scm == "Nachlieferung bestellt"
    assert isinstance(rejected, ValidationError)
    assert rejected.code == "unknown_comment_field"


def test_undo_last_scan_decrements_and_pops_most_recent_entry() -> None:
    articles = [_article(soll=3, ist_scan=2, article_id=1), _article(soll=1, ist_scan=1, article_id=2)]
    history = [_entry(2, minute=5), _entry(1, minute=1)]

    result = undo_last_scan(history, articles)

    assert not isinstance(result, UndoError)
    article, remaining = result
    assert article.id == 2
    assert article.ist_scan == 0
    assert article.abweichung == 1
    assert remaining == [history[1]]


def test_undo_last_scan_leaves_zero_count_unchanged() -> None:
    articles = [_article(soll=3, article_id=1)]
    result = undo_last_scan([_entry(1)], articles)

    assert not isinstance(result, UndoError)
    article, remaining = result
    assert article == articles[0]
    assert remaining == []


def test_undo_last_scan_errors() -> None:
    """Empty history and vanished articles are reported as error values."""
    empty = undo_last_scan([], [_article(soll=1)])
    missing = undo_last_scan([_entry(42)], [_article(soll=1)])

    assert isinstance(empty, UndoError)
    assert empty.code == "no_scans_to_undo"
    assert isinstance(missing, UndoError)
    assert missing.code == "article_not_found"


def test_undo_is_inverse_of_scan() -> None:
    """Scanning then undoing restores counters and derived fields."""
    for start in (_article(soll=0), _article(soll=3, ist_scan=1), _article(soll=2, ist_scan=4, manuelle_zaehlung=1)):
        scanned = apply_scan(start)
        result = undo_last_scan([_entry(start.id or 0)], [scanned])

        assert not isinstance(result, UndoError)
        restored, _ = result
        assert restored == start
