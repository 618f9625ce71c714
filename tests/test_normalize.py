from __future__ import annotations

"""Unit tests for field-level normalization helpers.

These tests document the expected behavior of low-level parsing utilities used
by the article import. Each case focuses on one rule so regressions are easy
to diagnose.
"""

from implant_inventory.normalize import normalize_text, parse_count


def _issue_codes(issues: list[object]) -> set[str]:
    return {issue.code for issue in issues}


def test_normalize_text_trims_and_reports_whitespace() -> None:
    """Text values should be stripped and flagged when outer whitespace exists."""
    value, issues = normalize_text("  Hüftpfanne  ", field="materialbezeichnung")
    assert value == "Hüftpfanne"
    assert _issue_codes(issues) == {"whitespace_trimmed"}


def test_normalize_text_empty_or_missing_values() -> None:
    """Missing and blank text should normalize to an empty string without issues."""
    assert normalize_text(None, field="charge") == ("", [])
    assert normalize_text("   ", field="charge") == ("", [])


def test_normalize_text_stringifies_non_text_cells() -> None:
    """Spreadsheet readers may hand over numbers for REF or LOT columns."""
    value, issues = normalize_text(12345, field="charge")
    assert value == "12345"
    assert issues == []


def test_parse_count_accepts_integers_and_flags_decimal_formatting() -> None:
    """Decimal-rendered whole numbers should parse to int and be format-flagged."""
    assert parse_count("7", field="soll") == (7, [])
    assert parse_count(3, field="soll") == (3, [])

    parsed, issues = parse_count("80.00", field="soll")
    assert parsed == 80
    assert _issue_codes(issues) == {"decimal_count_format"}

    parsed_comma, comma_issues = parse_count("2,0", field="soll")
    assert parsed_comma == 2
    assert _issue_codes(comma_issues) == {"decimal_count_format"}


def test_parse_count_falls_back_to_zero_for_unusable_values() -> None:
    """Non-integral, non-numeric and negative counts become 0 with clear codes."""
    assert parse_count("12.5", field="soll")[0] == 0
    assert _issue_codes(parse_count("12.5", field="soll")[1]) == {"non_integral_count"}

    assert parse_count("abc", field="soll")[0] == 0
    assert _issue_codes(parse_count("abc", field="soll")[1]) == {"invalid_count"}

    assert parse_count("-5", field="manuelle_zaehlung")[0] == 0
    assert _issue_codes(parse_count("-5", field="manuelle_zaehlung")[1]) == {"negative_count"}


def test_parse_count_blank_values_only_flagged_when_required() -> None:
    """Blank manual counts are normal; a blank target count is reported."""
    assert parse_count("", field="manuelle_zaehlung") == (0, [])
    assert parse_count(None, field="manuelle_zaehlung") == (0, [])

    parsed, issues = parse_count(" ", field="soll", required=True)
    assert parsed == 0
    assert _issue_codes(issues) == {"missing_value"}
