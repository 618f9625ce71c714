"""Behavior-focused tests for the GS1 payload decoder.

Each case feeds one realistic label payload through `decode_payload` and
checks which fields survive, which are skipped, and what gets flagged.
"""

from __future__ import annotations

from datetime import date

from implant_inventory.errors import DecodeError
from implant_inventory.gs1 import GROUP_SEPARATOR, decode_payload, gtin_check_digit_ok, strip_symbology_prefix
from implant_inventory.models import ScanResult

GS = GROUP_SEPARATOR
TODAY = date(2026, 10, 16)
VALID_GTIN = "09506000134352"


def _decode(raw: str) -> ScanResult:
    result = decode_payload(raw, today=TODAY)
    assert isinstance(result, ScanResult), result
    return result


def _issue_codes(result: ScanResult) -> set[str]:
    return {issue.code for issue in result.issues}


def test_concatenated_payload_populates_gtin_expiry_and_lot() -> None:
    """A compact AI string should yield all fields and keep the raw payload verbatim."""
    raw = f"01{VALID_GTIN}17261231" + "1012345"
    result = _decode(raw)

    assert result.gtin == VALID_GTIN
    assert result.expiry_date == date(2026, 12, 31)
    assert result.lot == "12345"
    assert result.raw_data == raw
    assert result.issues == []


def test_parenthesized_payload_ends_variable_values_at_next_ai() -> None:
    """Human-readable `(AI)` payloads should split LOT and SERIAL correctly."""
    raw = f"(01){VALID_GTIN}(17)270630(10)AB-123(21)SN0001"
    result = _decode(raw)

    assert result.gtin == VALID_GTIN
    assert result.expiry_date == date(2027, 6, 30)
    assert result.lot == "AB-123"
    assert result.serial_number == "SN0001"


def test_symbology_prefix_and_group_separators_are_handled() -> None:
    """The `]d2` prefix should be stripped and GS should end variable fields."""
    raw = f"]d201{VALID_GTIN}10LOT9{GS}21XYZ"
    result = _decode(raw)

    assert result.lot == "LOT9"
    assert result.serial_number == "XYZ"
    assert result.raw_data.startswith("]d2")


def test_unknown_ai_segment_is_skipped_without_failing() -> None:
    """Vendor-specific AIs should be skipped up to the next separator."""
    raw = f"01{VALID_GTIN}91VENDOR{GS}10LOT7"
    result = _decode(raw)

    assert result.gtin == VALID_GTIN
    assert result.lot == "LOT7"
    assert "unknown_ai" in _issue_codes(result)


def test_first_reference_ai_wins() -> None:
    """Later 240/241 fields must not overwrite an already decoded REF."""
    raw = f"240REF-A{GS}241REF-B{GS}10L1"
    result = _decode(raw)

    assert result.ref == "REF-A"
    assert result.lot == "L1"


def test_ref_is_recovered_from_raw_text_when_only_lot_was_decoded() -> None:
    """A `REF` marker in the raw payload should fill in a missing reference."""
    raw = f"10LOT55{GS}ref: 4711X"
    result = _decode(raw)

    assert result.lot == "LOT55"
    assert result.ref == "4711X"


def test_payload_without_identifying_field_fails() -> None:
    """Payloads without LOT, REF or GTIN should return a decode error value."""
    for raw in ("17261231", "", "hello world"):
        result = decode_payload(raw, today=TODAY)
        assert isinstance(result, DecodeError)
        assert result.code == "no_identifying_field"
        assert result.raw_data == raw


def test_truncated_fixed_length_field_is_discarded_and_flagged() -> None:
    """A GTIN shorter than 14 digits should be dropped with a truncation issue."""
    result = _decode(f"10LOT1{GS}0112345")

    assert result.lot == "LOT1"
    assert result.gtin == ""
    assert "truncated_field" in _issue_codes(result)


def test_invalid_expiry_is_flagged_but_does_not_fail_decode() -> None:
    """Month 13 cannot be an expiry date; the rest of the payload still decodes."""
    result = _decode(f"10LOT1{GS}17261332")

    assert result.lot == "LOT1"
    assert result.expiry_date is None
    assert "invalid_expiry" in _issue_codes(result)


def test_gtin_with_bad_check_digit_is_kept_and_flagged() -> None:
    """GTIN check digit mismatches are diagnostics, not decode failures."""
    result = _decode("0109506000134353" + "10L")

    assert result.gtin == "09506000134353"
    assert _issue_codes(result) == {"gtin_check_digit_mismatch"}


def test_trailing_line_break_from_scanner_is_ignored() -> None:
    """Keyboard-wedge scanners often append CR/LF after the payload."""
    result = _decode("10LOT1\r\n")
    assert result.lot == "LOT1"


def test_helpers_strip_prefix_and_verify_check_digit() -> None:
    """Low-level helpers should behave predictably on their own."""
    assert strip_symbology_prefix(f"]C1{GS}0101") == "0101"
    assert strip_symbology_prefix("0101") == "0101"
    assert gtin_check_digit_ok(VALID_GTIN)
    assert not gtin_check_digit_ok("123")
