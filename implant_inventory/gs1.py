"""Tolerant decoder for GS1 Application-Identifier barcode payloads.

The decoder scans a payload field by field instead of validating it against a
strict grammar. Unknown or vendor-specific AIs are skipped up to the next
group separator so the known fields of a noisy label remain usable.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from .ai_table import REF_AIS, AIDefinition, lookup_ai
from .errors import DecodeError
from .expiry import decode_date
from .models import DataIssue, ScanResult

log = logging.getLogger(__name__)

GROUP_SEPARATOR = "\x1d"
SYMBOLOGY_PREFIXES = ("]d2", "]C1", "]Q3", "]e0")

_REF_FALLBACK_RE = re.compile(r"REF[:\s]*([A-Z0-9]+)", re.IGNORECASE)


def strip_symbology_prefix(raw: str) -> str:
    """Remove a leading symbology identifier and leading FNC1 separators."""

    data = raw.rstrip("\r\n")
    for prefix in SYMBOLOGY_PREFIXES:
        if data.startswith(prefix):
            data = data[len(prefix) :]
            break
    return data.lstrip(GROUP_SEPARATOR)


def gtin_check_digit_ok(gtin: str) -> bool:
    """Return whether a GTIN-14 carries a valid GS1 mod-10 check digit."""

    if len(gtin) != 14 or not (gtin.isascii() and gtin.isdigit()):
        return False
    body = gtin[:-1]
    total = sum(int(digit) * (3 if index % 2 == 0 else 1) for index, digit in enumerate(reversed(body)))
    return (10 - total % 10) % 10 == int(gtin[-1])


def _segment_end(data: str, start: int, *, parenthesized: bool) -> int:
    """Return where a value starting at `start` ends.

    Values run to the next group separator or the end of the payload. In the
    human-readable `(AI)value` form the next opening parenthesis also ends a
    value.
    """

    candidates = [data.find(GROUP_SEPARATOR, start)]
    if parenthesized:
        candidates.append(data.find("(", start))
    ends = [index for index in candidates if index >= 0]
    return min(ends) if ends else len(data)


def _read_ai(data: str, position: int) -> tuple[str, AIDefinition | None, int, bool]:
    """Read the AI at `position`.

    Returns the AI code as written, its definition (None when unknown), the
    index where its value starts and whether it used the parenthesized form.
    """

    if data[position] == "(":
        close = data.find(")", position + 1)
        if close < 0:
            return "(", None, position + 1, True
        code = data[position + 1 : close]
        return code, lookup_ai(code), close + 1, True

    for width in (2, 3):
        code = data[position : position + width]
        definition = lookup_ai(code)
        if len(code) == width and definition is not None:
            return code, definition, position + width, False

    return data[position : position + 2], None, position, False


def _route_value(result: ScanResult, definition: AIDefinition, value: str, *, today: date | None) -> None:
    """Store one decoded AI value on the scan result."""

    if definition.code == "01":
        result.gtin = value
        if not gtin_check_digit_ok(value):
            result.issues.append(
                DataIssue(
                    code="gtin_check_digit_mismatch",
                    message=f"GTIN check digit does not verify: {value}",
                    field="gtin",
                )
            )
    elif definition.code == "10":
        result.lot = value
    elif definition.code == "17":
        expiry = decode_date(value, today=today)
        if expiry is None:
            result.issues.append(
                DataIssue(code="invalid_expiry", message=f"Unreadable expiry date: {value}", field="expiry_date")
            )
        else:
            result.expiry_date = expiry
    elif definition.code == "21":
        result.serial_number = value
    elif definition.code in REF_AIS and not result.ref:
        # First reference AI wins.
        result.ref = value


def decode_payload(raw: str, *, today: date | None = None) -> ScanResult | DecodeError:
    """Decode a raw barcode payload into a `ScanResult`.

    Returns a `DecodeError` when neither LOT, REF nor GTIN could be extracted.
    `today` anchors the century window used for the expiry field.
    """

    result = ScanResult(raw_data=raw)
    data = strip_symbology_prefix(raw)
    position = 0

    while position < len(data):
        if data[position] == GROUP_SEPARATOR:
            position += 1
            continue

        code, definition, value_start, parenthesized = _read_ai(data, position)
        end = _segment_end(data, value_start, parenthesized=parenthesized)

        if definition is None:
            log.debug("Skipping unknown AI %r at offset %d", code, position)
            result.issues.append(
                DataIssue(
                    code="unknown_ai",
                    message=f"Skipped unknown application identifier: {code}",
                    field=None,
                )
            )
            position = max(end, value_start)
            continue

        if definition.length is not None:
            value = data[value_start : min(value_start + definition.length, end)]
            position = value_start + len(value)
            if len(value) < definition.length:
                result.issues.append(
                    DataIssue(
                        code="truncated_field",
                        message=f"AI {definition.code} expects {definition.length} characters, got {len(value)}",
                        field=definition.name.lower(),
                    )
                )
                continue
        else:
            value = data[value_start:end]
            position = end

        _route_value(result, definition, value, today=today)

    if not result.ref and result.lot:
        ref_match = _REF_FALLBACK_RE.search(raw)
        if ref_match:
            result.ref = ref_match.group(1)

    if not result.has_identity:
        log.info("Payload yielded no identifying field: %r", raw)
        return DecodeError(
            code="no_identifying_field",
            message="Barcode could not be read, no LOT, REF or GTIN found",
            raw_data=raw,
        )

    return result
