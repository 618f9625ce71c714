"""Field-level normalization helpers used by the bulk article import."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .models import DataIssue


def normalize_text(value: object, *, field: str) -> tuple[str, list[DataIssue]]:
    """Trim text, collapse missing values to an empty string, and emit issues."""

    if value is None:
        return "", []

    text = value if isinstance(value, str) else str(value)
    stripped = text.strip()
    issues: list[DataIssue] = []

    if stripped and stripped != text:
        issues.append(
            DataIssue(
                code="whitespace_trimmed",
                message=f"{field} had leading/trailing whitespace",
                field=field,
            )
        )

    return stripped, issues


def parse_count(value: object, *, field: str, required: bool = False) -> tuple[int, list[DataIssue]]:
    """Parse a non-negative whole-number count.

    Blank values count as `0`; they are only flagged when `required` is set.
    Unusable values (non-numeric, fractional or negative) also fall back to
    `0` and are always flagged, so every imported article starts from a valid
    counter state.
    """

    if isinstance(value, bool):
        value = None
    if isinstance(value, int):
        cleaned = str(value)
        issues: list[DataIssue] = []
    else:
        cleaned, issues = normalize_text(value, field=field)

    if cleaned == "":
        if required:
            issues.append(DataIssue(code="missing_value", message=f"{field} is empty", field=field))
        return 0, issues

    try:
        parsed = Decimal(cleaned.replace(",", "."))
    except InvalidOperation:
        issues.append(
            DataIssue(
                code="invalid_count",
                message=f"{field} is not numeric: {cleaned}",
                field=field,
            )
        )
        return 0, issues

    if not parsed.is_finite() or parsed != parsed.to_integral_value():
        issues.append(
            DataIssue(
                code="non_integral_count",
                message=f"{field} is not a whole number: {cleaned}",
                field=field,
            )
        )
        return 0, issues

    if "." in cleaned or "," in cleaned:
        issues.append(
            DataIssue(
                code="decimal_count_format",
                message=f"{field} uses decimal formatting: {cleaned}",
                field=field,
            )
        )

    count = int(parsed)
    if count < 0:
        issues.append(
            DataIssue(
                code="negative_count",
                message=f"{field} is negative and was reset to 0: {count}",
                field=field,
            )
        )
        return 0, issues
    return count, issues
