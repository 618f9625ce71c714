"""Error values returned by decoding, matching and reconciliation operations.

Operator-recoverable failures are returned to the caller instead of raised, so
a failed operation can never skip the recompute of derived fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

DecodeErrorCode: TypeAlias = Literal["no_identifying_field"]
MatchErrorCode: TypeAlias = Literal["article_not_found"]
UndoErrorCode: TypeAlias = Literal["no_scans_to_undo", "article_not_found"]
ValidationErrorCode: TypeAlias = Literal[
    "negative_count",
    "invalid_count",
    "unknown_comment_field",
    "article_not_found",
]


@dataclass(frozen=True, slots=True)
class DecodeError:
    """Payload yielded no LOT, REF or GTIN; the operator should re-scan."""

    code: DecodeErrorCode
    message: str
    raw_data: str = ""


@dataclass(frozen=True, slots=True)
class MatchError:
    """Decoded identity has no corresponding inventory row."""

    code: MatchErrorCode
    message: str
    lot: str = ""
    ref: str = ""


@dataclass(frozen=True, slots=True)
class UndoError:
    """Undo could not be applied; surfaced to the operator as a no-op notice."""

    code: UndoErrorCode
    message: str


@dataclass(frozen=True, slots=True)
class ValidationError:
    """Rejected input for a manual edit; the article is left unchanged."""

    code: ValidationErrorCode
    message: str
    field: str | None = None

