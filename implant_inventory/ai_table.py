"""Registry of the GS1 Application Identifiers understood by the decoder."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AIDefinition:
    """Semantic name and encoding rule for one Application Identifier.

    `length` is the exact value length for fixed-length AIs and `None` for
    variable-length AIs, which run up to the next group separator.
    """

    code: str
    name: str
    length: int | None = None

    @property
    def is_fixed_length(self) -> bool:
        return self.length is not None


_DEFINITIONS = (
    AIDefinition(code="01", name="GTIN", length=14),
    AIDefinition(code="10", name="LOT"),
    AIDefinition(code="17", name="EXPIRY", length=6),
    AIDefinition(code="21", name="SERIAL"),
    AIDefinition(code="240", name="PRODUCT_REFERENCE"),
    AIDefinition(code="241", name="CUSTOMER_PART_NUMBER"),
)

AI_TABLE: dict[str, AIDefinition] = {definition.code: definition for definition in _DEFINITIONS}

# AIs whose value is routed into `ScanResult.ref`.
REF_AIS = frozenset({"240", "241"})


def lookup_ai(code: str) -> AIDefinition | None:
    """Return the definition for an AI code, or None when it is not known."""

    return AI_TABLE.get(code)
