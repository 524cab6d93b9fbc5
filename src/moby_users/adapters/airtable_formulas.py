"""Structured Airtable filter formulas."""

from dataclasses import dataclass
from typing import Protocol


class Formula(Protocol):
    """A filter that renders to Airtable formula syntax."""

    def render(self) -> str:
        """Return the ``filterByFormula`` text."""


def quote_literal(value: str) -> str:
    """Quote a string literal for use inside a formula."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def field_ref(name: str) -> str:
    """Reference a column by name."""
    return "{" + name + "}"


@dataclass(frozen=True)
class FieldEquals:
    """Exact, case-sensitive match on a text column."""

    field: str
    value: str

    def render(self) -> str:
        return f"{field_ref(self.field)} = {quote_literal(self.value)}"


@dataclass(frozen=True)
class RecordIdIn:
    """Matches any record whose id is in ``ids``."""

    ids: tuple[str, ...]

    def render(self) -> str:
        parts = ", ".join(f"RECORD_ID()={quote_literal(i)}" for i in self.ids)
        return f"OR({parts})"


@dataclass(frozen=True)
class FieldContains:
    """Case-insensitive substring match on a text column."""

    field: str
    term: str

    def render(self) -> str:
        term = quote_literal(self.term.lower())
        return f"FIND({term}, LOWER({field_ref(self.field)})) > 0"
