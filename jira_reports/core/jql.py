"""Build JQL search strings from a structured FilterSet."""

from __future__ import annotations

from collections.abc import Iterable

from .config import JQL_MULTI_SELECT_FIELDS, JQL_ORDER_CLAUSE, JQL_TAUTOLOGY
from .models import FilterOption, FilterSet


def quote_value(value: object) -> str:
    """Wrap a literal in double quotes.

    This is the only escaping applied to filter values. Embedded double quotes
    are passed through unchanged.
    """
    return f'"{value}"'


def _is_numeric(value: str) -> bool:
    return value.isascii() and value.isdecimal()


def _option_literal(option: FilterOption, dimension: str) -> str | None:
    raw = (option.key or option.value) if dimension == "project" else option.value
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _in_clause(field: str, literals: Iterable[str]) -> str | None:
    values = list(literals)
    if not values:
        return None
    return f"{field} in ({', '.join(values)})"


def build_conditions(filters: FilterSet) -> list[str]:
    """Return the JQL conjuncts for every constrained dimension, in emission order."""
    parts: list[str] = []
    for attr, field in JQL_MULTI_SELECT_FIELDS:
        options = getattr(filters, attr) or []
        literals = []
        for option in options:
            if not isinstance(option, FilterOption):
                continue
            text = _option_literal(option, attr)
            if text is not None:
                literals.append(quote_value(text))
        clause = _in_clause(field, literals)
        if clause:
            parts.append(clause)

    if filters.start_date and filters.end_date:
        parts.append(
            f"updated >= {quote_value(filters.start_date)} AND updated <= {quote_value(filters.end_date)}"
        )

    if filters.exceeded_only:
        parts.append("workRatio > 100")

    sprint_literals = []
    for value in filters.sprint or []:
        text = str(value).strip()
        if not text:
            continue
        # Numeric values are sprint ids, anything else is a sprint name
        sprint_literals.append(text if _is_numeric(text) else quote_value(text))
    clause = _in_clause("sprint", sprint_literals)
    if clause:
        parts.append(clause)
    return parts


def build_jql(filters: FilterSet | None) -> str:
    """Compose the full query: conditions joined by AND plus a fixed ordering.

    An unconstrained FilterSet degrades to ``created is not empty`` so the
    result is never an ordering-only query.
    """
    parts = build_conditions(filters or FilterSet())
    where = " AND ".join(parts) if parts else JQL_TAUTOLOGY
    return f"{where} {JQL_ORDER_CLAUSE}"
