"""Value shapes a provider can report for one field."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from .enums import ValueKind

type Scalar = int | float
type StructuredValue = Mapping[str, object] | Sequence[object]
type FieldValue = Scalar | str | StructuredValue | None


def value_kind(value: object) -> ValueKind:
    """Classify ``value`` into one of the closed ``ValueKind`` shapes.

    Booleans are treated as categorical, and NaN/inf are not considered numeric.
    """

    match value:
        case None:
            return ValueKind.MISSING
        case bool():
            return ValueKind.CATEGORICAL
        case int() | float():
            return ValueKind.NUMERIC if math.isfinite(value) else ValueKind.MISSING
        case str():
            return ValueKind.CATEGORICAL
        case Mapping() | Sequence():
            return ValueKind.STRUCTURED
        case _:
            return ValueKind.MISSING


def is_numeric(value: object) -> bool:
    return value_kind(value) is ValueKind.NUMERIC


def fields_kind(values: Sequence[object]) -> ValueKind:
    """Return the common kind of ``values`` (``MISSING`` when empty or mixed)."""

    kinds = {value_kind(value) for value in values}
    kinds.discard(ValueKind.MISSING)
    if len(kinds) == 1:
        return kinds.pop()
    return ValueKind.MISSING


def values_equal(first: object, second: object) -> bool:
    """Structural equality where booleans never equal numbers; lists equal tuples."""

    if isinstance(first, bool) or isinstance(second, bool):
        return type(first) is type(second) and first == second
    match first, second:
        case str(), str():
            return first == second
        case Mapping(), Mapping():
            return first.keys() == second.keys() and all(
                values_equal(value, second[key]) for key, value in first.items()
            )
        case Sequence(), Sequence() if not isinstance(first, str) and not isinstance(second, str):
            return len(first) == len(second) and all(
                values_equal(left, right) for left, right in zip(first, second, strict=True)
            )
        case _:
            return first == second
