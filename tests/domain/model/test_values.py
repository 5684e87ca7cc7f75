from __future__ import annotations

import math

from ordnance.domain.model import ValueKind, fields_kind, is_numeric, value_kind, values_equal


def test_value_kind_classifies_shapes() -> None:
    assert value_kind(72) is ValueKind.NUMERIC
    assert value_kind(0.5) is ValueKind.NUMERIC
    assert value_kind("A") is ValueKind.CATEGORICAL
    assert value_kind(True) is ValueKind.CATEGORICAL  # noqa: FBT003
    assert value_kind({"min": 200}) is ValueKind.STRUCTURED
    assert value_kind([{"range": 10, "damage": 30}]) is ValueKind.STRUCTURED
    assert value_kind(None) is ValueKind.MISSING


def test_non_finite_numbers_are_not_numeric() -> None:
    assert not is_numeric(math.nan)
    assert not is_numeric(math.inf)
    assert is_numeric(-3)


def test_fields_kind_requires_a_common_kind() -> None:
    assert fields_kind([70, 90.5]) is ValueKind.NUMERIC
    assert fields_kind(["A", None, "B"]) is ValueKind.CATEGORICAL
    assert fields_kind([70, "A"]) is ValueKind.MISSING
    assert fields_kind([]) is ValueKind.MISSING


def test_values_equal_keeps_booleans_apart_from_numbers() -> None:
    assert not values_equal(True, 1)  # noqa: FBT003
    assert not values_equal({"ads": False}, {"ads": 0})
    assert values_equal(False, False)  # noqa: FBT003
    assert values_equal(1, 1.0)
    assert values_equal([{"range": 0, "damage": 33}], ({"damage": 33, "range": 0},))
    assert not values_equal("1", 1)
    assert not values_equal([1, 2], [1, 2, 3])
