"""Tests for veneer.equality."""

from __future__ import annotations

import dataclasses

import pytest

from veneer import wrap
from veneer.equality import deep_equal


@dataclasses.dataclass
class Pair:
    left: object
    right: object


class Box:
    def __init__(self, content: object) -> None:
        self.content = content


class Other:
    def __init__(self, content: object) -> None:
        self.content = content


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        (1, 1, True),
        (1, 2, False),
        (True, 1, False),
        (1, True, False),
        (False, 0, False),
        (True, True, True),
        (float("nan"), float("nan"), True),
        ("a", "a", True),
        (None, None, True),
        (None, {}, False),
        ({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]}, True),
        ({"a": [1, {"b": 2}]}, {"a": [1, {"b": 3}]}, False),
        ({"a": 1}, {"a": 1, "b": 2}, False),
        ({"a": True}, {"a": 1}, False),
        ([1, 2], [1, 2, 3], False),
        ([1, 2], (1, 2), False),
        ((1, [2]), (1, [2]), True),
        ({}, [], False),
    ],
)
def test_deep_equal(a: object, b: object, expected: bool):
    """Test structural comparison of plain values."""
    assert deep_equal(a, b) is expected
    assert deep_equal(b, a) is expected


def test_objects():
    """Objects compare by class and attributes."""
    assert deep_equal(Box({"x": 1}), Box({"x": 1}))
    assert not deep_equal(Box({"x": 1}), Box({"x": 2}))
    assert not deep_equal(Box(1), Other(1))


def test_custom_eq():
    """Objects with their own __eq__ use it."""
    assert deep_equal(Pair(1, [2]), Pair(1, [2]))
    assert not deep_equal(Pair(1, 2), Pair(2, 1))


def test_proxies_compare_by_effective_value():
    """Proxies are materialized before comparing."""
    proxy = wrap({"a": 1})
    proxy["a"] = 2
    assert deep_equal(proxy, {"a": 2})
    assert not deep_equal(proxy, {"a": 1})
    assert deep_equal(proxy, proxy)
