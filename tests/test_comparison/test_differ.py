"""Tests for equality and diff primitives."""

import re
from dataclasses import dataclass
from datetime import datetime

import pytest

from render_diagnostics.comparison import (
    compute_diff,
    has_different_reference_but_same_content,
    is_deep_equal,
    shallow_equal,
    strict_equal,
)
from render_diagnostics.snapshot import Reactive, Ref


@dataclass
class Point:
    x: int
    y: int


class TestStrictEqual:
    """Tests for identity-or-value strict equality."""
    
    def test_primitives_by_value(self):
        assert strict_equal("a", "a")
        assert strict_equal(1, 1.0)
        assert not strict_equal(1, 2)
    
    def test_bool_never_equals_number(self):
        assert not strict_equal(True, 1)
        assert not strict_equal(0, False)
    
    def test_containers_by_identity(self):
        shared = {"a": 1}
        assert strict_equal(shared, shared)
        assert not strict_equal({"a": 1}, {"a": 1})


class TestDeepEqual:
    """Tests for structural equality."""
    
    @pytest.mark.parametrize("value", [None, 0, "x", [1, [2]], {"a": {"b": 1}}, Point(1, 2), Ref(3)])
    def test_reflexive(self, value):
        assert is_deep_equal(value, value)
    
    def test_distinct_primitives(self):
        assert not is_deep_equal(1, 2)
        assert not is_deep_equal("a", "b")
        assert not is_deep_equal(True, 1)
        assert not is_deep_equal(None, 0)
    
    def test_nested_structures(self):
        assert is_deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})
        assert not is_deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 3}]})
    
    def test_length_and_keys(self):
        assert not is_deep_equal([1, 2], [1, 2, 3])
        assert not is_deep_equal({"a": 1}, {"b": 1})
        assert not is_deep_equal({"a": 1}, {"a": 1, "b": 2})
    
    def test_type_mismatch(self):
        assert not is_deep_equal([1], {"0": 1})
        assert not is_deep_equal([1], (1,))
    
    def test_cyclic_graphs_terminate(self):
        a = {"x": 1}
        a["self"] = a
        b = {"x": 1}
        b["self"] = b
        assert is_deep_equal(a, b)
    
    def test_datetime_and_regex(self):
        assert is_deep_equal(datetime(2024, 1, 1), datetime(2024, 1, 1))
        assert is_deep_equal(re.compile("a+"), re.compile("a+"))
        assert not is_deep_equal(re.compile("a+"), re.compile("a+", re.I))
    
    def test_records_by_fields(self):
        assert is_deep_equal(Point(1, 2), Point(1, 2))
        assert not is_deep_equal(Point(1, 2), Point(2, 1))
    
    def test_wrappers_by_content(self):
        assert is_deep_equal(Ref([1]), Ref([1]))
        assert not is_deep_equal(Ref(1), Ref(2))
        assert is_deep_equal(Reactive({"a": 1}), Reactive({"a": 1}))


class TestShallowEqual:
    """Tests for one-level equality."""
    
    def test_same_primitive_values(self):
        assert shallow_equal({"a": 1, "b": "x"}, {"a": 1, "b": "x"})
    
    def test_nested_containers_compared_by_identity(self):
        shared = [1]
        assert shallow_equal({"a": shared}, {"a": shared})
        assert not shallow_equal({"a": [1]}, {"a": [1]})
    
    def test_arrayness_must_agree(self):
        assert not shallow_equal([1], {"0": 1})
        assert shallow_equal([1, 2], [1, 2])
    
    def test_key_count(self):
        assert not shallow_equal({"a": 1}, {"a": 1, "b": 2})
    
    def test_functions_must_be_identical(self):
        def f():
            pass
        assert shallow_equal({"cb": f}, {"cb": f})
        assert not shallow_equal({"cb": f}, {"cb": lambda: None})


class TestComputeDiff:
    """Tests for key-level diffs."""
    
    def test_identical_maps_empty(self):
        value = {"a": 1, "b": {"c": [1, 2]}}
        assert compute_diff(value, value).is_empty
    
    def test_added_removed_changed(self):
        diff = compute_diff({"a": 1, "b": 2}, {"a": 5, "c": 3})
        
        assert diff.added == {"c": 3}
        assert diff.removed == {"b": 2}
        assert list(diff.changed) == ["a"]
        change = diff.changed["a"]
        assert (change.from_value, change.to_value) == (1, 5)
        assert change.deep_equal is False
        assert diff.has_real_change
    
    def test_reference_only_change(self):
        diff = compute_diff({"user": {"id": 1}}, {"user": {"id": 1}})
        
        change = diff.changed["user"]
        assert change.same_reference is False
        assert change.deep_equal is True
        assert change.is_reference_only
        assert diff.reference_only_keys == ["user"]
        assert not diff.has_real_change
    
    def test_function_sentinels_never_deep_equal(self):
        diff = compute_diff({"cb": "[Function: a]"}, {"cb": "[Function: b]"})
        assert diff.changed["cb"].deep_equal is False
    
    def test_same_function_sentinel_unchanged(self):
        assert compute_diff({"cb": "[Function: a]"}, {"cb": "[Function: a]"}).is_empty
    
    def test_none_sides(self):
        assert compute_diff(None, None).is_empty
        assert compute_diff(None, {"a": 1}).added == {"a": 1}
        assert compute_diff({"a": 1}, None).removed == {"a": 1}
    
    def test_first_real_change_key(self):
        diff = compute_diff(
            {"same": {"x": 1}, "moved": 1, "gone": 1},
            {"same": {"x": 1}, "moved": 2, "new": 1},
        )
        assert diff.first_real_change_key() == "moved"
        assert compute_diff({"gone": 1}, {}).first_real_change_key() == "gone"
    
    def test_to_dict(self):
        d = compute_diff({"a": 1}, {"a": 2}).to_dict()
        assert d["changed"]["a"] == {"from": 1, "to": 2, "same_reference": False, "deep_equal": False}
        assert d["added"] == {}
    
    def test_reference_but_same_content_helper(self):
        assert has_different_reference_but_same_content([1], [1])
        shared = [1]
        assert not has_different_reference_but_same_content(shared, shared)
        assert not has_different_reference_but_same_content(1, 1)
