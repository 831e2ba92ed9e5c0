import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

import pytest

from formstate.exceptions import PathError
from formstate.utils.path import (
    DELETE,
    build_path_map,
    get_nested_value,
    join_path,
    set_nested_value,
    split_path,
)


def test_split_path_parses_numeric_segments_as_indexes():
    assert split_path("friends.0.name") == ["friends", 0, "name"]
    assert split_path("a.01b.2") == ["a", "01b", 2]
    assert split_path("") == []
    assert split_path(["friends", "0", "name"]) == ["friends", 0, "name"]
    assert join_path(["friends", 0, "name"]) == "friends.0.name"


def test_set_works():
    obj = {"a": 1, "b": 2}
    set_nested_value(obj, "a", 3)
    assert obj == {"a": 3, "b": 2}


def test_set_returns_tree_and_get_reads_back():
    obj = {}
    assert set_nested_value(obj, "user.address.street", "Main") is obj
    assert get_nested_value(obj, "user.address.street") == "Main"
    assert obj == {"user": {"address": {"street": "Main"}}}


def test_set_creates_lists_for_numeric_segments():
    obj = {}
    set_nested_value(obj, "friends.0.name", "robin")
    assert obj == {"friends": [{"name": "robin"}]}


def test_set_pads_list_when_index_is_past_the_end():
    obj = {"b": []}
    set_nested_value(obj, "b.2", "x")
    assert obj == {"b": [None, None, "x"]}


def test_remove_key():
    obj = {"a": 1, "b": 2}
    set_nested_value(obj, "a", DELETE)
    assert obj == {"b": 2}


def test_remove_nested_object():
    obj = {"a": 1, "b": {"c": 3, "d": 4}}
    set_nested_value(obj, "b.c", DELETE)
    assert obj == {"a": 1, "b": {"d": 4}}

    set_nested_value(obj, "b.d", DELETE)
    assert obj == {"a": 1}


def test_array_works():
    obj = {"a": 1, "b": [2]}
    set_nested_value(obj, "b.1", 3)
    assert obj == {"a": 1, "b": [2, 3]}


def test_array_remove_nested_key():
    obj = {"a": 1, "b": [{"a": 1, "b": 2}, {"c": 2, "d": 3}]}
    set_nested_value(obj, "b.1.d", DELETE)
    assert obj == {"a": 1, "b": [{"a": 1, "b": 2}, {"c": 2}]}


def test_array_remove_shifts_elements_left():
    obj = {"b": ["a", "b", "c"]}
    set_nested_value(obj, "b.1", DELETE)
    assert obj == {"b": ["a", "c"]}

    obj = {"b": [{"id": 1}, {"id": 2}]}
    set_nested_value(obj, "b.1", DELETE)
    assert obj == {"b": [{"id": 1}]}


def test_remove_prunes_emptied_lists_but_keeps_root():
    obj = {"b": [{"x": 1}]}
    set_nested_value(obj, "b.0.x", DELETE)
    assert obj == {}


def test_remove_missing_path_is_noop():
    obj = {"a": {"b": 1}}
    set_nested_value(obj, "a.c", DELETE)
    set_nested_value(obj, "x.y.z", DELETE)
    set_nested_value(obj, "a.b.c", DELETE)
    assert obj == {"a": {"b": 1}}


def test_none_is_a_value_not_a_deletion():
    obj = {"a": 1}
    set_nested_value(obj, "a", None)
    assert obj == {"a": None}


def test_get_fails_closed():
    obj = {"a": 1, "b": [10, 20], "c": {"d": None}}
    assert get_nested_value(obj, "a.b") is None
    assert get_nested_value(obj, "b.5") is None
    assert get_nested_value(obj, "b.x") is None
    assert get_nested_value(obj, "missing", "fallback") == "fallback"
    assert get_nested_value(obj, "c.d", "fallback") is None
    assert get_nested_value(obj, "b.1") == 20
    assert get_nested_value(None, "a") is None


def test_negative_index_is_not_a_list_position():
    obj = {"a": [1, 2]}
    assert split_path(["a", -1]) == ["a", "-1"]
    assert get_nested_value(obj, ["a", -1]) is None
    assert get_nested_value(obj, "a.-1", "missing") == "missing"

    set_nested_value(obj, ["b", -1], "x")
    assert obj["b"] == {"-1": "x"}


def test_set_overwrites_scalar_intermediates():
    obj = {"a": 1}
    set_nested_value(obj, "a.b", 2)
    assert obj == {"a": {"b": 2}}

    obj = {"a": ["x"]}
    set_nested_value(obj, "a.key", 2)
    assert obj == {"a": {"key": 2}}


def test_set_rejects_empty_path_and_incompatible_root():
    with pytest.raises(PathError):
        set_nested_value({}, "", 1)
    with pytest.raises(PathError):
        set_nested_value([], "name", 1)
    with pytest.raises(PathError):
        set_nested_value(5, "a", 1)


def test_round_trip_for_assorted_paths():
    for path, value in [("a", 1), ("a.b.c", [1, 2]), ("list.0", {"k": "v"}), ("x.3.y", None)]:
        tree = {"a": {"z": 0}, "list": ["old"]}
        assert get_nested_value(set_nested_value(tree, path, value), path) == value


def test_build_path_map():
    values = {"name": "bill", "preferences": {"color": "blue"}, "friends": [{"name": "bax"}]}

    assert build_path_map(values, True) == {
        "name": True,
        "preferences": True,
        "preferences.color": True,
        "friends": True,
        "friends.0": True,
        "friends.0.name": True,
    }
    assert build_path_map(values, False, recursive=False) == {
        "name": False,
        "preferences": False,
        "friends": False,
    }
    assert build_path_map(3, True) == {}
