import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from formstate.utils.equality import deep_equal


def test_scalars_compare_by_type_and_value():
    assert deep_equal(1, 1)
    assert deep_equal("a", "a")
    assert deep_equal(None, None)
    assert not deep_equal(0, False)
    assert not deep_equal(1, True)
    assert not deep_equal(1, 1.0)
    assert not deep_equal(None, 0)
    assert deep_equal(float("nan"), float("nan"))


def test_containers_compare_structurally():
    assert deep_equal({"a": [1, {"b": None}]}, {"a": [1, {"b": None}]})
    assert not deep_equal({"a": [1]}, {"a": [True]})
    assert not deep_equal({"a": 1}, {"a": 1, "b": 2})
    assert not deep_equal([1, 2], [1, 2, 3])
    assert not deep_equal([1], (1,))
    assert deep_equal((1, {"x": 0}), (1, {"x": 0}))
