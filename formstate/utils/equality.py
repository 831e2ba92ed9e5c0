import math
from typing import Any


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality that also compares types.

    Unlike ``==``, ``0`` and ``False`` or ``1`` and ``1.0`` are different
    values here. Dicts are compared key by key and lists and tuples element by
    element. NaN equals NaN. Other objects fall back to ``==``.
    """
    if a is b:
        return True
    if type(a) is not type(b):
        return False

    if isinstance(a, dict):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[key], b[key]) for key in a)

    if isinstance(a, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))

    if isinstance(a, float) and math.isnan(a) and math.isnan(b):
        return True

    return bool(a == b)
