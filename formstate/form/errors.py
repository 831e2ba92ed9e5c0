"""
Field error model.

A field error is ``None`` (no error), a single message string, or a list of
message strings. Error maps are flat: keyed by dotted path.
"""
from typing import Any, Dict, Iterable, List, Optional, Union

from formstate.utils.path import join_path

FieldError = Union[None, str, List[str]]
FormErrors = Dict[str, FieldError]


def is_error(error: FieldError) -> bool:
    """False for ``None``, ``""`` and ``[]``; a non-empty list always counts."""
    if error is None or error == "":
        return False
    if isinstance(error, list) and len(error) == 0:
        return False
    return True


def has_errors(errors: Optional[FormErrors]) -> bool:
    if not errors:
        return False
    return any(is_error(error) for error in errors.values())


def merge_field_errors(*field_errors: FieldError) -> FieldError:
    """
    Merges field errors left to right, preserving message order.

    ``None`` entries are skipped. A single message merged with anything is
    promoted to a list.
    """
    result = None
    for error in field_errors:
        if error is None:
            continue
        if result is None:
            result = list(error) if isinstance(error, list) else error
        elif isinstance(result, list):
            result = result + (list(error) if isinstance(error, list) else [error])
        else:
            result = [result] + (list(error) if isinstance(error, list) else [error])
    return result


def merge_errors(errors: Iterable[Optional[FormErrors]]) -> FormErrors:
    """Merges flat error maps path by path, in map order."""
    merged: FormErrors = {}
    for error_map in errors:
        if not error_map:
            continue
        for path, error in error_map.items():
            merged[path] = merge_field_errors(merged.get(path), error)
    return merged


def first_error(error: FieldError) -> Optional[str]:
    if isinstance(error, list):
        return error[0] if error else None
    return error


def error_list(error: FieldError) -> Optional[List[str]]:
    if error is None:
        return None
    if isinstance(error, list):
        return list(error)
    return [error]


def _is_message_list(value: list) -> bool:
    return all(isinstance(item, str) for item in value)


def flatten_errors(errors: Any) -> FormErrors:
    """
    Flattens a validator result onto dotted paths.

    The result may mirror the value tree (nested dicts, lists of per-item
    errors) or already be keyed by dotted paths; both shapes can be mixed.
    A list of strings is one field's messages, any other list holds per-index
    nested errors. Entries reaching the same path are merged.

    Example:
        {"friends": [{"name": "Required"}], "preferences.color": ["A", "B"]}
        -> {"friends.0.name": "Required", "preferences.color": ["A", "B"]}
    """
    flat: FormErrors = {}
    _flatten_into(errors, [], flat)
    return flat


def _flatten_into(node: Any, prefix: List[Any], flat: FormErrors) -> None:
    if node is None:
        return

    if isinstance(node, dict):
        for key, child in node.items():
            _flatten_into(child, prefix + [key], flat)
        return

    if isinstance(node, (list, tuple)) and not (prefix and _is_message_list(list(node))):
        for index, child in enumerate(node):
            _flatten_into(child, prefix + [index], flat)
        return

    path = join_path(prefix)
    error = list(node) if isinstance(node, tuple) else node
    if path in flat:
        flat[path] = merge_field_errors(flat[path], error)
    else:
        flat[path] = error
