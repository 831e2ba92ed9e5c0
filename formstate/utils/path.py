"""
Dotted-path access into nested dict/list value trees.

A path such as ``"friends.0.name"`` is split on dots; a segment made only of
decimal digits, or a non-negative int in a segment sequence, addresses a
list index; anything else is a dict key. Literal dots inside keys cannot be
escaped.
"""
from typing import Any, Dict, List, Sequence, Union

from formstate.exceptions import PathError

Path = Union[str, Sequence[Union[str, int]]]


class _Delete:
    """Sentinel value that deletes the addressed entry when set."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "DELETE"

    def __bool__(self):
        return False


DELETE = _Delete()


def _parse_segment(segment: Union[str, int]) -> Union[str, int]:
    if isinstance(segment, int) and not isinstance(segment, bool):
        # Only non-negative ints address list entries
        return segment if segment >= 0 else str(segment)
    segment = str(segment)
    if segment.isdigit() and segment.isascii():
        return int(segment)
    return segment


def split_path(path: Path) -> List[Union[str, int]]:
    """Splits ``"friends.0.name"`` into ``["friends", 0, "name"]``."""
    if isinstance(path, str):
        if path == "":
            return []
        return [_parse_segment(part) for part in path.split(".")]
    return [_parse_segment(part) for part in path]


def join_path(segments: Sequence[Union[str, int]]) -> str:
    return ".".join(str(segment) for segment in segments)


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _get_child(node: Any, segment: Union[str, int], default: Any) -> Any:
    if isinstance(node, dict):
        return node.get(str(segment), default)
    if isinstance(node, (list, tuple)) and isinstance(segment, int):
        if 0 <= segment < len(node):
            return node[segment]
    return default


def get_nested_value(tree: Any, path: Path, default: Any = None) -> Any:
    """
    Gets the value at ``path``, or ``default`` if any part of the path is missing.

    Args:
        tree: The value tree to read from
        path: Dotted path string or sequence of segments, e.g. "user.address.street"
        default: Returned when the path does not resolve
    """
    missing = object()
    node = tree
    for segment in split_path(path):
        node = _get_child(node, segment, missing)
        if node is missing:
            return default
    return node


def _accepts(node: Any, segment: Union[str, int]) -> bool:
    if isinstance(node, dict):
        return True
    return isinstance(node, list) and isinstance(segment, int)


def _assign(node: Any, segment: Union[str, int], value: Any) -> None:
    if isinstance(node, dict):
        node[str(segment)] = value
        return
    while len(node) < segment:
        node.append(None)
    if segment == len(node):
        node.append(value)
    else:
        node[segment] = value


def _remove(node: Any, segment: Union[str, int]) -> bool:
    if isinstance(node, dict):
        key = str(segment)
        if key in node:
            del node[key]
            return True
        return False
    if isinstance(node, list) and isinstance(segment, int) and segment < len(node):
        del node[segment]
        return True
    return False


def set_nested_value(tree: Any, path: Path, value: Any) -> Any:
    """
    Sets the value at ``path`` in place and returns ``tree``.

    Missing intermediate containers are created: a list when the next segment
    is an index, a dict otherwise. An intermediate scalar, or a list addressed
    by a key, is replaced with a fresh container of the right kind.

    Setting ``DELETE`` removes the entry instead. List elements after a removed
    index shift left, and every container on the path that is left empty is
    removed from its parent, up to but not including the root.

    Raises:
        PathError: If the path is empty, or the root itself cannot hold the
            first segment.
    """
    segments = split_path(path)
    if not segments:
        raise PathError(path, "Cannot set the root of a value tree.")

    if value is DELETE:
        _delete_nested_value(tree, segments)
        return tree

    if not _accepts(tree, segments[0]):
        raise PathError(path, f"Root of type {type(tree).__name__} cannot hold segment '{segments[0]}'.")

    node = tree
    for segment, next_segment in zip(segments, segments[1:]):
        child = _get_child(node, segment, None)
        if not _accepts(child, next_segment):
            child = [] if isinstance(next_segment, int) else {}
            _assign(node, segment, child)
        node = child

    _assign(node, segments[-1], value)
    return tree


def _delete_nested_value(tree: Any, segments: List[Union[str, int]]) -> None:
    missing = object()
    nodes = [tree]
    for segment in segments[:-1]:
        child = _get_child(nodes[-1], segment, missing)
        if not is_container(child):
            return
        nodes.append(child)

    if not _remove(nodes[-1], segments[-1]):
        return

    # Prune containers emptied by the removal, bottom-up, never the root
    for depth in range(len(nodes) - 1, 0, -1):
        if nodes[depth]:
            break
        _remove(nodes[depth - 1], segments[depth - 1])


def build_path_map(tree: Any, value: Any, recursive: bool = True,
                   parent_key: str = "", response: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Maps every path reachable in ``tree`` to ``value``.

    Containers get an entry as well as their leaves. With ``recursive=False``
    only the top-level keys are listed.
    """
    if response is None:
        response = {}

    if isinstance(tree, dict):
        items = tree.items()
    elif isinstance(tree, (list, tuple)):
        items = enumerate(tree)
    else:
        return response

    for key, child in items:
        path = f"{parent_key}{key}"
        response[path] = value
        if recursive and isinstance(child, (dict, list, tuple)):
            build_path_map(child, value, recursive, path + ".", response)

    return response
