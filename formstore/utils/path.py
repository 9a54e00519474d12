"""
Deep path addressing for nested records.

A path addresses a value inside nested ``dict``/``list`` trees using ``.``
separators and optional ``[index]`` segments::

    "user.email"           -> ["user", "email"]
    "items[0].name"        -> ["items", "0", "name"]
    "matrix[1][2]"         -> ["matrix", "1", "2"]
    "meta['created.at']"   -> ["meta", "created.at"]

The same helpers work uniformly over form values, errors and touches.
"""
from copy import deepcopy
from typing import Any, Dict, Iterator, List, Tuple, Union

from formstore.exceptions import PathError

Container = Union[Dict[str, Any], List[Any]]

_MISSING = object()


def parse_path(path: str) -> List[str]:
    """
    Splits a path into its segments.

    Raises:
        PathError: If the path is empty, has an empty segment or unbalanced brackets.
    """
    if not isinstance(path, str) or not path:
        raise PathError(path, "must be a non-empty string")

    segments: List[str] = []
    token = ""
    i = 0
    length = len(path)

    while i < length:
        char = path[i]
        if char == ".":
            if not token:
                raise PathError(path, f"empty segment at position {i}")
            segments.append(token)
            token = ""
            if i == length - 1:
                raise PathError(path, "trailing separator")
        elif char == "[":
            if token:
                segments.append(token)
                token = ""
            end = path.find("]", i)
            if end == -1:
                raise PathError(path, f"unclosed '[' at position {i}")
            segments.append(_bracket_key(path, path[i + 1:end]))
            i = end + 1
            if i < length:
                if path[i] == ".":
                    if i == length - 1:
                        raise PathError(path, "trailing separator")
                    i += 1
                elif path[i] != "[":
                    raise PathError(path, f"unexpected {path[i]!r} after ']'")
            continue
        elif char == "]":
            raise PathError(path, f"unmatched ']' at position {i}")
        else:
            token += char
        i += 1

    if token:
        segments.append(token)
    return segments


def _bracket_key(path: str, raw: str) -> str:
    key = raw.strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in ("'", '"'):
        key = key[1:-1]
    if not key:
        raise PathError(path, "empty brackets")
    return key


def normalize_path(path: str) -> str:
    """Returns the dotted form of a path: ``items[0].name`` -> ``items.0.name``."""
    return ".".join(parse_path(path))


def _is_index(segment: str) -> bool:
    return segment.isdigit()


def _child(container: Any, segment: str) -> Any:
    if isinstance(container, dict):
        return container.get(segment, _MISSING)
    if isinstance(container, list) and _is_index(segment):
        index = int(segment)
        if index < len(container):
            return container[index]
    return _MISSING


def _assign(container: Container, segment: str, value: Any, path: str) -> None:
    if isinstance(container, dict):
        container[segment] = value
        return

    if not _is_index(segment):
        raise PathError(path, f"segment {segment!r} cannot index a list")
    index = int(segment)
    while len(container) <= index:
        container.append(None)
    container[index] = value


def get_nested(record: Any, path: str, default: Any = None) -> Any:
    """
    Gets the value at ``path``.

    Returns ``default`` when any segment is missing or the path runs
    through a value that is not a container.
    """
    current = record
    for segment in parse_path(path):
        current = _child(current, segment)
        if current is _MISSING:
            return default
    return current


def probe(record: Any, path: str, default: Any = None) -> Any:
    """
    Reads status leaves (error messages, touched flags).

    Behaves exactly like :func:`get_nested`; absent leaves yield ``default``.
    """
    return get_nested(record, path, default)


def set_nested(record: Container, path: str, value: Any) -> bool:
    """
    Sets ``value`` at ``path`` in place, creating intermediate containers.

    A ``list`` is created when the following segment is numeric, a ``dict``
    otherwise. Scalars found on the way are replaced by containers.

    Returns:
        False if the current value already equals ``value`` (nothing written),
        True otherwise.
    """
    segments = parse_path(path)
    if not isinstance(record, (dict, list)):
        raise TypeError(f"Cannot set {path!r} on {type(record).__name__}")

    if get_nested(record, path) == value:
        return False

    current = record
    for segment, next_segment in zip(segments, segments[1:]):
        child = _child(current, segment)
        wrong_kind = isinstance(child, list) and not _is_index(next_segment)
        if not isinstance(child, (dict, list)) or wrong_kind:
            child = [] if _is_index(next_segment) else {}
            _assign(current, segment, child, path)
        current = child

    _assign(current, segments[-1], value, path)
    return True


def flatten(record: Any, prefix: str = "") -> Iterator[Tuple[str, Any]]:
    """
    Lazily yields every leaf ``(path, value)`` pair of a nested record.

    Keys come out in insertion order, list indices as path segments.
    Empty containers yield nothing.
    """
    if isinstance(record, dict):
        items = record.items()
    elif isinstance(record, list):
        items = enumerate(record)
    else:
        if prefix:
            yield prefix, record
        return

    for key, value in items:
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, (dict, list)):
            yield from flatten(value, path)
        else:
            yield path, value


def merge_nested(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep-merges ``source`` into ``target`` (union of nested keys).

    Nested dicts are merged recursively; ``None`` never replaces an existing key.
    """
    for key, value in source.items():
        existing = target.get(key, _MISSING)
        if isinstance(value, dict) and isinstance(existing, dict):
            merge_nested(existing, value)
        elif value is None and existing is not _MISSING:
            continue
        else:
            target[key] = deepcopy(value)
    return target
