"""Helpers for walking and addressing nested JSON-like values.

Values are plain dicts, lists and scalars. Paths use the familiar
``a.b[0].c`` / ``a["x-y"]`` syntax; reads never create anything, writes
require every intermediate container to exist.
"""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable, Iterator

MISSING = object()

_PATH_TOKEN = re.compile(
    r"""\[\s*(?:(?P<index>-?\d+)|"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')\s*\]|(?P<name>[^.\[\]]+)"""
)

LeafVisitor = Callable[[Any, Any, Any], Awaitable[None]]


def is_blank(value: Any) -> bool:
    """True for None and strings that contain only whitespace."""
    return value is None or (isinstance(value, str) and not value.strip())


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def parse_path(path: str) -> list[str | int]:
    """Split a path expression into keys and list indexes.

    Raises:
        ValueError: If the path contains anything but names, dots and brackets
    """
    keys: list[str | int] = []
    pos = 0
    path = path.strip()
    while pos < len(path):
        if path[pos] == ".":
            pos += 1
            continue
        match = _PATH_TOKEN.match(path, pos)
        if not match:
            raise ValueError(f"Invalid path: {path}")
        if match.group("index") is not None:
            keys.append(int(match.group("index")))
        elif match.group("dq") is not None:
            keys.append(match.group("dq"))
        elif match.group("sq") is not None:
            keys.append(match.group("sq"))
        else:
            keys.append(match.group("name").strip())
        pos = match.end()
    return keys


def _step(container: Any, key: str | int) -> Any:
    if isinstance(container, dict):
        if key in container:
            return container[key]
        if isinstance(key, int) and str(key) in container:
            return container[str(key)]
        return MISSING
    if isinstance(container, list):
        index = key if isinstance(key, int) else (int(key) if str(key).lstrip("-").isdigit() else None)
        if index is None or not -len(container) <= index < len(container):
            return MISSING
        return container[index]
    return MISSING


def get_path(obj: Any, path: str, default: Any = MISSING) -> Any:
    """Read the value at ``path``, returning ``default`` when any step is absent."""
    current = obj
    for key in parse_path(path):
        current = _step(current, key)
        if current is MISSING:
            return default
    return current


def has_path(obj: Any, path: str) -> bool:
    try:
        return get_path(obj, path) is not MISSING
    except ValueError:
        return False


def set_path(obj: Any, path: str, value: Any) -> None:
    """Assign ``value`` at ``path``.

    Raises:
        KeyError, IndexError, TypeError: If the parent container is missing
    """
    keys = parse_path(path)
    if not keys:
        raise KeyError(path)
    parent = obj
    for key in keys[:-1]:
        parent = _step(parent, key)
        if parent is MISSING:
            raise KeyError(path)
    last = keys[-1]
    if isinstance(parent, list):
        parent[int(last)] = value
    elif isinstance(parent, dict):
        parent[last] = value
    else:
        raise TypeError(f"Cannot assign into {type(parent).__name__} at {path}")


def get_value(data: Any, key: str) -> Any:
    """Read a nested value where ``[]`` iterates every element.

    ``list[]`` returns the items of ``list``; ``data.items[].url`` collects
    ``url`` of every item. Nested ``[]`` results are flattened into one list.
    """
    head, sep, rest = key.partition("[]")
    target = get_path(data, head, None) if head.strip(" .") else data
    if not sep:
        return target
    if not is_container(target):
        return None
    rest = rest.lstrip(".")
    items = list(target.values()) if isinstance(target, dict) else target
    results: list[Any] = []
    for item in items:
        if not rest:
            results.append(item)
            continue
        value = get_value(item, rest)
        if "[]" in rest and isinstance(value, list):
            results.extend(value)
        elif value is not None:
            results.append(value)
    return results


async def walk_leaves(obj: Any, visitor: LeafVisitor) -> None:
    """Call ``visitor(value, key, container)`` for every scalar leaf."""
    if isinstance(obj, dict):
        entries: Iterator[tuple[Any, Any]] = iter(list(obj.items()))
    elif isinstance(obj, list):
        entries = iter(list(enumerate(obj)))
    else:
        return
    for key, value in entries:
        if is_container(value):
            await walk_leaves(value, visitor)
        else:
            await visitor(value, key, obj)


def flatten(data: Any) -> list[Any]:
    """Collect every scalar leaf of a nested value in order."""
    if isinstance(data, dict):
        data = list(data.values())
    if not isinstance(data, list):
        return [data]
    result: list[Any] = []
    for item in data:
        if is_container(item):
            result.extend(flatten(item))
        else:
            result.append(item)
    return result
