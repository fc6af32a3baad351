"""Common hierarchical value model shared by every provider.

Purpose
-------
Describe the tree all providers emit and the merge engine consumes. Nodes are
plain Python objects so the merged result can be handed to any typed
extraction step without conversion:

* ``str`` / ``bool`` / ``float`` leaves,
* ``int`` leaves restricted to the signed or unsigned 64-bit range,
* ``list`` arrays and ``dict`` tables keyed by ``str``.

Contents
--------
* :class:`ValueKind` / :func:`kind_of` – tag a node with its variant.
* :func:`insert_path` – nested insertion that refuses shape changes.
* :func:`get_path` – nested lookup with a default.
* :func:`split_key` – split separator-delimited keys into path segments.
* :func:`clone_value` – deep copy without native recursion.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Final, Sequence, Union

from .errors import InternalError, KeyConflict, ValidationError

I64_MIN: Final[int] = -(2**63)
I64_MAX: Final[int] = 2**63 - 1
U64_MAX: Final[int] = 2**64 - 1

Scalar = Union[str, bool, int, float]
Value = Union[Scalar, list[Any], dict[str, Any]]
Tree = dict[str, Any]


class ValueKind(str, Enum):
    """Variant tag of a tree node."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    ARRAY = "array"
    DICT = "dict"


def kind_of(value: object) -> ValueKind:
    """Return the :class:`ValueKind` of *value*.

    Examples
    --------
    >>> kind_of(True), kind_of(-1), kind_of(2**63), kind_of({})
    (<ValueKind.BOOL: 'bool'>, <ValueKind.INT: 'int'>, <ValueKind.UINT: 'uint'>, <ValueKind.DICT: 'dict'>)
    """

    # bool first: it is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        if I64_MIN <= value <= I64_MAX:
            return ValueKind.INT
        if 0 <= value <= U64_MAX:
            return ValueKind.UINT
        raise InternalError(f"Integer {value} is outside the 64-bit range")
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.DICT
    raise InternalError(f"Unsupported configuration value type: {type(value).__name__}")


def is_table(value: object) -> bool:
    """Return ``True`` when *value* is a ``Dict`` node."""

    return isinstance(value, dict)


def insert_path(tree: Tree, segments: Sequence[str], value: Value) -> None:
    """Insert *value* at *segments* inside *tree*, creating tables on demand.

    Why
    ----
    Environment variables and CLI arguments arrive as flat keys. Rebuilding
    the hierarchy must never silently change the shape of an existing key:
    a leaf cannot become a table and a table cannot be replaced by a leaf.

    Raises
    ------
    KeyConflict
        When an intermediate segment holds a leaf, or when the final segment
        would switch between table and leaf.
    InternalError
        When *segments* is empty.

    Examples
    --------
    >>> data: dict = {}
    >>> insert_path(data, ["server", "port"], 8080)
    >>> data
    {'server': {'port': 8080}}
    >>> insert_path(data, ["server", "port", "tls"], True)
    Traceback (most recent call last):
    ...
    lib_quantum_config.domain.errors.KeyConflict: Key conflict at 'server.port': cannot be both a value and a nested table
    """

    if not segments:
        raise InternalError("Cannot insert a value at an empty key path")
    cursor = tree
    for index, segment in enumerate(segments[:-1]):
        child = cursor.get(segment)
        if child is None:
            child = {}
            cursor[segment] = child
        elif not isinstance(child, dict):
            raise KeyConflict(".".join(segments[: index + 1]))
        cursor = child
    final = segments[-1]
    if final in cursor and is_table(cursor[final]) != is_table(value):
        raise KeyConflict(".".join(segments))
    cursor[final] = value


def get_path(tree: Mapping[str, Any], segments: Sequence[str], default: Any = None) -> Any:
    """Return the node stored at *segments* or *default* when missing."""

    current: Any = tree
    for segment in segments:
        if not isinstance(current, Mapping) or segment not in current:
            return default
        current = current[segment]
    return current


def split_key(key: str, separator: str) -> list[str]:
    """Split *key* on *separator*, rejecting empty segments.

    Examples
    --------
    >>> split_key("database__pool__size", "__")
    ['database', 'pool', 'size']
    >>> split_key("a____b", "__")
    Traceback (most recent call last):
    ...
    lib_quantum_config.domain.errors.ValidationError: Key 'a____b' contains an empty segment
    """

    if not separator:
        raise InternalError("Key separator must not be empty")
    parts = key.split(separator)
    if any(part == "" for part in parts):
        raise ValidationError(f"Key '{key}' contains an empty segment")
    return parts


def clone_value(value: Any) -> Any:
    """Return a deep copy of *value* with every mapping turned into a ``dict``.

    Nested containers are copied with an explicit work stack, so trees that
    passed the parse depth limit never hit the interpreter's recursion limit.

    Examples
    --------
    >>> source = {"a": [{"b": 1}]}
    >>> copy = clone_value(source)
    >>> copy == source, copy["a"][0] is source["a"][0]
    (True, False)
    """

    if isinstance(value, Mapping):
        root: Any = {}
    elif isinstance(value, list):
        root = []
    else:
        return value
    pending: list[tuple[Any, Any]] = [(value, root)]
    while pending:
        source, target = pending.pop()
        items = source.items() if isinstance(source, Mapping) else enumerate(source)
        for key, item in items:
            if isinstance(item, Mapping):
                child: Any = {}
                pending.append((item, child))
            elif isinstance(item, list):
                child = []
                pending.append((item, child))
            else:
                child = item
            if isinstance(target, dict):
                target[key] = child
            else:
                target.append(child)
    return root
