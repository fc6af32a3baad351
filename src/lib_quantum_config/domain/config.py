"""Immutable merge result handed to typed extraction.

Purpose
-------
Wrap the final Dict-rooted tree produced by the merge engine together with
provenance describing which provider supplied every leaf. The object is
read-only so no component can mutate the result after aggregation finished.

Contents
--------
* :class:`SourceInfo` – provenance record (layer, path, key).
* :class:`Config` – ``Mapping`` implementation with dotted lookups
  and provenance queries.
* :data:`EMPTY_CONFIG` – canonical empty instance.

System Role
-----------
:func:`lib_quantum_config.core.read_config` returns a :class:`Config`. The
embedding application reads values from it (or from :meth:`Config.as_dict`)
during its own typed extraction step.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, TypedDict, TypeVar, overload

from .tree import ValueKind, clone_value, get_path, kind_of


class SourceInfo(TypedDict):
    """Describe the origin of a merged leaf.

    Attributes
    ----------
    layer:
        Provider identity (``"file"``, ``"env"``, ``"cli"``, ...).
    path:
        File path or diagnostic source label; ``None`` when not applicable.
    key:
        Fully qualified dotted key (for example ``"server.port"``).
    """

    layer: str
    path: str | None
    key: str


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Config(Mapping[str, Any]):
    """Read-only view of the merged configuration tree.

    Examples
    --------
    >>> cfg = Config(
    ...     {"server": {"port": 8080, "host": "0.0.0.0"}},
    ...     {"server.port": {"layer": "env", "path": "APP_", "key": "server.port"}},
    ... )
    >>> cfg.get("server.port")
    8080
    >>> cfg.origin("server.port")["layer"]
    'env'
    >>> cfg.get("server.tls", default=False)
    False
    """

    _data: Mapping[str, Any]
    _meta: Mapping[str, SourceInfo]

    def __post_init__(self) -> None:
        object.__setattr__(self, "_data", MappingProxyType(clone_value(self._data)))
        object.__setattr__(self, "_meta", MappingProxyType(dict(self._meta)))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def as_dict(self) -> dict[str, Any]:
        """Return a deep, mutable copy of the tree.

        Examples
        --------
        >>> cfg = Config({"db": {"pool": [1, 2]}}, {})
        >>> clone = cfg.as_dict()
        >>> clone["db"]["pool"].append(3)
        >>> cfg.get("db.pool")
        [1, 2]
        """

        return clone_value(self._data)

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise the tree to JSON.

        Examples
        --------
        >>> Config({"debug": True}, {}).to_json()
        '{"debug":true}'
        """

        return json.dumps(self.as_dict(), indent=indent, separators=(",", ":"), ensure_ascii=False)

    @overload
    def get(self, key: str, *, default: T) -> Any | T:  # type: ignore[override]
        ...

    @overload
    def get(self, key: str, *, default: None = ...) -> Any | None:  # type: ignore[override]
        ...

    def get(self, key: str, *, default: Any = None) -> Any:
        """Resolve *key* as a dotted path, returning *default* when missing.

        Nested values are returned as copies so callers cannot reach into the
        frozen tree.
        """

        value = get_path(self._data, key.split("."), _MISSING)
        if value is _MISSING:
            return default
        return clone_value(value)

    def kind(self, key: str) -> ValueKind | None:
        """Return the :class:`ValueKind` stored at dotted *key*, if any."""

        value = get_path(self._data, key.split("."), _MISSING)
        if value is _MISSING:
            return None
        return kind_of(value)

    def origin(self, key: str) -> SourceInfo | None:
        """Return provenance for dotted leaf *key* or ``None``."""

        return self._meta.get(key)

    def layers(self) -> list[str]:
        """Return the distinct layers that contributed at least one leaf."""

        seen: dict[str, None] = {}
        for info in self._meta.values():
            seen.setdefault(info["layer"], None)
        return list(seen)


_MISSING = object()


#: Shared empty configuration used when no provider produced content.
EMPTY_CONFIG = Config({}, {})
