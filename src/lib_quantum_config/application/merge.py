"""Application-layer merge engine.

Purpose
-------
Fold a priority-ordered sequence of provider outputs into a single tree while
tracking provenance. Free of I/O so alternative composition roots can reuse
it.

Contents
    - ``merge_layers``: public entry point driven by a simple loop.
    - ``_merge_mapping``: walks incoming tables with an explicit work stack.
    - ``_branch``: finds or creates the destination table for a key.
    - ``_set_leaf`` / ``_clear_branch``: helpers narrating how provenance
      changes when values change.

Rules
-----
* dict + dict: merge key by key (union of keys, incoming wins on leaves);
* leaf + leaf (arrays included): incoming replaces existing wholesale;
* dict + leaf in either direction: :class:`KeyConflict`.

System Role
-----------
Receives outputs from :mod:`lib_quantum_config.core` in the order
``files -> specified file -> env -> cli`` and returns the data consumed by
:class:`lib_quantum_config.domain.config.Config`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable

from ..domain.errors import KeyConflict
from ..domain.tree import clone_value
from .ports import ProviderOutput


def merge_layers(
    layers: Iterable[ProviderOutput | tuple[str, Mapping[str, Any], str | None]],
) -> tuple[dict[str, Any], dict[str, dict[str, Any]]]:
    """Merge *layers* honouring precedence and recording provenance.

    Parameters
    ----------
    layers:
        ``(layer, mapping, source_path)`` entries ordered from lowest to
        highest precedence.

    Returns
    -------
    tuple[dict[str, Any], dict[str, dict[str, Any]]]
        ``(merged_data, provenance)`` where provenance maps dotted leaf keys to
        ``{"layer", "path", "key"}``.

    Raises
    ------
    KeyConflict
        When one layer holds a table and another a leaf at the same key.

    Examples
    --------
    >>> merged, meta = merge_layers([
    ...     ("file", {"a": {"x": 1}}, "config.toml"),
    ...     ("env", {"a": {"y": 2}}, None),
    ... ])
    >>> merged, meta["a.y"]["layer"]
    ({'a': {'x': 1, 'y': 2}}, 'env')
    >>> merge_layers([("file", {"a": 1}, None), ("env", {"a": {"x": 1}}, None)])
    Traceback (most recent call last):
    ...
    lib_quantum_config.domain.errors.KeyConflict: Key conflict at 'a': layer 'env' provides a table where an earlier layer set a value
    """

    merged: dict[str, Any] = {}
    meta: dict[str, dict[str, Any]] = {}

    for layer_name, data, path in layers:
        _merge_mapping(merged, meta, data, layer_name, path)
    return merged, meta


def _merge_mapping(
    target: dict[str, Any],
    meta: dict[str, dict[str, Any]],
    incoming: Mapping[str, Any],
    layer: str,
    path: str | None,
) -> None:
    """Merge ``incoming`` into ``target`` while recording provenance.

    Tables are visited through an explicit work stack; each entry carries the
    destination table, the incoming branch, and its key segments.
    """

    pending: list[tuple[dict[str, Any], Mapping[str, Any], list[str]]] = [(target, incoming, [])]
    while pending:
        container, branch, segments = pending.pop()
        for key, value in branch.items():
            dotted = _dotted_key(segments, key)
            existing_is_table = isinstance(container.get(key), Mapping)
            if isinstance(value, Mapping):
                if key in container and not existing_is_table:
                    raise KeyConflict(dotted, f"layer '{layer}' provides a table where an earlier layer set a value")
                pending.append((_branch(container, key), value, segments + [key]))
            else:
                if existing_is_table:
                    raise KeyConflict(dotted, f"layer '{layer}' provides a value where an earlier layer set a table")
                _set_leaf(container, meta, key, clone_value(value), dotted, layer, path)


def _branch(target: dict[str, Any], key: str) -> dict[str, Any]:
    """Return the table stored at ``target[key]``, creating it when absent."""

    container = target.get(key)
    if container is None:
        container = {}
        target[key] = container
    return container


def _set_leaf(
    target: dict[str, Any],
    meta: dict[str, dict[str, Any]],
    key: str,
    value: Any,
    dotted: str,
    layer: str,
    path: str | None,
) -> None:
    """Assign a leaf (scalar or array) and update provenance for ``dotted``."""

    _clear_branch(meta, dotted)
    target[key] = value
    meta[dotted] = {"layer": layer, "path": path, "key": dotted}


def _clear_branch(meta: dict[str, dict[str, Any]], prefix: str) -> None:
    """Remove provenance entries that belong to *prefix* or its descendants."""

    for meta_key in list(meta.keys()):
        if meta_key == prefix or meta_key.startswith(prefix + "."):
            meta.pop(meta_key, None)


def _dotted_key(segments: list[str], key: str) -> str:
    """Join *segments* and *key* with dots."""

    return ".".join([*segments, key]) if segments else key
