"""File provider: read one candidate file and convert it into the value tree.

Purpose
-------
Implement the :class:`~lib_quantum_config.application.ports.Provider` port for
configuration files. Reading, parsing, and conversion happen on each
:meth:`FileProvider.produce` call so a provider never holds state between
aggregation runs.

Contents
--------
* :class:`FileProvider` – provider bound to a :class:`ConfigFileCandidate`.
* :func:`convert_tree` – depth-tracked iterative conversion from a parser's
  native tree into the common value tree.

System Role
-----------
The composition root builds one provider per discovered candidate plus one
for the explicitly specified file. TOML and JSON values are converted
type-for-type; INI leaves are strings and go through
:func:`~lib_quantum_config.domain.coercion.coerce_scalar`.
"""

from __future__ import annotations

import datetime as _dt
import os
from pathlib import Path
from typing import Any

from ...application.ports import FileSystem
from ...domain.coercion import coerce_scalar
from ...domain.errors import DepthLimitExceeded, FileParse, SpecifiedFileNotFound
from ...domain.files import ConfigFileCandidate, FileFormat
from ...domain.meta import DEFAULT_MAX_PARSE_DEPTH
from ...domain.tree import I64_MIN, U64_MAX
from ...observability import log_debug
from ..filesystem import LocalFileSystem
from .structured import PARSERS


class FileProvider:
    """Produce the tree stored in a single configuration file.

    Examples
    --------
    >>> from pathlib import Path
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> target = Path(tmp.name) / "config.json"
    >>> _ = target.write_text('{"server": {"port": 8080}}', encoding="utf-8")
    >>> FileProvider.from_path(target).produce()
    {'server': {'port': 8080}}
    >>> FileProvider.from_path(Path(tmp.name) / "absent.toml").produce()
    {}
    >>> tmp.cleanup()
    """

    layer = "file"

    def __init__(
        self,
        candidate: ConfigFileCandidate,
        *,
        max_parse_depth: int = DEFAULT_MAX_PARSE_DEPTH,
        fs: FileSystem | None = None,
    ) -> None:
        self.candidate = candidate
        self.max_parse_depth = max_parse_depth
        self._fs = fs or LocalFileSystem()

    @classmethod
    def from_path(
        cls,
        path: str | os.PathLike[str],
        *,
        is_required: bool = False,
        max_parse_depth: int = DEFAULT_MAX_PARSE_DEPTH,
        fs: FileSystem | None = None,
    ) -> FileProvider:
        """Build a provider inferring the format from the file extension.

        Raises
        ------
        UnsupportedFormat
            When the extension is not ``.toml``, ``.json`` or ``.ini``.
        """

        candidate = ConfigFileCandidate(Path(path), FileFormat.from_path(path), is_required)
        return cls(candidate, max_parse_depth=max_parse_depth, fs=fs)

    @property
    def source(self) -> str:
        return str(self.candidate.path)

    def produce(self) -> dict[str, Any]:
        """Return the converted tree, ``{}`` for a missing optional file.

        Raises
        ------
        SpecifiedFileNotFound
            When a required file is missing.
        FileParse
            When the contents are malformed for the declared format.
        DepthLimitExceeded
            When the document nests deeper than ``max_parse_depth``.
        """

        path = self.source
        if not self._fs.is_file(path):
            if self.candidate.is_required:
                raise SpecifiedFileNotFound(path)
            log_debug("config_file_missing", layer=self.layer, path=path)
            return {}
        try:
            payload = self._fs.read_bytes(path)
        except OSError as exc:
            raise FileParse(self.candidate.format.display_name, path, f"cannot read file: {exc.strerror or exc}") from exc
        fmt = self.candidate.format
        native = PARSERS[fmt].parse(payload, path=path)
        tree = convert_tree(
            native,
            max_depth=self.max_parse_depth,
            path=path,
            coerce_strings=fmt is FileFormat.INI,
        )
        log_debug("config_file_loaded", layer=self.layer, path=path, format=fmt.value, keys=len(tree))
        return tree


def convert_tree(
    native: Any,
    *,
    max_depth: int,
    path: str | None = None,
    coerce_strings: bool = False,
) -> dict[str, Any]:
    """Convert a parser's Dict-rooted tree into the common value tree.

    The depth counter starts at ``0`` for the root and grows by one on every
    descent into a table or array; exceeding *max_depth* raises
    :class:`DepthLimitExceeded`. Containers are walked with an explicit work
    stack, so the limit may exceed the interpreter's recursion limit.

    Examples
    --------
    >>> convert_tree({"a": {"b": [1, None]}}, max_depth=8)
    {'a': {'b': [1, 'null']}}
    >>> convert_tree({"a": {"b": {"c": 1}}}, max_depth=2)
    Traceback (most recent call last):
    ...
    lib_quantum_config.domain.errors.DepthLimitExceeded: Configuration parsing depth limit (2) exceeded in file: <unknown>
    """

    if not isinstance(native, dict):
        raise FileParse("document", path, "document root is not a table/object")
    root: dict[str, Any] = {}
    pending: list[tuple[Any, Any, int]] = [(native, root, 0)]
    while pending:
        source, target, depth = pending.pop()
        items = source.items() if isinstance(source, dict) else enumerate(source)
        for key, item in items:
            if depth >= max_depth:
                raise DepthLimitExceeded(max_depth, path)
            if isinstance(item, dict):
                child: Any = {}
                pending.append((item, child, depth + 1))
            elif isinstance(item, (list, tuple)):
                child = []
                pending.append((item, child, depth + 1))
            else:
                child = _convert_leaf(item, path, coerce_strings)
            if isinstance(target, dict):
                target[str(key)] = child
            else:
                target.append(child)
    return root


def _convert_leaf(value: Any, path: str | None, coerce_strings: bool) -> Any:
    if isinstance(value, str):
        return coerce_scalar(value) if coerce_strings else value
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if I64_MIN <= value <= U64_MAX:
            return value
        try:
            return float(value)
        except OverflowError as exc:
            raise FileParse("document", path, f"number {value} is out of range") from exc
    if isinstance(value, float):
        return value
    if value is None:
        return "null"
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    return str(value)

