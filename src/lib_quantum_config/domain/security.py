"""Path security validation.

Purpose
-------
Reject path-traversal attempts and malformed paths before any filesystem call
happens, not even an existence check. The validator blocks *traversal*; plain
relative paths and absolute paths supplied by a trusted operator pass.

Contents
--------
* :func:`validate_path` – checks a candidate configuration path.
* :func:`validate_name_segment` – checks an application name used as a path
  component.
"""

from __future__ import annotations

import os
import posixpath
import re
from typing import Final
from urllib.parse import unquote

from .errors import SecurityViolation

_SEPARATORS: Final = re.compile(r"[\\/]")
_TRAVERSAL: Final[str] = ".."


def validate_path(path: str | os.PathLike[str], *, root: str | os.PathLike[str] | None = None) -> str:
    """Return *path* as ``str`` when it is safe, otherwise raise ``SecurityViolation``.

    Checks, in order: NUL bytes, ``..`` segments (both separators), ``..``
    segments hidden behind percent-encoding, and, when *root* is given,
    whether the normalised path stays inside *root*.

    Examples
    --------
    >>> validate_path("conf/app.toml")
    'conf/app.toml'
    >>> validate_path("/etc/demo/config.toml")
    '/etc/demo/config.toml'
    >>> validate_path("../../etc/passwd")
    Traceback (most recent call last):
    ...
    lib_quantum_config.domain.errors.SecurityViolation: Path traversal detected in configuration path
    """

    text = os.fspath(path)
    if "\x00" in text:
        raise SecurityViolation("Configuration path contains NUL bytes")
    if _has_traversal(text):
        raise SecurityViolation("Path traversal detected in configuration path")
    decoded = unquote(text)
    if decoded != text and ("\x00" in decoded or _has_traversal(decoded)):
        raise SecurityViolation("Encoded path traversal detected in configuration path")
    if root is not None and not _is_within(text, os.fspath(root)):
        raise SecurityViolation("Configuration path resolves outside the expected root")
    return text


def validate_name_segment(name: str) -> str:
    """Return *name* when it is usable as a single path component.

    Examples
    --------
    >>> validate_name_segment("my-app")
    'my-app'
    >>> validate_name_segment("../evil")
    Traceback (most recent call last):
    ...
    lib_quantum_config.domain.errors.SecurityViolation: Application name must be a single path component
    """

    if not name or "\x00" in name:
        raise SecurityViolation("Application name must be a non-empty string without NUL bytes")
    if _SEPARATORS.search(name) or name in {".", _TRAVERSAL}:
        raise SecurityViolation("Application name must be a single path component")
    return name


def _has_traversal(text: str) -> bool:
    return any(segment == _TRAVERSAL for segment in _SEPARATORS.split(text))


def _is_within(path: str, root: str) -> bool:
    root_norm = posixpath.normpath(root.replace("\\", "/"))
    joined = posixpath.normpath(posixpath.join(root_norm, path.replace("\\", "/")))
    if root_norm == "/":
        return joined.startswith("/")
    return joined == root_norm or joined.startswith(root_norm.rstrip("/") + "/")
