"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by providers, the merge engine, the
composition root, and consuming applications. The hierarchy lives in the domain
layer so outer layers may depend on it without creating import cycles.

Contents
--------
* :class:`ConfigError` – umbrella base class for all aggregation failures.
* :class:`InvalidFormat` – parent of :class:`FileParse` and
  :class:`UnsupportedFormat`.
* :class:`SpecifiedFileNotFound` – an explicitly requested file is missing.
* :class:`SecurityViolation` – unsafe path rejected before any I/O.
* :class:`ValidationError` – oversized or unsafe environment content.
* :class:`KeyConflict` – two sources disagree about the shape of a key.
* :class:`InternalError` / :class:`DepthLimitExceeded` – invariant breaches.
* :class:`NotFound` – recoverable absence (``ConfigDirNotFound`` and
  ``NoConfigFilesFoundInDir``).
* :func:`display_path` – redacts directories from paths shown in messages.

System Role
-----------
Adapters raise these exceptions; the composition root tags them with the
originating layer and lets them propagate. Callers catch :class:`ConfigError`
to handle every library failure uniformly.
"""

from __future__ import annotations

import os
from pathlib import PurePath
from typing import Final

DEBUG_PATHS_ENV: Final[str] = "LIB_QUANTUM_CONFIG_DEBUG_PATHS"
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


def display_path(path: str | os.PathLike[str] | None) -> str:
    """Return *path* as it may appear in a user-facing message.

    Why
    ----
    Paths below a user's home directory can reveal account names or private
    folder layouts. Only the file name is shown unless debug paths are enabled
    through ``LIB_QUANTUM_CONFIG_DEBUG_PATHS``.

    Examples
    --------
    >>> import os
    >>> previous = os.environ.pop(DEBUG_PATHS_ENV, None)
    >>> display_path("/home/alice/.ssh/id_rsa.toml")
    'id_rsa.toml'
    >>> display_path(None)
    '<unknown>'
    >>> if previous is not None:
    ...     os.environ[DEBUG_PATHS_ENV] = previous
    """

    if path is None:
        return "<unknown>"
    text = os.fspath(path)
    if debug_paths_enabled():
        return text
    name = PurePath(text.replace("\\", "/")).name
    return name or text


def debug_paths_enabled() -> bool:
    """Return ``True`` when full paths may be shown in error messages."""

    return os.environ.get(DEBUG_PATHS_ENV, "").strip().lower() in _TRUTHY


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_quantum_config``.

    What
    ----
    Carries an optional ``layer`` naming the provider that failed. The
    composition root fills it in so the final message identifies the source.
    """

    def __init__(self, message: str, *, layer: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.layer = layer

    def __str__(self) -> str:
        if self.layer:
            return f"[{self.layer}] {self.message}"
        return self.message


class InvalidFormat(ConfigError):
    """Raised when an input artifact cannot be interpreted as configuration."""


class FileParse(InvalidFormat):
    """Malformed file contents for the declared format.

    Examples
    --------
    >>> str(FileParse("TOML", "/etc/demo/config.toml", "bad key"))
    'Failed to parse TOML file config.toml: bad key'
    """

    def __init__(self, format_name: str, path: str | os.PathLike[str] | None, detail: str) -> None:
        self.format_name = format_name
        self.path = None if path is None else os.fspath(path)
        self.detail = detail
        super().__init__(f"Failed to parse {format_name} file {display_path(path)}: {detail}")


class UnsupportedFormat(InvalidFormat):
    """The file extension does not map to a supported format."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        super().__init__(f"Unsupported configuration file format for: {display_path(path)}")


class SpecifiedFileNotFound(ConfigError):
    """An explicitly requested configuration file does not exist.

    Unlike :class:`NotFound` this is terminal: the operator asked for the file.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        super().__init__(f"Specified configuration file not found: {display_path(path)}")


class SecurityViolation(ConfigError):
    """A path was rejected before it reached the filesystem."""


class ValidationError(ConfigError):
    """Environment content (key or value) failed length or byte-safety checks."""


class KeyConflict(ConfigError):
    """Two sources disagree whether *path* is a table or a leaf."""

    def __init__(self, path: str, detail: str | None = None) -> None:
        self.path = path
        reason = detail or "cannot be both a value and a nested table"
        super().__init__(f"Key conflict at '{path}': {reason}")


class InternalError(ConfigError):
    """Invariant breach or programming error (e.g. unknown CLI argument)."""


class DepthLimitExceeded(InternalError):
    """A document nests deeper than the configured ``max_parse_depth``."""

    def __init__(self, limit: int, path: str | os.PathLike[str] | None) -> None:
        self.limit = limit
        self.path = None if path is None else os.fspath(path)
        super().__init__(f"Configuration parsing depth limit ({limit}) exceeded in file: {display_path(path)}")


class NotFound(ConfigError):
    """Represents missing-but-optional resources (directories, files).

    The composition root treats this family as "contributes nothing" unless
    the caller explicitly required the resource.
    """


class ConfigDirNotFound(NotFound):
    """Neither a system nor a user configuration directory can be determined."""

    def __init__(self, dir_type: str, expected_path: str | os.PathLike[str] | None = None) -> None:
        self.dir_type = dir_type
        self.expected_path = None if expected_path is None else os.fspath(expected_path)
        where = display_path(expected_path) if expected_path is not None else "None"
        super().__init__(f"Configuration directory for {dir_type} not found. Expected at: {where}")


class NoConfigFilesFoundInDir(NotFound):
    """A configuration directory exists but holds no supported file."""

    def __init__(self, dir_type: str, path: str | os.PathLike[str]) -> None:
        self.dir_type = dir_type
        self.path = os.fspath(path)
        super().__init__(f"No supported configuration files found in {dir_type} directory: {display_path(path)}")
