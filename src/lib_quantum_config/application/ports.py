"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts adapters satisfy so the composition root and
the merge engine never depend on concrete provider classes.

Contents
--------
* :class:`ProviderOutput` – one provider's tree tagged with its identity.
* :class:`Provider` – capability interface implemented by file, environment,
  and CLI providers.
* :class:`FileSystem` – the filesystem operations the resolver and file
  provider need (injectable for tests).
* :class:`PathResolver` – enumerates candidate configuration files.
* :class:`Merger` – folds provider outputs into one tree plus provenance.

System Role
-----------
These protocols keep dependency inversion enforceable: contract tests assert
every default adapter satisfies them via ``isinstance`` checks.
"""

from __future__ import annotations

import os
from typing import Any, Iterable, NamedTuple, Protocol, Sequence, runtime_checkable

from ..domain.files import ConfigFileCandidate

PathLike = str | os.PathLike[str]


class ProviderOutput(NamedTuple):
    """Dict-rooted tree produced by one provider invocation.

    The position of an output in the list handed to the merge engine is its
    priority: later outputs override earlier ones.
    """

    layer: str
    data: dict[str, Any]
    path: str | None = None


@runtime_checkable
class Provider(Protocol):
    """Produce a Dict-rooted configuration tree.

    ``layer`` identifies the provider kind for provenance; ``source`` is a
    human-readable diagnostic label (a file path, an env prefix, ...).
    """

    @property
    def layer(self) -> str:
        """Provider identity used in provenance and error messages."""

    @property
    def source(self) -> str | None:
        """Diagnostic label for the data this provider reads."""

    def produce(self) -> dict[str, Any]:
        """Return the provider's tree or raise a ``ConfigError``."""


@runtime_checkable
class FileSystem(Protocol):
    """Minimal filesystem surface used by discovery and file loading."""

    def exists(self, path: PathLike) -> bool:
        """Return ``True`` when *path* exists."""

    def is_file(self, path: PathLike) -> bool:
        """Return ``True`` when *path* is a regular file."""

    def is_dir(self, path: PathLike) -> bool:
        """Return ``True`` when *path* is a directory."""

    def read_bytes(self, path: PathLike) -> bytes:
        """Return the raw contents of *path*."""


@runtime_checkable
class PathResolver(Protocol):
    """Discover configuration files in ascending priority order."""

    def discover(self, extra_dirs: Iterable[PathLike] = (), *, require_dirs: bool = False) -> list[ConfigFileCandidate]:
        """Return existing, non-required candidates (system, user, extra dirs)."""

    def specified(self, path: PathLike) -> ConfigFileCandidate:
        """Validate an explicitly specified file and return a required candidate."""


class Merger(Protocol):
    """Combine provider outputs and produce merged data plus provenance."""

    def __call__(
        self, layers: Sequence[ProviderOutput]
    ) -> tuple[dict[str, Any], dict[str, dict[str, Any]]]:
        """Deterministically merge *layers* preserving precedence order."""
