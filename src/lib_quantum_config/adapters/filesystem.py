"""Local filesystem adapter implementing :class:`~lib_quantum_config.application.ports.FileSystem`."""

from __future__ import annotations

from pathlib import Path

from ..application.ports import PathLike
from ..observability import log_debug


class LocalFileSystem:
    """Thin wrapper over :mod:`pathlib` so tests can inject a recording stub."""

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def is_file(self, path: PathLike) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def read_bytes(self, path: PathLike) -> bytes:
        payload = Path(path).read_bytes()
        log_debug("config_file_read", layer="file", path=str(path), size=len(payload))
        return payload
