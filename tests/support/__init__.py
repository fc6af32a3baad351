"""Shared sandbox helpers for tests that touch real configuration directories.

The sandbox points the resolver's system and user roots at temporary
directories through the override environment variables, so discovery is
deterministic on every platform.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from lib_quantum_config.adapters.path_resolvers.default import SYSTEM_DIR_ENV, USER_DIR_ENV


@dataclass
class ConfigSandbox:
    """Temporary system/user configuration roots for one application."""

    root: Path
    app_name: str
    env: dict[str, str] = field(default_factory=dict)

    @property
    def roots(self) -> dict[str, Path]:
        return {
            "system": self.root / "system" / self.app_name,
            "user": self.root / "user" / self.app_name,
            "custom": self.root / "custom",
        }

    def write(self, layer: str, name: str, *, content: str) -> Path:
        """Write *content* to ``<layer root>/<name>`` creating parents."""

        path = self.roots[layer] / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


def create_sandbox(tmp_path: Path, *, app_name: str = "demo") -> ConfigSandbox:
    """Return a sandbox whose ``env`` redirects discovery into *tmp_path*."""

    env = {
        SYSTEM_DIR_ENV: str(tmp_path / "system"),
        USER_DIR_ENV: str(tmp_path / "user"),
    }
    return ConfigSandbox(root=tmp_path, app_name=app_name, env=env)


class RecordingFileSystem:
    """In-memory filesystem that records every call it receives."""

    def __init__(self, files: dict[str, bytes] | None = None, dirs: set[str] | None = None) -> None:
        self.files = {Path(name).as_posix(): payload for name, payload in (files or {}).items()}
        self.dirs = {Path(name).as_posix() for name in (dirs or set())}
        self.calls: list[tuple[str, str]] = []

    def exists(self, path) -> bool:
        key = self._record("exists", path)
        return key in self.files or key in self.dirs

    def is_file(self, path) -> bool:
        return self._record("is_file", path) in self.files

    def is_dir(self, path) -> bool:
        return self._record("is_dir", path) in self.dirs

    def read_bytes(self, path) -> bytes:
        key = self._record("read_bytes", path)
        try:
            return self.files[key]
        except KeyError:
            raise FileNotFoundError(2, "No such file or directory", str(path)) from None

    def _record(self, operation: str, path) -> str:
        key = Path(path).as_posix()
        self.calls.append((operation, key))
        return key


__all__ = ["ConfigSandbox", "RecordingFileSystem", "create_sandbox"]
