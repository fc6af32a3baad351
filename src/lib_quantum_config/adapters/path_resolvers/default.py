"""Filesystem path resolution for configuration files.

Purpose
-------
Implement the :class:`lib_quantum_config.application.ports.PathResolver`
protocol by encapsulating OS-specific search rules. The adapter is the only
component that knows where configuration lives on each platform.

Contents
--------
* :class:`DefaultPathResolver` – computes system/user directories, discovers
  candidate files, and validates explicitly specified files.
* :func:`_collect_dir` – yields the canonical files inside one directory.

System Role
-----------
Feeds ordered :class:`ConfigFileCandidate` lists into
:func:`lib_quantum_config.core.build_providers`. Every operator-supplied path
passes :func:`lib_quantum_config.domain.security.validate_path` before the
filesystem is touched.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Final, Iterable, Iterator, Mapping

from ...application.ports import FileSystem, PathLike
from ...domain.errors import ConfigDirNotFound, NoConfigFilesFoundInDir, SecurityViolation, SpecifiedFileNotFound
from ...domain.files import SUPPORTED_FORMATS, ConfigFileCandidate, FileFormat
from ...domain.security import validate_name_segment, validate_path
from ...observability import log_debug, log_warning
from ..filesystem import LocalFileSystem

SYSTEM_DIR_ENV: Final[str] = "LIB_QUANTUM_CONFIG_SYSTEM_DIR"
USER_DIR_ENV: Final[str] = "LIB_QUANTUM_CONFIG_USER_DIR"

#: File stem searched in every directory besides ``<app_name>``.
DEFAULT_STEM: Final[str] = "config"


class DefaultPathResolver:
    """Resolve candidate configuration files for one application.

    Why
    ----
    Centralise discovery so the composition root stays platform-agnostic and
    tests can swap the environment, platform, and filesystem.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> root = Path(tmp.name)
    >>> (root / "demo").mkdir()
    >>> _ = (root / "demo" / "config.toml").write_text("[server]\\nport = 1", encoding="utf-8")
    >>> resolver = DefaultPathResolver(app_name="demo", env={SYSTEM_DIR_ENV: str(root)}, platform="linux")
    >>> [candidate.path.name for candidate in resolver.discover()]
    ['config.toml']
    >>> tmp.cleanup()
    """

    def __init__(
        self,
        *,
        app_name: str,
        env: Mapping[str, str] | None = None,
        platform: str | None = None,
        fs: FileSystem | None = None,
    ) -> None:
        """Store context required to resolve filesystem locations.

        Parameters
        ----------
        app_name:
            Directory name and file stem; must be a single path component.
        env:
            Values layered over :data:`os.environ` (deterministic tests).
        platform:
            ``sys.platform`` clone; defaults to the running interpreter's.
        fs:
            Filesystem port; defaults to :class:`LocalFileSystem`.
        """

        self.app_name = validate_name_segment(app_name)
        self.env = {**os.environ, **(env or {})}
        self.platform = platform or sys.platform
        self._fs = fs or LocalFileSystem()

    def system_dir(self) -> Path | None:
        """Return the machine-wide configuration directory, if determinable."""

        override = self.env.get(SYSTEM_DIR_ENV)
        if override:
            return Path(override) / self.app_name
        if self._is_linux:
            return Path("/etc") / self.app_name
        if self._is_macos:
            return Path("/Library/Application Support") / self.app_name
        if self._is_windows:
            program_data = self.env.get("ProgramData") or self.env.get("PROGRAMDATA")
            return Path(program_data) / self.app_name if program_data else None
        return None

    def user_dir(self) -> Path | None:
        """Return the per-user configuration directory, if determinable."""

        override = self.env.get(USER_DIR_ENV)
        if override:
            return Path(override) / self.app_name
        if self._is_linux:
            xdg = self.env.get("XDG_CONFIG_HOME")
            if xdg:
                return Path(xdg) / self.app_name
            home = _home()
            return home / ".config" / self.app_name if home else None
        if self._is_macos:
            home = _home()
            return home / "Library" / "Application Support" / self.app_name if home else None
        if self._is_windows:
            appdata = self.env.get("APPDATA")
            return Path(appdata) / self.app_name / "config" if appdata else None
        return None

    def discover(self, extra_dirs: Iterable[PathLike] = (), *, require_dirs: bool = False) -> list[ConfigFileCandidate]:
        """Return existing files in system, user, then extra directories.

        Within one directory the order is ``config.{toml,json,ini}`` followed
        by ``<app_name>.{toml,json,ini}``; a file reachable through two
        directories is listed once, at its first position.

        Raises
        ------
        ConfigDirNotFound
            When no directory at all can be determined, or
            when ``require_dirs`` is set and a directory is missing.
        NoConfigFilesFoundInDir
            When ``require_dirs`` is set and a directory holds no candidate.
        SecurityViolation
            When an extra directory fails path validation.
        """

        directories: list[tuple[str, Path | None]] = [("system", self.system_dir()), ("user", self.user_dir())]
        directories.extend(("custom", Path(self._validated(directory))) for directory in extra_dirs)
        if all(base is None for _, base in directories):
            raise ConfigDirNotFound("system or user")

        candidates: list[ConfigFileCandidate] = []
        seen: set[str] = set()
        for dir_type, base in directories:
            if base is None:
                continue
            if not self._fs.is_dir(base):
                if require_dirs:
                    raise ConfigDirNotFound(dir_type, base)
                log_debug("config_dir_missing", layer="file", path=str(base), dir_type=dir_type)
                continue
            found = [candidate for candidate in _collect_dir(base, self._stems(), self._fs) if str(candidate.path) not in seen]
            if require_dirs and not found:
                raise NoConfigFilesFoundInDir(dir_type, base)
            seen.update(str(candidate.path) for candidate in found)
            candidates.extend(found)
            log_debug("path_candidates", layer="file", path=str(base), dir_type=dir_type, count=len(found))
        return candidates

    def specified(self, path: PathLike) -> ConfigFileCandidate:
        """Validate an explicitly specified file and return a required candidate.

        The security check runs first; ``exists`` is never called for a
        rejected path.

        Raises
        ------
        SecurityViolation
            Traversal, encoded traversal, or NUL bytes in *path*.
        SpecifiedFileNotFound
            When *path* does not exist or is not a regular file.
        UnsupportedFormat
            When the extension is not ``.toml``, ``.json`` or ``.ini``.
        """

        text = self._validated(path)
        if not self._fs.exists(text) or not self._fs.is_file(text):
            raise SpecifiedFileNotFound(text)
        return ConfigFileCandidate(Path(text), FileFormat.from_path(text), is_required=True)

    def _validated(self, path: PathLike) -> str:
        try:
            return validate_path(path)
        except SecurityViolation as exc:
            log_warning("security_violation", layer="file", path=os.fspath(path), error=exc.message)
            raise

    def _stems(self) -> tuple[str, ...]:
        if self.app_name == DEFAULT_STEM:
            return (DEFAULT_STEM,)
        return (DEFAULT_STEM, self.app_name)

    @property
    def _is_linux(self) -> bool:
        return self.platform.startswith("linux")

    @property
    def _is_macos(self) -> bool:
        return self.platform == "darwin"

    @property
    def _is_windows(self) -> bool:
        return self.platform.startswith("win")


def _collect_dir(base: Path, stems: Iterable[str], fs: FileSystem) -> Iterator[ConfigFileCandidate]:
    """Yield the canonical configuration files present under *base*."""

    for stem in stems:
        for fmt in SUPPORTED_FORMATS:
            path = base / f"{stem}.{fmt.extension}"
            if fs.is_file(path):
                yield ConfigFileCandidate(path, fmt)


def _home() -> Path | None:
    try:
        return Path.home()
    except RuntimeError:
        return None
