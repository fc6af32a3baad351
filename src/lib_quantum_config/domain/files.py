"""Configuration file formats and candidate descriptors."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import UnsupportedFormat


class FileFormat(str, Enum):
    """Structured formats understood by the file provider."""

    TOML = "toml"
    JSON = "json"
    INI = "ini"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return self.value.upper()

    @classmethod
    def from_extension(cls, extension: str) -> FileFormat | None:
        """Return the format for *extension* (with or without dot, any case).

        Examples
        --------
        >>> FileFormat.from_extension(".TOML")
        <FileFormat.TOML: 'toml'>
        >>> FileFormat.from_extension("yaml") is None
        True
        """

        try:
            return cls(extension.lower().lstrip("."))
        except ValueError:
            return None

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> FileFormat:
        """Infer the format of *path* from its suffix or raise ``UnsupportedFormat``."""

        found = cls.from_extension(Path(path).suffix)
        if found is None:
            raise UnsupportedFormat(path)
        return found


#: Discovery order inside a single directory.
SUPPORTED_FORMATS: tuple[FileFormat, ...] = (FileFormat.TOML, FileFormat.JSON, FileFormat.INI)


@dataclass(frozen=True)
class ConfigFileCandidate:
    """A file the file provider should read.

    ``is_required`` is ``True`` only for explicitly specified files; a missing
    required file is fatal while a missing discovered file contributes nothing.
    """

    path: Path
    format: FileFormat
    is_required: bool = False
