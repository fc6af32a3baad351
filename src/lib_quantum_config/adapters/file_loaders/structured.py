"""Format-specific parsers for configuration files.

Purpose
-------
Turn raw file bytes into each parser's native tree. Parsers are small wrappers
around ``tomllib``/``json``/``configparser`` so error translation and logging
live in one place; the depth-bounded conversion into the common value tree is
done by :mod:`lib_quantum_config.adapters.file_loaders.provider`.

Contents
--------
* :class:`BaseParser` – decoding and mapping validation shared by parsers.
* :class:`TOMLParser` – TOML via :mod:`tomllib` (``tomli`` before 3.11).
* :class:`JSONParser` – JSON via :mod:`json`.
* :class:`INIParser` – INI via :mod:`configparser`; section-less keys land at
  the root and each section becomes one table level.
* :data:`PARSERS` – lookup keyed by :class:`FileFormat`.
"""

from __future__ import annotations

import configparser
import json
from typing import Any, Final, Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

from ...domain.errors import FileParse, display_path
from ...domain.files import FileFormat
from ...observability import log_error

# Header names no real INI file can spell, used to collect section-less keys
# and to keep ``[DEFAULT]`` an ordinary section.
_ROOT_SECTION: Final[str] = "\x00root\x00"
_NO_DEFAULTS: Final[str] = "\x00defaults\x00"


class BaseParser:
    """Shared helpers for the concrete parsers."""

    format: FileFormat

    def parse(self, payload: bytes, *, path: str) -> Mapping[str, Any]:
        """Return the native tree for *payload* or raise ``FileParse``.

        The nesting limit is enforced during conversion; a parser that runs
        out of recursion on its own is reported as ``FileParse``.
        """

        try:
            data = self._parse(self._decode(payload, path=path), path=path)
        except RecursionError as exc:
            raise self._failure(path, "document too deeply nested for the parser") from exc
        return self._ensure_mapping(data, path=path)

    def _parse(self, text: str, *, path: str) -> object:
        raise NotImplementedError

    def _decode(self, payload: bytes, *, path: str) -> str:
        try:
            return payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise self._failure(path, f"invalid UTF-8: {exc}") from exc

    def _ensure_mapping(self, data: object, *, path: str) -> Mapping[str, Any]:
        """Ensure the document root is a table."""

        if not isinstance(data, Mapping):
            raise self._failure(path, "document root is not a table/object")
        return data

    def _failure(self, path: str, detail: str) -> FileParse:
        log_error("config_file_invalid", layer="file", path=path, format=self.format.value, error=detail)
        return FileParse(self.format.display_name, path, detail)


class TOMLParser(BaseParser):
    """Parse TOML documents using the standard library parser.

    Examples
    --------
    >>> TOMLParser().parse(b'[server]\\nport = 8080', path="config.toml")
    {'server': {'port': 8080}}
    """

    format = FileFormat.TOML

    def _parse(self, text: str, *, path: str) -> object:
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise self._failure(path, str(exc)) from exc


class JSONParser(BaseParser):
    """Parse JSON documents.

    Examples
    --------
    >>> JSONParser().parse(b'{"debug": true}', path="config.json")
    {'debug': True}
    """

    format = FileFormat.JSON

    def _parse(self, text: str, *, path: str) -> object:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise self._failure(path, str(exc)) from exc


class INIParser(BaseParser):
    """Parse INI documents into at most two levels of plain strings.

    Keys keep their case, interpolation is disabled, and keys that appear
    before the first section header are returned at the root.

    Examples
    --------
    >>> INIParser().parse(b'name = demo\\n[server]\\nport = 80', path="a.ini")
    {'name': 'demo', 'server': {'port': '80'}}
    """

    format = FileFormat.INI

    def _parse(self, text: str, *, path: str) -> object:
        parser = configparser.ConfigParser(interpolation=None, default_section=_NO_DEFAULTS)
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        try:
            parser.read_string(f"[{_ROOT_SECTION}]\n{text}", source=display_path(path))
        except configparser.Error as exc:
            raise self._failure(path, _describe_ini_error(exc)) from exc
        root: dict[str, Any] = dict(parser.items(_ROOT_SECTION))
        for section in parser.sections():
            if section == _ROOT_SECTION:
                continue
            if section in root:
                raise self._failure(path, f"section [{section}] collides with a top-level key")
            root[section] = {key: value for key, value in parser.items(section)}
        return root


def _describe_ini_error(exc: configparser.Error) -> str:
    """Rebuild a configparser message in file terms.

    Line numbers are shifted back by one for the injected root header, and the
    root section is shown as ``<root>``.
    """

    if isinstance(exc, configparser.DuplicateSectionError):
        return f"{_line(exc.lineno)}section [{exc.section}] already exists"
    if isinstance(exc, configparser.DuplicateOptionError):
        return f"{_line(exc.lineno)}option '{exc.option}' in section {_section_label(exc.section)} already exists"
    if isinstance(exc, configparser.ParsingError):
        return "; ".join(f"{_line(lineno)}cannot parse {str(line).strip()}" for lineno, line in exc.errors)
    return str(exc).replace(repr(_ROOT_SECTION), "<root>").replace(_ROOT_SECTION, "<root>")


def _line(lineno: int | None) -> str:
    return "" if lineno is None else f"line {lineno - 1}: "


def _section_label(section: str) -> str:
    return "<root>" if section == _ROOT_SECTION else f"[{section}]"


PARSERS: Final[dict[FileFormat, BaseParser]] = {
    FileFormat.TOML: TOMLParser(),
    FileFormat.JSON: JSONParser(),
    FileFormat.INI: INIParser(),
}
