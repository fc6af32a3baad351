"""Command-line provider built on Click's parsed context.

Purpose
-------
Expose the arguments an operator actually supplied as the highest-precedence
configuration layer. The provider reads an already-parsed
:class:`click.Context`; it never parses ``sys.argv`` on its own unless asked
through :meth:`ClickProvider.from_args`.

Contents
--------
* :data:`DEFAULT_ARG_MAPPING` – argument name to dotted config path for the
  standard options.
* :func:`config_options` – decorator registering the standard options.
* :class:`ClickProvider` – the provider.

Rules
-----
* Only arguments whose value came from the command line, the environment, or
  a prompt contribute; defaults belong to the application's typed extraction.
* Boolean flags contribute ``True`` when set and nothing otherwise.
* Strings and paths are coerced; ``multiple``/``nargs`` values become arrays.
* Other converted objects (files, dates) raise ``InternalError``.
* Asking for an argument the command never registered is a programming error.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Final, Iterable, Mapping, Sequence, TypeVar

import click
from click.core import ParameterSource

from ...domain.coercion import coerce_scalar
from ...domain.errors import InternalError
from ...domain.tree import insert_path, split_key
from ...observability import log_debug

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_ARG_MAPPING: Final[Mapping[str, str]] = {
    "config": "config_file",
    "config_dir": "config_dir",
    "log_level": "logging.level",
    "verbose": "logging.verbose",
    "quiet": "logging.quiet",
    "output": "output.path",
    "format": "output.format",
}

LOG_LEVEL_CHOICES: Final[tuple[str, ...]] = ("trace", "debug", "info", "warn", "error")
FORMAT_CHOICES: Final[tuple[str, ...]] = ("json", "toml", "ini", "text")

_SUPPLIED: Final[frozenset[ParameterSource]] = frozenset(
    {ParameterSource.COMMANDLINE, ParameterSource.ENVIRONMENT, ParameterSource.PROMPT}
)


def config_options(func: F) -> F:
    """Attach the standard configuration options to a Click command.

    ``--config`` and ``--config-dir`` skip Click's ``exists``
    checks: the path resolver validates them for traversal before any
    filesystem access.
    """

    decorators = [
        click.option("--config", "config", type=click.Path(dir_okay=False), default=None, help="Configuration file to load (required once given)"),
        click.option("--config-dir", "config_dir", type=click.Path(file_okay=False), default=None, help="Additional configuration directory to scan"),
        click.option("--log-level", "log_level", type=click.Choice(LOG_LEVEL_CHOICES, case_sensitive=False), default=None, help="Logging level"),
        click.option("--verbose", "verbose", is_flag=True, default=False, help="Enable verbose output"),
        click.option("--quiet", "quiet", is_flag=True, default=False, help="Suppress non-essential output"),
        click.option("--output", "output", type=click.Path(), default=None, help="Output destination"),
        click.option("--format", "format", type=click.Choice(FORMAT_CHOICES, case_sensitive=False), default=None, help="Output format"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


class ClickProvider:
    """Produce a tree from the arguments supplied to a Click command.

    Examples
    --------
    >>> @click.command()
    ... @config_options
    ... def demo(**_: object) -> None:
    ...     pass
    >>> provider = ClickProvider.from_args(demo, ["--log-level", "debug", "--verbose"])
    >>> provider.produce()
    {'logging': {'level': 'debug', 'verbose': True}}
    """

    layer = "cli"

    def __init__(
        self,
        ctx: click.Context,
        *,
        mapping: Mapping[str, str] | None = None,
        separator: str = ".",
        names: Iterable[str] | None = None,
    ) -> None:
        """Bind the provider to a parsed context.

        Parameters
        ----------
        mapping:
            Argument name to config path; defaults to
            :data:`DEFAULT_ARG_MAPPING`. Unmapped names map to themselves.
        names:
            Restrict the provider to these argument names (all registered
            parameters otherwise). Unknown names raise ``InternalError``.
        """

        self._ctx = ctx
        self.mapping = dict(DEFAULT_ARG_MAPPING if mapping is None else mapping)
        self.separator = separator
        self._params: dict[str, click.Parameter] = {
            param.name: param for param in ctx.command.params if param.name and param.expose_value
        }
        if names is None:
            self._names = list(self._params)
        else:
            self._names = list(names)
            for name in self._names:
                self._param(name)

    @classmethod
    def from_args(cls, command: click.Command, args: Sequence[str], **kwargs: Any) -> ClickProvider:
        """Parse *args* with *command* and return a provider over the result."""

        ctx = command.make_context(command.name or "app", list(args))
        return cls(ctx, **kwargs)

    @property
    def source(self) -> str:
        return self._ctx.command_path or "command line"

    def config_path(self, name: str) -> str:
        """Return the dotted configuration path for argument *name*."""

        return self.mapping.get(name, name)

    def contribution(self, name: str) -> Any | None:
        """Return the value argument *name* contributes, or ``None``.

        Raises
        ------
        InternalError
            When *name* was never registered with the command.
        """

        param = self._param(name)
        if self._ctx.get_parameter_source(name) not in _SUPPLIED:
            return None
        value = self._ctx.params.get(name)
        if _is_bool_flag(param):
            return True if value else None
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            if not value:
                return None
            if len(value) == 1 and not _collects_many(param):
                return _to_leaf(value[0])
            return [_to_leaf(item) for item in value]
        return _to_leaf(value)

    def produce(self) -> dict[str, Any]:
        """Return the tree of supplied arguments at their mapped paths."""

        collected: dict[str, Any] = {}
        for name in self._names:
            value = self.contribution(name)
            if value is None:
                continue
            insert_path(collected, split_key(self.config_path(name), self.separator), value)
        log_debug("cli_arguments_loaded", layer=self.layer, path=None, keys=sorted(collected.keys()))
        return collected

    def _param(self, name: str) -> click.Parameter:
        try:
            return self._params[name]
        except KeyError:
            raise InternalError(f"Unknown argument: {name}") from None


def _is_bool_flag(param: click.Parameter) -> bool:
    return isinstance(param, click.Option) and param.is_flag and param.is_bool_flag


def _collects_many(param: click.Parameter) -> bool:
    return bool(getattr(param, "multiple", False)) or param.nargs != 1


def _to_leaf(value: Any) -> Any:
    """Coerce strings and paths; keep numbers and booleans Click already typed.

    Any other converted object (an open ``click.File``, a ``datetime``) has no
    configuration representation and raises ``InternalError``.
    """

    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return coerce_scalar(value)
    if isinstance(value, os.PathLike):
        return coerce_scalar(os.fspath(value))
    raise InternalError(f"Unsupported command-line value type: {type(value).__name__}")
