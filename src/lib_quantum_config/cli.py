"""CLI adapter for ``lib_quantum_config`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators inspect aggregation outcomes (merged tree, provenance, env
prefixes, path checks) without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata.
* :func:`cli_env_prefix` – exposes :func:`default_env_prefix`.
* :func:`cli_check_path` – runs the path security validator.
* :func:`cli_read_config` – aggregates files, environment, and its own
  standard options, then prints JSON.
* :func:`main` – entry point used by the console script.

System Role
-----------
Outermost layer: it calls the composition root and never reaches into adapter
internals beyond building a :class:`ClickProvider` over its own context.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.cli.click_provider import DEFAULT_ARG_MAPPING, ClickProvider, config_options
from .core import read_config_raw
from .domain.config import Config
from .domain.errors import SecurityViolation
from .domain.meta import DEFAULT_MAX_PARSE_DEPTH, AppMeta, default_env_prefix
from .domain.security import validate_path

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
DIST_NAME: Final[str] = "lib_quantum_config"
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Multi-source configuration aggregation",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=DIST_NAME,
    message="lib_quantum_config version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(DIST_NAME)
    except metadata.PackageNotFoundError:
        click.echo(f"{DIST_NAME} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', DIST_NAME)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("env-prefix", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("app_name")
def cli_env_prefix(app_name: str) -> None:
    """Print the canonical environment prefix for *app_name*.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["env-prefix", "config-kit"])
    >>> result.output.strip()
    'CONFIG_KIT_'
    """

    click.echo(default_env_prefix(app_name))


@cli.command("check-path", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("path")
@click.option("--root", default=None, help="Directory the path must stay inside")
def cli_check_path(path: str, root: Optional[str]) -> None:
    """Validate *path* without touching the filesystem.

    Exits with status 1 and the violation message when the path is rejected.
    """

    try:
        validate_path(path, root=root)
    except SecurityViolation as exc:
        raise click.ClickException(exc.message) from exc
    click.echo(f"ok: {path}")


@cli.command("read", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--app", "app_name", required=True, help="Application name used for directories and file stems")
@click.option("--env-prefix", default=None, help="Environment prefix (defaults to the upper-cased app name)")
@click.option(
    "--max-parse-depth",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_PARSE_DEPTH,
    show_default=True,
    help="Nesting limit for configuration files",
)
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include provenance metadata for each key in the output",
)
@config_options
@click.pass_context
def cli_read_config(
    ctx: click.Context,
    app_name: str,
    env_prefix: Optional[str],
    max_parse_depth: int,
    indent: Optional[int],
    provenance: bool,
    config: Optional[str],
    config_dir: Optional[str],
    **_standard: object,
) -> None:
    """Aggregate configuration for ``--app`` and print the result as JSON.

    The standard options (``--log-level``, ``--verbose``, ...) form the
    highest-precedence layer, so ``--log-level debug`` shows up as
    ``logging.level`` in the output.
    """

    meta = AppMeta(app_name, env_prefix, max_parse_depth)
    provider = ClickProvider(ctx, names=DEFAULT_ARG_MAPPING.keys())
    data, origins = read_config_raw(
        meta,
        config_file=config,
        config_dirs=[config_dir] if config_dir else (),
        cli=provider,
    )
    if provenance:
        payload = {"config": data, "provenance": origins}
        click.echo(json.dumps(payload, indent=indent, separators=(",", ":"), ensure_ascii=False))
        return
    click.echo(Config(data, origins).to_json(indent=indent))


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=DIST_NAME,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
