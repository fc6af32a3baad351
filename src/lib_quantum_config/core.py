"""Composition root for ``lib_quantum_config``.

Purpose
-------
Provide the entry points that wire path resolution, file loading,
environment ingestion, command-line contributions, and the merge policy
together. Adapters stay unaware of each other; only this module knows the
precedence order.

Contents
--------
* :func:`aggregate` – produce every provider in order and merge the outputs.
* :func:`build_providers` – construct providers for one application in
  precedence order (files, environment, command line).
* :func:`read_config` – high-level API returning a :class:`Config` instance.
* :func:`read_config_raw` – lower-level API returning raw data + provenance.

System Role
-----------
Every :class:`ConfigError` escaping an adapter is tagged with the layer that
raised it and logged as ``layer_error`` before propagating. Optional absence
(``NotFound``) contributes nothing unless the caller required directories.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from .adapters.env.default import EnvProvider
from .adapters.file_loaders.provider import FileProvider
from .adapters.filesystem import LocalFileSystem
from .adapters.path_resolvers.default import DefaultPathResolver
from .application.merge import merge_layers
from .application.ports import FileSystem, PathLike, PathResolver, Provider, ProviderOutput
from .domain.config import EMPTY_CONFIG, Config
from .domain.errors import ConfigError, NotFound
from .domain.files import ConfigFileCandidate
from .domain.meta import DEFAULT_MAX_PARSE_DEPTH, AppMeta
from .observability import log_debug, log_error, log_info, make_event

RawConfig = tuple[dict[str, Any], dict[str, dict[str, Any]]]


def aggregate(providers: Iterable[Provider]) -> RawConfig:
    """Produce *providers* in order (lowest precedence first) and merge them.

    Why
    ----
    Callers with custom providers (a remote store, a test double) reuse the
    same tagging, logging, and merge policy as :func:`read_config`.

    Raises
    ------
    ConfigError
        The first provider failure, tagged with the provider's ``layer``, or a
        :class:`KeyConflict` from the merge.

    Examples
    --------
    >>> env = EnvProvider("DEMO", environ={"DEMO_SERVER__PORT": "8080"})
    >>> data, meta = aggregate([env])
    >>> data, meta["server.port"]["layer"]
    ({'server': {'port': 8080}}, 'env')
    """

    outputs = [_produce(provider) for provider in providers]
    if not any(output.data for output in outputs):
        log_info("configuration_empty", layer="none", path=None, providers=len(outputs))
        return {}, {}
    merged, meta = merge_layers(outputs)
    log_info("configuration_merged", layer="final", path=None, total_layers=len(outputs), keys=len(meta))
    return merged, meta


def build_providers(
    meta: AppMeta,
    *,
    config_file: PathLike | None = None,
    config_dirs: Iterable[PathLike] = (),
    cli: Provider | None = None,
    environ: Mapping[str, str] | None = None,
    resolver: PathResolver | None = None,
    fs: FileSystem | None = None,
    require_dirs: bool = False,
) -> list[Provider]:
    """Return the providers for *meta* ordered from lowest to highest precedence.

    Order: discovered files (system, user, ``config_dirs``), the explicitly
    specified ``config_file``, the environment, and finally *cli*.

    Raises
    ------
    SecurityViolation
        When ``config_file`` or a ``config_dirs`` entry fails validation.
    SpecifiedFileNotFound / UnsupportedFormat
        When ``config_file`` is missing or has an unknown extension.
    NotFound
        Only when ``require_dirs`` is set.
    """

    fs = fs or LocalFileSystem()
    resolver = resolver or DefaultPathResolver(app_name=meta.app_name, env=environ, fs=fs)
    candidates = _resolve_candidates(resolver, config_file, config_dirs, require_dirs)

    providers: list[Provider] = [
        FileProvider(candidate, max_parse_depth=meta.max_parse_depth, fs=fs) for candidate in candidates
    ]
    providers.append(EnvProvider(meta.resolved_env_prefix, environ=environ))
    if cli is not None:
        providers.append(cli)
    return providers


def read_config(
    app_name: str | AppMeta,
    *,
    env_prefix: str | None = None,
    max_parse_depth: int = DEFAULT_MAX_PARSE_DEPTH,
    config_file: PathLike | None = None,
    config_dirs: Iterable[PathLike] = (),
    cli: Provider | None = None,
    environ: Mapping[str, str] | None = None,
    resolver: PathResolver | None = None,
    fs: FileSystem | None = None,
    require_dirs: bool = False,
) -> Config:
    """Return the merged configuration as a :class:`Config` value object.

    What
    ----
    Delegates to :func:`read_config_raw` and wraps the result, returning
    :data:`EMPTY_CONFIG` when no provider produced content.

    Parameters
    ----------
    app_name:
        Application name, or a ready :class:`AppMeta` (then ``env_prefix``
        and ``max_parse_depth`` are taken from it).
    config_file:
        Explicit file; it must exist and outranks discovered files.
    config_dirs:
        Extra directories searched after the system and user directories.
    cli:
        Highest-precedence provider, typically a
        :class:`~lib_quantum_config.adapters.cli.click_provider.ClickProvider`.
    environ:
        Environment mapping; defaults to :data:`os.environ`.

    Examples
    --------
    >>> import os
    >>> from pathlib import Path
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> root = Path(tmp.name)
    >>> (root / "demo").mkdir()
    >>> _ = (root / "demo" / "config.toml").write_text('[service]\\nname = "demo"', encoding="utf-8")
    >>> env = {"LIB_QUANTUM_CONFIG_SYSTEM_DIR": str(root), "LIB_QUANTUM_CONFIG_USER_DIR": str(root / "none")}
    >>> cfg = read_config("demo", environ=env)
    >>> cfg.get("service.name"), cfg.origin("service.name")["layer"]
    ('demo', 'file')
    >>> tmp.cleanup()
    """

    data, meta = read_config_raw(
        app_name,
        env_prefix=env_prefix,
        max_parse_depth=max_parse_depth,
        config_file=config_file,
        config_dirs=config_dirs,
        cli=cli,
        environ=environ,
        resolver=resolver,
        fs=fs,
        require_dirs=require_dirs,
    )
    if not data:
        return EMPTY_CONFIG
    return Config(data, meta)


def read_config_raw(
    app_name: str | AppMeta,
    *,
    env_prefix: str | None = None,
    max_parse_depth: int = DEFAULT_MAX_PARSE_DEPTH,
    config_file: PathLike | None = None,
    config_dirs: Iterable[PathLike] = (),
    cli: Provider | None = None,
    environ: Mapping[str, str] | None = None,
    resolver: PathResolver | None = None,
    fs: FileSystem | None = None,
    require_dirs: bool = False,
) -> RawConfig:
    """Return ``(merged_data, provenance)`` without the :class:`Config` wrapper.

    Why
    ----
    Tooling sometimes needs primitive structures for serialisation without
    the ``Mapping`` interface.
    """

    meta = app_name if isinstance(app_name, AppMeta) else AppMeta(app_name, env_prefix, max_parse_depth)
    providers = build_providers(
        meta,
        config_file=config_file,
        config_dirs=config_dirs,
        cli=cli,
        environ=environ,
        resolver=resolver,
        fs=fs,
        require_dirs=require_dirs,
    )
    return aggregate(providers)


def _produce(provider: Provider) -> ProviderOutput:
    """Run one provider, tagging and logging any failure with its layer."""

    try:
        data = provider.produce()
    except ConfigError as exc:
        _tag(exc, provider.layer, provider.source)
        raise
    log_debug("layer_loaded", **make_event(provider.layer, provider.source, {"keys": len(data)}))
    return ProviderOutput(provider.layer, data, provider.source)


def _resolve_candidates(
    resolver: PathResolver,
    config_file: PathLike | None,
    config_dirs: Iterable[PathLike],
    require_dirs: bool,
) -> list[ConfigFileCandidate]:
    """Return discovered candidates followed by the specified file, if any."""

    try:
        try:
            candidates = resolver.discover(config_dirs, require_dirs=require_dirs)
        except NotFound as exc:
            if require_dirs:
                raise
            log_debug("config_dir_missing", layer="file", path=None, error=exc.message)
            candidates = []
        if config_file is None:
            return candidates
        specified = resolver.specified(config_file)
    except ConfigError as exc:
        _tag(exc, "file", None if config_file is None else str(config_file))
        raise
    return [candidate for candidate in candidates if candidate.path != specified.path] + [specified]


def _tag(exc: ConfigError, layer: str, source: str | None) -> None:
    if exc.layer is None:
        exc.layer = layer
    log_error("layer_error", **make_event(layer, source, {"error": exc.message, "kind": type(exc).__name__}))
