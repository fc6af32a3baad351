"""End-to-end aggregation through the composition root.

Files come from a sandboxed system/user/custom layout, the environment from an
explicit mapping, and the command line from a parsed Click context.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
import pytest

from lib_quantum_config import (
    EMPTY_CONFIG,
    AppMeta,
    ClickProvider,
    ConfigError,
    DepthLimitExceeded,
    EnvProvider,
    FileParse,
    KeyConflict,
    SecurityViolation,
    SpecifiedFileNotFound,
    ValidationError,
    aggregate,
    build_providers,
    config_options,
    read_config,
    read_config_raw,
)
from lib_quantum_config.adapters.path_resolvers.default import SYSTEM_DIR_ENV, USER_DIR_ENV, DefaultPathResolver
from tests.support import RecordingFileSystem, create_sandbox


@click.command("demo")
@config_options
@click.option("--port", type=int, default=None)
def demo(**_: object) -> None:
    pass


def _env(sandbox, **extra: str) -> dict[str, str]:
    return {**sandbox.env, **extra}


def test_precedence_file_env_cli(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.toml", content="[server]\nport = 8080\nhost = 'localhost'\n")
    environ = _env(sandbox, DEMO_SERVER__PORT="9000")
    cli = ClickProvider.from_args(demo, ["--port", "7000"], mapping={"port": "server.port"})

    assert read_config("demo", environ=environ).get("server.port") == 9000
    config = read_config("demo", environ=environ, cli=cli)
    assert config.get("server.port") == 7000
    assert config.get("server.host") == "localhost"
    assert config.origin("server.port")["layer"] == "cli"
    assert config.origin("server.host")["layer"] == "file"


def test_user_overrides_system_and_tables_merge(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.toml", content="[service]\ntimeout = 5\nretries = 1\n")
    sandbox.write("user", "config.json", content='{"service": {"timeout": 10, "endpoint": "https://api"}}')

    data, meta = read_config_raw("demo", environ=sandbox.env)
    assert data == {"service": {"timeout": 10, "retries": 1, "endpoint": "https://api"}}
    assert meta["service.timeout"]["path"] == str(sandbox.roots["user"] / "config.json")
    assert meta["service.retries"]["path"] == str(sandbox.roots["system"] / "config.toml")


def test_explicit_file_outranks_discovered_files(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("user", "config.toml", content="level = 'user'\nkeep = true\n")
    explicit = tmp_path / "explicit.ini"
    explicit.write_text("level = explicit\n", encoding="utf-8")

    config = read_config("demo", environ=sandbox.env, config_file=explicit)
    assert config.get("level") == "explicit"
    assert config.get("keep") is True


def test_config_dirs_are_searched_after_user_dir(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("user", "config.toml", content="source = 'user'\n")
    sandbox.write("custom", "demo.json", content='{"source": "custom"}')

    config = read_config("demo", environ=sandbox.env, config_dirs=[sandbox.roots["custom"]])
    assert config.get("source") == "custom"


def test_missing_explicit_file_is_fatal(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    with pytest.raises(SpecifiedFileNotFound) as excinfo:
        read_config("demo", environ=sandbox.env, config_file=tmp_path / "absent.toml")
    assert excinfo.value.layer == "file"
    assert str(excinfo.value).startswith("[file] ")


def test_traversal_in_explicit_file_never_touches_filesystem(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    fs = RecordingFileSystem()
    with pytest.raises(SecurityViolation):
        read_config("demo", environ=sandbox.env, config_file="../../etc/passwd", fs=fs)
    assert not any(path.endswith("etc/passwd") for _, path in fs.calls)


def test_no_sources_yields_empty_config(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    assert read_config("demo", environ=sandbox.env) is EMPTY_CONFIG


def test_malformed_file_aborts_with_layer(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.json", content="{not json")
    with pytest.raises(FileParse) as excinfo:
        read_config("demo", environ=sandbox.env)
    assert excinfo.value.layer == "file"


def test_depth_limit_from_app_meta(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.json", content='{"a":' * 20 + "1" + "}" * 20)
    with pytest.raises(DepthLimitExceeded):
        read_config(AppMeta("demo", max_parse_depth=8), environ=sandbox.env)
    assert read_config("demo", environ=sandbox.env).get("a.a.a") is not None


def test_invalid_environment_fails_the_env_layer(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    with pytest.raises(ValidationError) as excinfo:
        read_config("demo", environ=_env(sandbox, DEMO_NAME="x" * 9000))
    assert excinfo.value.layer == "env"


def test_shape_conflict_between_layers(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.toml", content="[db]\nhost = 'x'\n")
    with pytest.raises(KeyConflict):
        read_config("demo", environ=_env(sandbox, DEMO_DB="sqlite"))


def test_custom_env_prefix(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    environ = _env(sandbox, CUSTOM_LEVEL="debug", DEMO_LEVEL="ignored")
    assert read_config("demo", env_prefix="CUSTOM_", environ=environ).get("level") == "debug"


def test_build_providers_order(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.toml", content="a = 1\n")
    sandbox.write("user", "config.toml", content="a = 2\n")
    cli = ClickProvider.from_args(demo, [])
    providers = build_providers(AppMeta("demo"), environ=sandbox.env, cli=cli)
    assert [provider.layer for provider in providers] == ["file", "file", "env", "cli"]
    assert providers[-1] is cli


def test_require_dirs_propagates_not_found(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    with pytest.raises(ConfigError) as excinfo:
        read_config("demo", environ=sandbox.env, require_dirs=True)
    assert excinfo.value.layer == "file"


def test_config_dir_used_when_platform_dirs_are_unknown(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (SYSTEM_DIR_ENV, USER_DIR_ENV):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "config.toml").write_text("answer = 42\n", encoding="utf-8")
    resolver = DefaultPathResolver(app_name="demo", platform="sunos5")

    config = read_config("demo", environ={}, config_dirs=[tmp_path], resolver=resolver)
    assert config.get("answer") == 42
    assert config.origin("answer")["path"] == str(tmp_path / "config.toml")


def test_aggregate_with_custom_providers() -> None:
    class Static:
        layer = "defaults"
        source = "builtin"

        def produce(self) -> dict:
            return {"server": {"port": 80, "host": "0.0.0.0"}}

    data, meta = aggregate([Static(), EnvProvider("APP", environ={"APP_SERVER__PORT": "8443"})])
    assert data == {"server": {"port": 8443, "host": "0.0.0.0"}}
    assert meta["server.host"] == {"layer": "defaults", "path": "builtin", "key": "server.host"}


def test_aggregation_logs_lifecycle(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="lib_quantum_config")
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.toml", content="a = 1\n")
    read_config("demo", environ=sandbox.env)
    messages = [record.getMessage() for record in caplog.records]
    assert "path_candidates" in messages
    assert "config_file_loaded" in messages
    assert "layer_loaded" in messages
    assert messages[-1] == "configuration_merged"


def test_layer_error_is_logged(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="lib_quantum_config")
    sandbox = create_sandbox(tmp_path)
    sandbox.write("user", "config.toml", content="[broken\n")
    with pytest.raises(FileParse):
        read_config("demo", environ=sandbox.env)
    record = next(record for record in caplog.records if record.getMessage() == "layer_error")
    assert record.context["layer"] == "file"
    assert record.context["kind"] == "FileParse"
