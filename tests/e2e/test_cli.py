"""End-to-end coverage for the operator CLI.

The commands run through Click's ``CliRunner`` with the sandbox environment so
discovery stays inside temporary directories.
"""

from __future__ import annotations

import json
from pathlib import Path

import lib_cli_exit_tools
import pytest
from click.testing import CliRunner

from lib_quantum_config import cli
from lib_quantum_config.domain.errors import SpecifiedFileNotFound
from tests.support import create_sandbox


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def test_cli_read_outputs_json(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.toml", content="[service]\ntimeout = 15\n")
    result = _runner().invoke(cli.cli, ["read", "--app", "demo", "--indent", "0"], env=sandbox.env)
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"service": {"timeout": 15}}


def test_cli_read_merges_env_and_standard_options(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("system", "config.toml", content="[logging]\nlevel = 'info'\n")
    env = {**sandbox.env, "DEMO_LOGGING__LEVEL": "warn", "DEMO_SERVICE__RETRIES": "3"}
    result = _runner().invoke(cli.cli, ["read", "--app", "demo", "--log-level", "debug", "--verbose"], env=env)
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["logging"] == {"level": "debug", "verbose": True}
    assert payload["service"]["retries"] == 3


def test_cli_read_with_provenance(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    sandbox.write("user", "config.json", content='{"feature": {"enabled": true}}')
    result = _runner().invoke(cli.cli, ["read", "--app", "demo", "--provenance"], env=sandbox.env)
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["config"]["feature"]["enabled"] is True
    meta = payload["provenance"]["feature.enabled"]
    assert meta["layer"] == "file"
    assert meta["path"].endswith("config.json")


def test_cli_read_explicit_config(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    explicit = tmp_path / "explicit.toml"
    explicit.write_text("name = 'explicit'\n", encoding="utf-8")
    result = _runner().invoke(cli.cli, ["read", "--app", "demo", "--config", str(explicit)], env=sandbox.env)
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["name"] == "explicit"
    assert payload["config_file"] == str(explicit)


def test_cli_read_missing_config_fails(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    result = _runner().invoke(
        cli.cli, ["read", "--app", "demo", "--config", str(tmp_path / "absent.toml")], env=sandbox.env
    )
    assert result.exit_code != 0
    assert isinstance(result.exception, SpecifiedFileNotFound)


def test_cli_read_custom_prefix(tmp_path: Path) -> None:
    sandbox = create_sandbox(tmp_path)
    env = {**sandbox.env, "ALT_MODE": "fast"}
    result = _runner().invoke(cli.cli, ["read", "--app", "demo", "--env-prefix", "ALT_"], env=env)
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"mode": "fast"}


def test_cli_env_prefix() -> None:
    result = _runner().invoke(cli.cli, ["env-prefix", "my-app"])
    assert result.exit_code == 0
    assert result.output.strip() == "MY_APP_"


def test_cli_check_path_accepts_plain_paths() -> None:
    result = _runner().invoke(cli.cli, ["check-path", "conf/app.toml"])
    assert result.exit_code == 0
    assert "ok" in result.output


@pytest.mark.parametrize("path", ["../../etc/passwd", "%2e%2e/secret.toml"])
def test_cli_check_path_rejects_traversal(path: str) -> None:
    result = _runner().invoke(cli.cli, ["check-path", path])
    assert result.exit_code == 1
    assert "traversal" in result.output


def test_cli_check_path_with_root() -> None:
    result = _runner().invoke(cli.cli, ["check-path", "/etc/passwd", "--root", "/srv/app"])
    assert result.exit_code == 1
    assert "outside" in result.output


def test_cli_info_runs() -> None:
    result = _runner().invoke(cli.cli, ["info"])
    assert result.exit_code == 0
    assert "quantum" in result.output.lower()


def test_main_restores_traceback_flag(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    sandbox = create_sandbox(tmp_path)
    for key, value in sandbox.env.items():
        monkeypatch.setenv(key, value)
    lib_cli_exit_tools.config.traceback = False
    exit_code = cli.main(["--traceback", "read", "--app", "demo"])
    assert exit_code == 0
    assert lib_cli_exit_tools.config.traceback is False


def test_main_reports_errors_with_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    sandbox = create_sandbox(tmp_path)
    for key, value in sandbox.env.items():
        monkeypatch.setenv(key, value)
    exit_code = cli.main(["read", "--app", "demo", "--config", str(tmp_path / "absent.toml")])
    assert exit_code != 0
