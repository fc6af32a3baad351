"""Path security validator: traversal, encoded traversal, NUL bytes, roots."""

from __future__ import annotations

import pytest

from lib_quantum_config.domain.errors import SecurityViolation
from lib_quantum_config.domain.security import validate_name_segment, validate_path


@pytest.mark.parametrize(
    "path",
    ["config.toml", "conf/app.toml", "/etc/demo/config.toml", "C:\\ProgramData\\demo\\config.ini", "./local.json"],
)
def test_safe_paths_pass(path: str) -> None:
    assert validate_path(path) == path


@pytest.mark.parametrize(
    "path",
    ["../../etc/passwd", "conf/../secret.toml", "..\\..\\windows\\system.ini", ".."],
)
def test_traversal_is_rejected(path: str) -> None:
    with pytest.raises(SecurityViolation, match="Path traversal"):
        validate_path(path)


@pytest.mark.parametrize("path", ["%2e%2e/%2e%2e/etc/passwd", "conf/%2E%2E/secret.toml", "..%2fsecret"])
def test_encoded_traversal_is_rejected(path: str) -> None:
    with pytest.raises(SecurityViolation):
        validate_path(path)


def test_nul_bytes_are_rejected() -> None:
    with pytest.raises(SecurityViolation, match="NUL"):
        validate_path("config\x00.toml")


def test_names_containing_dots_are_not_traversal() -> None:
    assert validate_path("my..config.toml") == "my..config.toml"


def test_root_containment() -> None:
    assert validate_path("sub/config.toml", root="/srv/app") == "sub/config.toml"
    assert validate_path("/srv/app/config.toml", root="/srv/app") == "/srv/app/config.toml"
    with pytest.raises(SecurityViolation, match="outside"):
        validate_path("/etc/passwd", root="/srv/app")


def test_name_segment() -> None:
    assert validate_name_segment("my-app") == "my-app"
    for bad in ("", "..", ".", "a/b", "a\\b", "a\x00b"):
        with pytest.raises(SecurityViolation):
            validate_name_segment(bad)
