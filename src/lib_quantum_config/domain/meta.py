"""Application-level metadata driving an aggregation run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .security import validate_name_segment

DEFAULT_MAX_PARSE_DEPTH: Final[int] = 128


def default_env_prefix(app_name: str) -> str:
    """Return the canonical environment prefix for *app_name*.

    Why
    ----
    Namespacing prevents unrelated environment variables from leaking into the
    configuration payload.

    Examples
    --------
    >>> default_env_prefix('my-app')
    'MY_APP_'
    """

    return app_name.replace("-", "_").replace(".", "_").upper() + "_"


@dataclass(frozen=True)
class AppMeta:
    """Knobs shared by every provider of one application.

    Attributes
    ----------
    app_name:
        Used for directory discovery (``/etc/<app_name>``) and as the
        ``<app_name>.{toml,json,ini}`` file stem.
    env_prefix:
        Explicit environment prefix; defaults to :func:`default_env_prefix`.
    max_parse_depth:
        Nesting limit enforced while converting file documents.
    """

    app_name: str
    env_prefix: str | None = None
    max_parse_depth: int = DEFAULT_MAX_PARSE_DEPTH

    def __post_init__(self) -> None:
        validate_name_segment(self.app_name)
        if self.max_parse_depth < 1:
            raise ValueError("max_parse_depth must be a positive integer")

    @property
    def resolved_env_prefix(self) -> str:
        return self.env_prefix if self.env_prefix is not None else default_env_prefix(self.app_name)
