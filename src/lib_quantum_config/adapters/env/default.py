"""Environment variable provider.

Purpose
-------
Translate process environment variables into a nested configuration tree. It
implements the :class:`~lib_quantum_config.application.ports.Provider` port and
sits between the file layers and the CLI layer in the precedence order.

Key behaviours
--------------
* Takes one snapshot of the environment per :meth:`EnvProvider.produce` call.
* Keeps only names starting with the prefix (case-insensitive by default).
* Splits the remainder on ``__`` (configurable) into nested path segments
  (``APP_DB__HOST`` -> ``{"db": {"host": ...}}``).
* Coerces values with :func:`~lib_quantum_config.domain.coercion.coerce_scalar`.
* Rejects overlong or unsafe keys and values: a single bad entry fails the
  whole read.
* Drops empty values unless ``ignore_empty=False``.
"""

from __future__ import annotations

import os
from typing import Any, Final, Mapping

from ...domain.coercion import coerce_scalar
from ...domain.errors import ValidationError
from ...domain.meta import default_env_prefix
from ...domain.tree import insert_path, split_key
from ...observability import log_debug

__all__ = ["EnvProvider", "default_env_prefix", "validate_env_key", "validate_env_value"]

DEFAULT_SEPARATOR: Final[str] = "__"
MAX_KEY_LENGTH: Final[int] = 256
MAX_VALUE_LENGTH: Final[int] = 8192
_UNSAFE_KEY_CHARS: Final[tuple[str, ...]] = ("\x00", "\r", "\n")


def validate_env_key(key: str, *, max_length: int = MAX_KEY_LENGTH) -> None:
    """Raise ``ValidationError`` for keys over *max_length* UTF-8 bytes or with NUL/CR/LF.

    Examples
    --------
    >>> validate_env_key("APP_SERVER__PORT")
    >>> validate_env_key("APP_BAD\\nKEY")
    Traceback (most recent call last):
    ...
    lib_quantum_config.domain.errors.ValidationError: Environment variable key contains invalid characters
    """

    if len(key.encode("utf-8", "surrogatepass")) > max_length:
        raise ValidationError(f"Environment variable key too long (max {max_length} bytes)")
    if any(char in key for char in _UNSAFE_KEY_CHARS):
        raise ValidationError("Environment variable key contains invalid characters")


def validate_env_value(value: str, *, max_length: int = MAX_VALUE_LENGTH) -> None:
    """Raise ``ValidationError`` for values over *max_length* UTF-8 bytes or with NUL bytes."""

    if len(value.encode("utf-8", "surrogatepass")) > max_length:
        raise ValidationError(f"Environment variable value too long (max {max_length} bytes)")
    if "\x00" in value:
        raise ValidationError("Environment variable value contains null bytes")


class EnvProvider:
    """Load environment variables that belong to the configuration namespace.

    Examples
    --------
    >>> env = {
    ...     'DEMO_SERVER__PORT': '8080',
    ...     'DEMO_SERVER__TLS': 'on',
    ...     'OTHER': 'ignored',
    ... }
    >>> EnvProvider('DEMO', environ=env).produce()
    {'server': {'port': 8080, 'tls': True}}
    """

    layer = "env"

    def __init__(
        self,
        prefix: str,
        *,
        separator: str = DEFAULT_SEPARATOR,
        ignore_empty: bool = True,
        lowercase_keys: bool = True,
        case_sensitive_prefix: bool = False,
        environ: Mapping[str, str] | None = None,
        max_key_length: int = MAX_KEY_LENGTH,
        max_value_length: int = MAX_VALUE_LENGTH,
    ) -> None:
        """Initialise the provider.

        Parameters
        ----------
        prefix:
            Namespace prefix; ``_`` is appended when missing (``"DEMO"`` and
            ``"DEMO_"`` are equivalent). An empty prefix selects everything.
        environ:
            Mapping to read from. Defaults to :data:`os.environ`; read lazily
            so each :meth:`produce` sees the environment at call time.
        """

        self.prefix = f"{prefix}_" if prefix and not prefix.endswith("_") else prefix
        self.separator = separator
        self.ignore_empty = ignore_empty
        self.lowercase_keys = lowercase_keys
        self.case_sensitive_prefix = case_sensitive_prefix
        self.max_key_length = max_key_length
        self.max_value_length = max_value_length
        self._environ = environ

    @classmethod
    def for_app(cls, app_name: str, **kwargs: Any) -> EnvProvider:
        """Build a provider using :func:`default_env_prefix` for *app_name*."""

        return cls(default_env_prefix(app_name), **kwargs)

    @property
    def source(self) -> str:
        return f"{self.prefix}*"

    def produce(self) -> dict[str, Any]:
        """Return the nested tree built from matching variables.

        Raises
        ------
        ValidationError
            When any retained key or value is unsafe, or a key has an empty
            segment.
        KeyConflict
            When two variables disagree on whether a key is a table or a leaf
            (``APP_DB=x`` together with ``APP_DB__HOST=y``).
        """

        snapshot = dict(self._environ if self._environ is not None else os.environ)
        collected: dict[str, Any] = {}
        for key in sorted(snapshot):
            value = snapshot[key]
            remainder = self._strip_prefix(key)
            if remainder is None:
                continue
            validate_env_key(key, max_length=self.max_key_length)
            validate_env_value(value, max_length=self.max_value_length)
            if not remainder or (self.ignore_empty and value == ""):
                continue
            name = remainder.lower() if self.lowercase_keys else remainder
            insert_path(collected, split_key(name, self.separator), coerce_scalar(value))
        log_debug("env_variables_loaded", layer=self.layer, path=None, keys=sorted(collected.keys()))
        return collected

    def _strip_prefix(self, key: str) -> str | None:
        """Return *key* without the prefix, or ``None`` when it does not match."""

        if not self.prefix:
            return key
        head = key[: len(self.prefix)]
        matches = head == self.prefix if self.case_sensitive_prefix else head.upper() == self.prefix.upper()
        return key[len(self.prefix) :] if matches else None
