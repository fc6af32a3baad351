"""Type coercion for raw strings coming from env, CLI, and INI sources.

The coercion is an ordered tuple of pure trial parsers. Each parser returns
``_NO_MATCH`` when it does not apply; the first real result wins and the raw
string is the fallback. Booleans are tried first so ``"0"``/``"1"`` read as
switches rather than numbers.
"""

from __future__ import annotations

import re
from typing import Callable, Final

from .tree import I64_MAX, I64_MIN, U64_MAX, Scalar

TRUE_LITERALS: Final[frozenset[str]] = frozenset({"true", "1", "yes", "on"})
FALSE_LITERALS: Final[frozenset[str]] = frozenset({"false", "0", "no", "off"})

_NO_MATCH: Final = object()
_INTEGER = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"\+?[0-9]+")
_FLOAT = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE | re.ASCII,
)


def _parse_bool(raw: str) -> object:
    lowered = raw.lower()
    if lowered in TRUE_LITERALS:
        return True
    if lowered in FALSE_LITERALS:
        return False
    return _NO_MATCH


def _parse_i64(raw: str) -> object:
    if not _INTEGER.fullmatch(raw):
        return _NO_MATCH
    number = int(raw)
    return number if I64_MIN <= number <= I64_MAX else _NO_MATCH


def _parse_u64(raw: str) -> object:
    if not _UNSIGNED.fullmatch(raw):
        return _NO_MATCH
    number = int(raw)
    return number if 0 <= number <= U64_MAX else _NO_MATCH


def _parse_f64(raw: str) -> object:
    if not _FLOAT.fullmatch(raw):
        return _NO_MATCH
    return float(raw)


TRIALS: Final[tuple[Callable[[str], object], ...]] = (_parse_bool, _parse_i64, _parse_u64, _parse_f64)


def coerce_scalar(raw: str) -> Scalar:
    """Return the typed leaf for *raw* using the first matching trial parser.

    Examples
    --------
    >>> coerce_scalar("ON"), coerce_scalar("0"), coerce_scalar("42"), coerce_scalar("3.14")
    (True, False, 42, 3.14)
    >>> coerce_scalar("18446744073709551615")
    18446744073709551615
    >>> coerce_scalar("1_000"), coerce_scalar(" 7")
    ('1_000', ' 7')
    """

    for trial in TRIALS:
        result = trial(raw)
        if result is not _NO_MATCH:
            return result  # type: ignore[return-value]
    return raw
