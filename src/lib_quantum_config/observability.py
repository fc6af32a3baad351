"""Structured logging helpers shared by providers and the composition root.

Purpose
    Keep every diagnostic emitted during aggregation predictable and
    contextual without forcing host applications onto a logging backend.

Contents
    - ``TRACE_ID``: context variable storing the active trace identifier.
    - ``get_logger``: returns the package logger (silent by default).
    - ``bind_trace_id``: binds or clears the active trace identifier.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: builder for event payloads keyed by layer and path.

System Integration
    Adapters log file reads, environment snapshots and CLI contributions;
    ``core`` logs layer results and the merge outcome. Paths are logged in
    full because logs stay with the operator, while exception messages are
    redacted (see :func:`lib_quantum_config.domain.errors.display_path`).
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("lib_quantum_config_trace_id", default=None)
"""Current trace identifier propagated through the logging helpers."""

_LOGGER: Final[logging.Logger] = logging.getLogger("lib_quantum_config")
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers.

    Why
        The library stays silent until the host application configures
        handlers and formatters.
    """

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    What
        Stores ``trace_id`` in :data:`TRACE_ID`; ``None`` clears the binding.
    Side Effects
        Mutates the context variable visible to later logging calls.

    Examples
    --------
    >>> bind_trace_id('abc123')
    >>> TRACE_ID.get()
    'abc123'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug entry that includes the trace context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info entry that includes the trace context."""

    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    """Emit a structured warning entry that includes the trace context."""

    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error entry that includes the trace context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    layer: str,
    path: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured payload for configuration lifecycle events.

    What
        Returns a dictionary with ``layer`` and ``path`` keys plus any
        optional payload fields, ready to unpack into the ``log_*`` helpers.

    Examples
    --------
    >>> make_event('env', 'APP_*', {'keys': 3})
    {'layer': 'env', 'path': 'APP_*', 'keys': 3}
    """

    event: dict[str, Any] = {"layer": layer, "path": path}
    if payload:
        event |= dict(payload)
    return event


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    if not _LOGGER.isEnabledFor(level):
        return
    context: dict[str, Any] = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    _LOGGER.log(level, message, extra={"context": context})
