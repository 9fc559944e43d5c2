"""
Per-request tracing context.

Values live in one ``ContextVar`` so every request (and every thread the
request's sync handlers run on) sees its own copy. ``JSONFormatter`` and the
text log format read it to tag each record.

    with TracingContext.scope(correlation_id="abc-123"):
        TracingContext.set(dashboard_id=dashboard_id, operation="add_widget")
        ...
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator

FIELDS = ("correlation_id", "dashboard_id", "widget_id", "operation")

_EMPTY: Dict[str, str] = dict.fromkeys(FIELDS, "")

_context: ContextVar[Dict[str, str]] = ContextVar("tracing_context", default=_EMPTY)


class TracingContext:
    """Static accessors over the current tracing values."""

    @staticmethod
    def set(**values: str) -> None:
        """Merge non-empty ``values`` into the current context; unknown keys raise."""
        unknown = set(values) - set(FIELDS)
        if unknown:
            raise TypeError(f"Unknown tracing fields: {sorted(unknown)}")
        current = dict(_context.get())
        current.update({key: str(value) for key, value in values.items() if value})
        _context.set(current)

    @staticmethod
    def get() -> Dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def get_or_create_correlation_id() -> str:
        correlation_id = _context.get()["correlation_id"]
        if not correlation_id:
            correlation_id = uuid.uuid4().hex
            TracingContext.set(correlation_id=correlation_id)
        return correlation_id

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def scope(**values: str) -> Iterator[Dict[str, str]]:
        """Fresh context for the block; the previous one is restored afterwards."""
        token = _context.set(dict(_EMPTY))
        try:
            TracingContext.set(**values)
            yield TracingContext.get()
        finally:
            _context.reset(token)
