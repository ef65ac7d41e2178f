"""Run id propagation for structured logs and trace spans."""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

# Identifies one CLI invocation across all of its log lines
run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)


def new_run_id() -> str:
    """Generate a short random run id."""
    return uuid.uuid4().hex[:12]


def get_run_id() -> str | None:
    """Get the run id from the current context."""
    return run_id.get()


@contextmanager
def with_run_id(value: str | None = None) -> Iterator[str]:
    """Context manager to set a run id for the duration of a block.

    Args:
        value: Run id to use, a new one is generated when omitted

    Yields:
        The run id
    """
    value = value or new_run_id()
    token = run_id.set(value)
    try:
        yield value
    finally:
        run_id.reset(token)


def get_context_dict(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get a dictionary of context values.

    Args:
        additional: Additional key-value pairs to include

    Returns:
        Dictionary with context values including run_id
    """
    ctx: dict[str, Any] = {}

    current = get_run_id()
    if current:
        ctx["run_id"] = current

    if additional:
        ctx.update(additional)

    return ctx
