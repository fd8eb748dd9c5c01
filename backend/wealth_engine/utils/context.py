# backend/wealth_engine/utils/context.py
"""
Operation context for log correlation.

A quote refresh or a state mutation touches several modules; tagging every log
line emitted while it runs with the same operation ID makes a single run easy
to follow. The ID lives in a ContextVar so it is isolated per thread and per
asyncio task.

Usage:
    from wealth_engine.utils.context import operation_scope, get_operation_id

    with operation_scope("refresh"):
        ...  # every log record carries the same operation_id
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_operation_id_var: ContextVar[str | None] = ContextVar("operation_id", default=None)


# =============================================================================
# OPERATION ID
# =============================================================================

def get_operation_id() -> str | None:
    """
    Get the current operation ID.

    Returns:
        The operation ID, or None outside of an operation scope.
    """
    return _operation_id_var.get()


def set_operation_id(operation_id: str) -> None:
    """Set the operation ID for the current context."""
    _operation_id_var.set(operation_id)


def clear_operation_id() -> None:
    """Clear the operation ID."""
    _operation_id_var.set(None)


def new_operation_id(prefix: str = "op") -> str:
    """Generate a short operation ID such as ``refresh-1a2b3c4d``."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@contextmanager
def operation_scope(prefix: str = "op") -> Iterator[str]:
    """
    Run a block under a fresh operation ID.

    Nested scopes keep the outer ID so one refresh that triggers a save is
    logged as a single operation. The previous value is restored on exit.

    Yields:
        The operation ID in effect inside the block
    """
    current = _operation_id_var.get()
    if current is not None:
        yield current
        return

    token = _operation_id_var.set(new_operation_id(prefix))
    try:
        yield _operation_id_var.get()
    finally:
        _operation_id_var.reset(token)
