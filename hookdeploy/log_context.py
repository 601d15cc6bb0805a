"""Logging context: ContextVar-based log enrichment for async operations.

A `ContextFilter` on the handlers installed by ``setup_logging`` adds two
record attributes:

- ``ctx``: short ``[op:delivery]`` prefix for console lines.
- ``delivery_id``: the full GitHub delivery id, or ``-``, for the log file.

Operation codes: ``wh`` (webhook request), ``deploy`` (deploy subprocess).
"""

from __future__ import annotations

import logging
from contextvars import ContextVar

# Cross-cutting context propagated through asyncio tasks.
ctx_operation: ContextVar[str | None] = ContextVar("ctx_operation", default=None)
ctx_delivery_id: ContextVar[str | None] = ContextVar("ctx_delivery_id", default=None)

NO_DELIVERY = "-"


class ContextFilter(logging.Filter):
    """Inject ContextVar values into every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        op = ctx_operation.get(None)
        delivery = ctx_delivery_id.get(None)
        parts: list[str] = []
        if op:
            parts.append(op)
        if delivery:
            parts.append(delivery[:8])
        record.ctx = f"[{':'.join(parts)}] " if parts else ""
        record.delivery_id = delivery or NO_DELIVERY
        return True


def set_log_context(
    *,
    operation: str | None = None,
    delivery_id: str | None = None,
) -> None:
    """Set logging context for the current asyncio task.

    Values propagate to all coroutines called within the same task.
    Each ``asyncio.create_task()`` copies the current context automatically,
    so a deploy task keeps the delivery id of the request that started it.
    """
    if operation is not None:
        ctx_operation.set(operation)
    if delivery_id is not None:
        ctx_delivery_id.set(delivery_id)
