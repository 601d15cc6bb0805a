"""Webhook request and deploy outcome records."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class WebhookRequest:
    """One inbound delivery, alive only for the duration of its handler."""

    body: bytes
    signature: str
    event: str
    delivery_id: str = ""


@dataclass(frozen=True)
class DeployResult:
    """Outcome of one deploy script run.  Logged, never persisted.

    ``status`` is ``success`` or one of ``error:exit_<code>``, ``error:timeout``,
    ``error:launch`` (script could not start), ``error:internal``.
    """

    script: Path
    status: str
    returncode: int | None
    duration: float

    @property
    def ok(self) -> bool:
        return self.status == "success"
