"""Event-type and branch filters applied after authentication."""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)

EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
PUSH_EVENT = "push"
MAIN_REF = "refs/heads/main"


def is_push_event(event: str) -> bool:
    """True when the event-type header names a push."""
    return event == PUSH_EVENT


def pushed_ref(body: bytes) -> str | None:
    """Extract the top-level ``ref`` of a push payload.

    Only the top-level field counts, so the same string showing up in a
    commit message or nested object is never mistaken for the pushed ref.
    Returns None for bodies that are not a JSON object with a string ``ref``.
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("Push payload is not valid JSON")
        return None
    if not isinstance(payload, dict):
        return None
    ref = payload.get("ref")
    return ref if isinstance(ref, str) else None
