"""
Pending-action marker protocol.

Tool results are plain text fed back into the model, so a machine-readable
proposal travels inside that text between two copies of a marker:

    __PENDING_ACTION__{"type": "transfer", ...}__PENDING_ACTION__

    Transfer of 0.1 USDC to 0x12345678... prepared. Please confirm in the app.

The chat loop lifts the JSON out as a structured field; the prose stays
readable for the model and the user.
"""

import json
import logging
from typing import Optional

import pydantic

from ..models import ActionProposal, pending_action_adapter

logger = logging.getLogger(__name__)

PENDING_ACTION_MARKER = "__PENDING_ACTION__"


def embed_pending_action(action: ActionProposal, text: str) -> str:
    payload = json.dumps(action.to_wire())
    return f"{PENDING_ACTION_MARKER}{payload}{PENDING_ACTION_MARKER}\n\n{text}"


def _first_span(content: str) -> Optional[tuple[int, int]]:
    """(start, end) of the first marker-delimited JSON body, or None."""
    start = content.find(PENDING_ACTION_MARKER)
    if start == -1:
        return None
    body_start = start + len(PENDING_ACTION_MARKER)
    end = content.find(PENDING_ACTION_MARKER, body_start)
    if end == -1:
        return None
    return body_start, end


def extract_pending_action(content: str) -> Optional[ActionProposal]:
    """
    Parse the first marker-delimited action in `content`.

    A missing closing marker, invalid JSON or an unknown action type all mean
    "no pending action". This never raises.
    """
    if not content:
        return None
    span = _first_span(content)
    if span is None:
        return None

    raw = content[span[0]:span[1]].strip()
    try:
        return pending_action_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, pydantic.ValidationError) as e:
        logger.warning("Ignoring malformed pending action: %s", e)
        return None


def strip_pending_action(content: str) -> str:
    """The human-readable part of a tool result, marker block removed."""
    span = _first_span(content or "")
    if span is None:
        return content or ""
    start = span[0] - len(PENDING_ACTION_MARKER)
    end = span[1] + len(PENDING_ACTION_MARKER)
    return (content[:start] + content[end:]).strip()
