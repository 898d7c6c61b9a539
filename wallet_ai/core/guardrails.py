"""
Guardrails - input validation before anything reaches the model.

Layers:
  1. Input validation (length, emptiness)
  2. Injection heuristics (logged, not blocked)
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000

_INJECTION_PATTERNS = [
    r"ignore\s+(all\s+)?previous\s+instructions",
    r"disregard\s+(all\s+)?previous",
    r"you\s+are\s+now\s+(?:a|an)\s+",
    r"<\s*system\s*>",
    r"__pending_action__",
]


@dataclass
class GuardrailResult:
    allowed: bool
    reason: Optional[str] = None


def check_input(message: str, subject_id: str = "") -> GuardrailResult:
    """Returns allowed=False with a user-facing reason if the message is rejected."""
    if not message or not message.strip():
        return GuardrailResult(allowed=False, reason="Message is empty.")

    if len(message) > MAX_MESSAGE_LENGTH:
        return GuardrailResult(
            allowed=False,
            reason=f"Message too long ({len(message)} chars). Maximum is {MAX_MESSAGE_LENGTH}.",
        )

    lowered = message.lower()
    for pattern in _INJECTION_PATTERNS:
        if re.search(pattern, lowered):
            # Don't block. The system prompt and the signing step are the real barrier.
            logger.warning("Potential injection from subject=%s: %s", subject_id, message[:100])
            break

    return GuardrailResult(allowed=True)
