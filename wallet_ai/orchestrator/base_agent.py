"""
BaseAgent - the interface the chat endpoint drives.

No frameworks. Just a class with a handle() method.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..models import ActionProposal
from ..tools.registry import ToolContext


@dataclass
class AgentResponse:
    """What an agent returns after handling a message."""

    content: str = ""                                   # Text reply to user
    pending_action: Optional[ActionProposal] = None     # Proposal awaiting the user's signature
    metadata: dict = field(default_factory=dict)        # Observability data


class BaseAgent:
    """
    Base class for agents. Subclass and implement handle().

    Attributes:
        name:         Internal ID ("wallet_chat")
        display_name: Human-readable name
        description:  What it does
    """

    name: str = ""
    display_name: str = ""
    description: str = ""

    async def handle(self, message: str, context: ToolContext) -> AgentResponse:
        """
        Handle one user message.

        Args:
            message: The user's message
            context: Per-request tool context (credential, collaborators, primary wallet)
        """
        raise NotImplementedError(f"Agent '{self.name}' must implement handle()")

    def describe(self) -> dict:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
        }
