"""
Action proposals - the local representation of a transfer or purchase intent.

Lifecycle (shared by both variants):

    PROPOSED → PREPARED → SIGNED → CONFIRMED
        ↘          ↘
        ABANDONED  ABANDONED

PREPARED means the custody provider issued a challengeId. Nothing has moved.
SIGNED happens in the browser; the backend only learns about it when the client
calls confirm. There is no edge from PROPOSED or PREPARED straight to CONFIRMED.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .base import WireModel


class ProposalState(str, Enum):
    PROPOSED = "proposed"
    PREPARED = "prepared"
    SIGNED = "signed"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"


ALLOWED_TRANSITIONS: dict[ProposalState, frozenset[ProposalState]] = {
    ProposalState.PROPOSED: frozenset({ProposalState.PREPARED, ProposalState.ABANDONED}),
    ProposalState.PREPARED: frozenset({ProposalState.SIGNED, ProposalState.ABANDONED}),
    ProposalState.SIGNED: frozenset({ProposalState.CONFIRMED}),
    ProposalState.CONFIRMED: frozenset(),
    ProposalState.ABANDONED: frozenset(),
}

FEE_LEVELS = ("LOW", "MEDIUM", "HIGH")


class ActionProposal(WireModel):
    wallet_id: str
    state: ProposalState = ProposalState.PROPOSED
    challenge_id: Optional[str] = None

    def advance(self, new_state: ProposalState, **updates) -> "ActionProposal":
        """Return a copy in `new_state`. Raises ValueError on an illegal transition."""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(f"Illegal proposal transition {self.state.value} → {new_state.value}")
        return self.model_copy(update={"state": new_state, **updates})


class TransferAction(ActionProposal):
    type: Literal["transfer"] = "transfer"
    token_id: str
    destination_address: str
    amount: str
    fee_level: str = "MEDIUM"


class PurchaseAction(ActionProposal):
    type: Literal["purchase"] = "purchase"
    item_id: str
    amount: Optional[str] = None
    title: Optional[str] = None


PendingAction = Annotated[Union[TransferAction, PurchaseAction], Field(discriminator="type")]

pending_action_adapter: TypeAdapter = TypeAdapter(PendingAction)
