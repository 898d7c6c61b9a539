"""
All wire models. Imported here so callers have one place to import from.
"""

from .base import WireModel
from .wallet import Wallet, TokenBalance, Transaction, TransferRequest
from .action import (
    ActionProposal,
    ALLOWED_TRANSITIONS,
    FEE_LEVELS,
    PendingAction,
    ProposalState,
    PurchaseAction,
    TransferAction,
    pending_action_adapter,
)
from .catalog import EBook

__all__ = [
    "WireModel",
    "Wallet", "TokenBalance", "Transaction", "TransferRequest",
    "ActionProposal", "ALLOWED_TRANSITIONS", "FEE_LEVELS", "PendingAction",
    "ProposalState", "PurchaseAction", "TransferAction", "pending_action_adapter",
    "EBook",
]
