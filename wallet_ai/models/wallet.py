"""
Read-through projections of custody provider objects. Never persisted locally.
"""

from typing import Optional

from .base import WireModel


class Wallet(WireModel):
    id: str
    address: str = ""
    blockchain: str = ""
    account_type: Optional[str] = None
    state: str = ""
    wallet_set_id: Optional[str] = None
    name: Optional[str] = None


class TokenBalance(WireModel):
    token_id: str
    symbol: str
    amount: str
    blockchain: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_provider(cls, raw: dict) -> "TokenBalance":
        """Flatten the provider's {amount, token: {id, symbol, ...}} shape."""
        token = raw.get("token") or {}
        return cls(
            token_id=token.get("id", ""),
            symbol=token.get("symbol", ""),
            amount=str(raw.get("amount", "0")),
            blockchain=token.get("blockchain"),
            name=token.get("name"),
        )


class Transaction(WireModel):
    id: str
    wallet_id: Optional[str] = None
    state: str = ""
    transaction_type: str = ""
    blockchain: str = ""
    amounts: list[str] = []
    source_address: Optional[str] = None
    destination_address: Optional[str] = None
    tx_hash: Optional[str] = None
    token_id: Optional[str] = None
    create_date: Optional[str] = None
    update_date: Optional[str] = None


class TransferRequest(WireModel):
    """Body of a challenge-creation call. `idempotency_key` is minted per proposal."""

    wallet_id: str
    token_id: str
    destination_address: str
    amount: str
    fee_level: str = "MEDIUM"
    idempotency_key: str
