"""
Action Proposal Engine.

propose → validate → issue challenge. The client signs; confirm records the result.

Both proposal entry points only validate and acquire a challenge capability
from the custody provider. They never move funds and never write the ledger.
Every check runs before the challenge is created, so a failed validation
leaves no dangling challenge behind.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..core.config import get_settings
from ..core.errors import (
    InsufficientBalance,
    ItemNotFound,
    SettlementPending,
    ValidationError,
)
from ..core.flags import get_flags
from ..models import (
    FEE_LEVELS,
    ProposalState,
    PurchaseAction,
    TokenBalance,
    TransferAction,
    TransferRequest,
)
from . import catalog
from .custody import CustodyGateway, new_idempotency_key
from .ledger import ConfirmationLedger
from .ownership import verify_ownership

logger = logging.getLogger(__name__)

# Provider transaction states that count as settled
SETTLED_STATES = {"COMPLETE", "CONFIRMED"}


def parse_amount(value: str, field: str = "amount") -> Decimal:
    """Parse a decimal string. Rejects non-numbers, NaN/Infinity and non-positive values."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field} '{value}'. Use a decimal string like '0.1'.")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"Invalid {field} '{value}'. It must be a positive number.")
    return amount


def _balance_amount(balance: TokenBalance) -> Decimal:
    try:
        return Decimal(balance.amount)
    except (InvalidOperation, ValueError):
        logger.warning("Unparseable balance %r for token=%s", balance.amount, balance.token_id)
        return Decimal(0)


class ActionProposalEngine:
    def __init__(
        self,
        gateway: CustodyGateway,
        ledger: ConfirmationLedger,
        recipient_address: Optional[str] = None,
        settlement_symbols: Optional[list[str]] = None,
        verify_settlement: Optional[bool] = None,
    ):
        settings = get_settings()
        self.gateway = gateway
        self.ledger = ledger
        self.recipient_address = (
            recipient_address if recipient_address is not None
            else settings.marketplace_wallet_address
        )
        self.settlement_symbols = settlement_symbols or settings.settlement_symbols
        self._verify_settlement = verify_settlement

    @property
    def verify_settlement(self) -> bool:
        if self._verify_settlement is not None:
            return self._verify_settlement
        return get_flags().verify_settlement

    # ── Transfers ────────────────────────────────────────────────────

    async def propose_transfer(
        self,
        credential: str,
        wallet_id: str,
        token_id: str,
        destination_address: str,
        amount: str,
        fee_level: str = "MEDIUM",
    ) -> TransferAction:
        requested = parse_amount(amount)
        amount = str(amount).strip()
        fee_level = (fee_level or "MEDIUM").upper()
        if fee_level not in FEE_LEVELS:
            raise ValidationError(f"Invalid fee level '{fee_level}'. Use one of: {', '.join(FEE_LEVELS)}.")
        destination_address = (destination_address or "").strip()
        if not destination_address:
            raise ValidationError("destinationAddress is required.")
        if not token_id:
            raise ValidationError("tokenId is required.")

        await verify_ownership(self.gateway, credential, wallet_id)

        balances = await self.gateway.get_balance(credential, wallet_id)
        balance = next((b for b in balances if b.token_id == token_id), None)
        if balance is None:
            raise ValidationError(
                f"Token ID {token_id} not found in wallet balance. "
                "Use check_wallet_balance to get the correct token ID."
            )
        if _balance_amount(balance) < requested:
            raise InsufficientBalance(available=balance.amount, requested=amount, symbol=balance.symbol)

        proposal = TransferAction(
            wallet_id=wallet_id,
            token_id=token_id,
            destination_address=destination_address,
            amount=amount,
            fee_level=fee_level,
        )
        challenge_id = await self.gateway.create_challenge(
            credential,
            TransferRequest(
                wallet_id=wallet_id,
                token_id=token_id,
                destination_address=destination_address,
                amount=amount,
                fee_level=fee_level,
                idempotency_key=new_idempotency_key(),
            ),
        )
        logger.info("Transfer prepared: wallet=%s amount=%s %s", wallet_id, amount, balance.symbol)
        return proposal.advance(ProposalState.PREPARED, challenge_id=challenge_id)

    # ── Purchases ────────────────────────────────────────────────────

    async def propose_purchase(self, credential: str, item_id: str, wallet_id: str) -> PurchaseAction:
        item_id = str(item_id).strip()
        item = catalog.find_item(item_id)
        if item is None:
            raise ItemNotFound(
                f'E-book with ID "{item_id}" not found. '
                "Use browse_ebooks or search_ebooks to find available e-books."
            )
        price = catalog.get_price(item_id)
        if price is None or not price.is_finite() or price <= 0:
            raise ValidationError(f'Could not retrieve price for e-book "{item.title}".')

        await verify_ownership(self.gateway, credential, wallet_id)

        balances = await self.gateway.get_balance(credential, wallet_id)
        balance = self._settlement_balance(balances)
        if balance is None:
            raise ValidationError(
                f"No {self.settlement_symbols[0]} balance found in wallet. "
                "Use check_wallet_balance first."
            )
        if _balance_amount(balance) < price:
            raise InsufficientBalance(available=balance.amount, requested=str(price), symbol=balance.symbol)

        if not self.recipient_address:
            raise ValidationError(
                "Marketplace wallet address not configured. Set MARKETPLACE_WALLET_ADDRESS."
            )

        proposal = PurchaseAction(
            wallet_id=wallet_id,
            item_id=item.id,
            amount=str(price),
            title=item.title,
        )
        challenge_id = await self.gateway.create_challenge(
            credential,
            TransferRequest(
                wallet_id=wallet_id,
                token_id=balance.token_id,
                destination_address=self.recipient_address,
                amount=str(price),
                fee_level="MEDIUM",
                idempotency_key=new_idempotency_key(),
            ),
        )
        logger.info("Purchase prepared: wallet=%s item=%s price=%s", wallet_id, item.id, price)
        return proposal.advance(ProposalState.PREPARED, challenge_id=challenge_id)

    def _settlement_balance(self, balances: list[TokenBalance]) -> Optional[TokenBalance]:
        symbols = {s.upper() for s in self.settlement_symbols}
        return next((b for b in balances if b.symbol.upper() in symbols), None)

    # ── Confirmation ─────────────────────────────────────────────────

    async def confirm_purchase(
        self,
        wallet_id: str,
        item_id: str,
        credential: Optional[str] = None,
    ) -> None:
        """
        Record that `wallet_id` paid for `item_id`.

        By default this trusts the caller that the challenge was signed; it does
        not look at settlement. With FF_VERIFY_SETTLEMENT on, a settled outbound
        transfer to the marketplace for the item price must exist first.
        """
        item_id = str(item_id).strip()
        if self.verify_settlement:
            await self._require_settlement(credential, wallet_id, item_id)
        await self.ledger.record(wallet_id, item_id)

    async def _require_settlement(self, credential: Optional[str], wallet_id: str, item_id: str) -> None:
        if not credential:
            raise ValidationError("A wallet credential is required to verify settlement.")
        price = catalog.get_price(item_id)
        if price is None:
            raise ItemNotFound(f'E-book with ID "{item_id}" not found.')

        recipient = self.recipient_address.lower()
        transactions = await self.gateway.list_transactions(
            credential, wallet_ids=[wallet_id], tx_type="OUTBOUND",
        )
        for tx in transactions:
            if tx.state not in SETTLED_STATES:
                continue
            if (tx.destination_address or "").lower() != recipient:
                continue
            if any(_same_amount(a, price) for a in tx.amounts):
                logger.info("Settlement found: wallet=%s item=%s tx=%s", wallet_id, item_id, tx.id)
                return
        raise SettlementPending()


def _same_amount(raw: str, price: Decimal) -> bool:
    try:
        return Decimal(raw) == price
    except (InvalidOperation, ValueError):
        return False
