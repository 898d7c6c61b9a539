"""
Wallet ownership verification.

Ownership is never stored. It is re-derived on every request from the
provider's live wallet list for the caller's credential, so a wallet id the
client (or the model) supplies is only trusted after it shows up there.
"""

import logging
from typing import Optional

from ..core.errors import OwnershipViolation, ValidationError
from ..models import Wallet
from .custody import CustodyGateway

logger = logging.getLogger(__name__)


async def verify_ownership(gateway: CustodyGateway, credential: str, wallet_id: str) -> Wallet:
    """
    Confirm `wallet_id` is in the caller's wallet list. Returns the wallet.

    Raises OwnershipViolation with the same message whether the wallet belongs
    to someone else or does not exist at all.
    """
    wallets = await gateway.list_wallets(credential)
    for wallet in wallets:
        if wallet.id == wallet_id:
            return wallet
    logger.warning("Ownership check failed for wallet=%s", wallet_id)
    raise OwnershipViolation()


async def verify_all(gateway: CustodyGateway, credential: str, wallet_ids: list[str]) -> list[Wallet]:
    """Verify several ids against one fresh listing. Fails on the first foreign id."""
    owned = {w.id: w for w in await gateway.list_wallets(credential)}
    missing = [wid for wid in wallet_ids if wid not in owned]
    if missing:
        logger.warning("Ownership check failed for wallets=%s", missing)
        raise OwnershipViolation()
    return [owned[wid] for wid in wallet_ids]


async def resolve_wallet(
    gateway: CustodyGateway,
    credential: str,
    wallet_id: Optional[str] = None,
) -> Wallet:
    """
    The wallet a request should act on: the supplied id after verification,
    or the caller's first wallet when none is supplied.
    """
    if wallet_id:
        return await verify_ownership(gateway, credential, wallet_id)

    wallets = await gateway.list_wallets(credential)
    if not wallets:
        raise ValidationError(
            "No wallet found for user. Create a wallet first "
            "(complete initialize-user and execute the challenge)."
        )
    return wallets[0]
