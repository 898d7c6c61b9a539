"""
Wallet API - read-through views of the custody provider.

Every wallet id in a path or query is checked against the caller's live wallet
list before any data is returned.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.dependencies import require_wallet_credential
from ..core.errors import OwnershipViolation
from ..services.custody import CustodyGateway, get_gateway
from ..services.ownership import verify_all, verify_ownership
from .envelope import ok

wallets_router = APIRouter(prefix="/wallets", tags=["wallets"])


@wallets_router.get("")
async def list_wallets(
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
):
    wallets = await gateway.list_wallets(credential)
    return ok({"wallets": [w.to_wire() for w in wallets]})


@wallets_router.get("/transactions/all")
async def all_transactions(
    wallet_ids: Optional[str] = Query(default=None, alias="walletIds"),
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
):
    """Transactions across several wallets (comma-separated ids), or all owned wallets."""
    if wallet_ids:
        ids = [w.strip() for w in wallet_ids.split(",") if w.strip()]
        await verify_all(gateway, credential, ids)
    else:
        ids = [w.id for w in await gateway.list_wallets(credential)]
    if not ids:
        return ok({"transactions": []})

    transactions = await gateway.list_transactions(credential, wallet_ids=ids)
    return ok({"transactions": [t.to_wire() for t in transactions]})


@wallets_router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
):
    tx = await gateway.get_transaction(credential, transaction_id)
    if not tx.wallet_id:
        raise OwnershipViolation()
    await verify_ownership(gateway, credential, tx.wallet_id)
    return ok({"transaction": tx.to_wire()})


@wallets_router.get("/{wallet_id}")
async def get_wallet(
    wallet_id: str,
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
):
    await verify_ownership(gateway, credential, wallet_id)
    wallet = await gateway.get_wallet(credential, wallet_id)
    return ok({"wallet": wallet.to_wire()})


@wallets_router.get("/{wallet_id}/balance")
async def get_balance(
    wallet_id: str,
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
):
    await verify_ownership(gateway, credential, wallet_id)
    balances = await gateway.get_balance(credential, wallet_id)
    return ok({"tokenBalances": [b.to_wire() for b in balances]})


@wallets_router.get("/{wallet_id}/transactions")
async def wallet_transactions(
    wallet_id: str,
    tx_type: Optional[str] = Query(default=None, alias="txType"),
    state: Optional[str] = Query(default=None),
    page_size: Optional[int] = Query(default=None, alias="pageSize", ge=1, le=50),
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
):
    await verify_ownership(gateway, credential, wallet_id)
    transactions = await gateway.list_transactions(
        credential, wallet_ids=[wallet_id], tx_type=tx_type, state=state, page_size=page_size,
    )
    return ok({"transactions": [t.to_wire() for t in transactions]})
