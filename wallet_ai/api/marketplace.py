"""
Marketplace API - public catalog plus per-wallet purchase lookups.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import get_settings
from ..core.dependencies import require_wallet_credential
from ..core.errors import ItemNotFound
from ..services import catalog
from ..services.custody import CustodyGateway, get_gateway
from ..services.ledger import ConfirmationLedger, get_ledger
from ..services.ownership import resolve_wallet
from .envelope import ok

marketplace_router = APIRouter(prefix="/marketplace", tags=["marketplace"])


# ── Catalog (no auth) ────────────────────────────────────────────────

@marketplace_router.get("/ebooks")
async def list_ebooks():
    return ok({"ebooks": [b.to_wire() for b in catalog.all_items()]})


@marketplace_router.get("/ebooks/search")
async def search_ebooks(q: str = Query(default="")):
    return ok({"ebooks": [b.to_wire() for b in catalog.search_items(q)]})


@marketplace_router.get("/ebooks/{item_id}")
async def get_ebook(item_id: str):
    book = catalog.find_item(item_id)
    if book is None:
        raise ItemNotFound(f'E-book with ID "{item_id}" not found.')
    return ok({"ebook": book.to_wire()})


@marketplace_router.get("/config")
async def marketplace_config():
    settings = get_settings()
    return ok({
        "marketplaceWalletAddress": settings.marketplace_wallet_address or None,
        "settlementSymbols": settings.settlement_symbols,
        "explorerTxUrl": settings.explorer_tx_url,
    })


# ── Purchases (credential + ownership) ───────────────────────────────

@marketplace_router.get("/purchased")
async def purchased_ebooks(
    wallet_id: Optional[str] = Query(default=None, alias="walletId"),
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
    ledger: ConfirmationLedger = Depends(get_ledger),
):
    wallet = await resolve_wallet(gateway, credential, wallet_id)
    owned = await ledger.items(wallet.id)
    books = [b.to_wire() for b in catalog.all_items() if b.id in owned]
    return ok({"walletId": wallet.id, "ebooks": books})


@marketplace_router.get("/ebooks/{item_id}/purchased")
async def is_purchased(
    item_id: str,
    wallet_id: Optional[str] = Query(default=None, alias="walletId"),
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
    ledger: ConfirmationLedger = Depends(get_ledger),
):
    wallet = await resolve_wallet(gateway, credential, wallet_id)
    return ok({"walletId": wallet.id, "itemId": item_id, "purchased": await ledger.has(wallet.id, item_id)})
