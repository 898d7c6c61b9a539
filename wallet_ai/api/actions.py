"""
Action API - the signed-action protocol.

POST /api/actions/prepare - Validate and get a challenge for a transfer or purchase
POST /api/actions/confirm - Record a purchase after the user signed it

prepare never moves funds. The browser executes the returned challenge with the
user's PIN; confirm is called afterwards.
"""

import logging
from typing import Annotated, Literal, Optional, Union

from fastapi import APIRouter, Body, Depends
from pydantic import BeforeValidator, Field

from ..core.dependencies import get_engine, require_wallet_credential
from ..core.errors import ItemNotFound
from ..models import WireModel
from ..services import catalog
from ..services.custody import CustodyGateway, get_gateway
from ..services.ownership import resolve_wallet, verify_ownership
from ..services.proposals import ActionProposalEngine
from .envelope import ok

logger = logging.getLogger(__name__)

actions_router = APIRouter(prefix="/actions", tags=["actions"])

ItemId = Annotated[str, BeforeValidator(lambda v: str(v) if isinstance(v, int) else v)]


class TransferParams(WireModel):
    wallet_id: str = Field(min_length=1)
    token_id: str = Field(min_length=1)
    destination_address: str = Field(min_length=1)
    amount: str
    fee_level: str = "MEDIUM"


class PurchaseParams(WireModel):
    item_id: ItemId = Field(min_length=1)
    wallet_id: Optional[str] = None


class PrepareTransfer(WireModel):
    kind: Literal["transfer"]
    params: TransferParams


class PreparePurchase(WireModel):
    kind: Literal["purchase"]
    params: PurchaseParams


PrepareRequest = Annotated[Union[PrepareTransfer, PreparePurchase], Field(discriminator="kind")]


class ConfirmRequest(WireModel):
    wallet_id: str = Field(min_length=1)
    item_id: ItemId = Field(min_length=1)


@actions_router.post("/prepare")
async def prepare_action(
    request: PrepareRequest = Body(...),
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
    engine: ActionProposalEngine = Depends(get_engine),
):
    """Returns the challengeId plus an echo of the prepared action."""
    if isinstance(request, PrepareTransfer):
        p = request.params
        action = await engine.propose_transfer(
            credential,
            wallet_id=p.wallet_id,
            token_id=p.token_id,
            destination_address=p.destination_address,
            amount=p.amount,
            fee_level=p.fee_level,
        )
    else:
        p = request.params
        wallet = await resolve_wallet(gateway, credential, p.wallet_id)
        action = await engine.propose_purchase(credential, p.item_id, wallet.id)

    return ok(action.to_wire())


@actions_router.post("/confirm")
async def confirm_action(
    request: ConfirmRequest,
    credential: str = Depends(require_wallet_credential),
    gateway: CustodyGateway = Depends(get_gateway),
    engine: ActionProposalEngine = Depends(get_engine),
):
    await verify_ownership(gateway, credential, request.wallet_id)
    if catalog.find_item(request.item_id) is None:
        raise ItemNotFound(f'E-book with ID "{request.item_id}" not found.')

    await engine.confirm_purchase(request.wallet_id, request.item_id, credential=credential)
    return ok({"ok": True})
