"""
Chat API.

POST /api/chat - One message through the wallet agent's tool loop
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ..agents.wallet_chat.handler import WalletChatAgent, get_agent
from ..core.dependencies import RequestSession, get_engine, get_session, require_wallet_credential
from ..models import WireModel
from ..services.custody import CustodyGateway, get_gateway
from ..services.ledger import ConfirmationLedger, get_ledger
from ..services.ownership import resolve_wallet
from ..services.proposals import ActionProposalEngine
from ..tools.registry import ToolContext
from .envelope import ok

logger = logging.getLogger(__name__)

chat_router = APIRouter(tags=["chat"])


class ChatRequest(WireModel):
    message: str
    wallet_id: Optional[str] = None


@chat_router.post("/chat")
async def chat(
    request: ChatRequest,
    credential: str = Depends(require_wallet_credential),
    session: RequestSession = Depends(get_session),
    gateway: CustodyGateway = Depends(get_gateway),
    ledger: ConfirmationLedger = Depends(get_ledger),
    engine: ActionProposalEngine = Depends(get_engine),
    agent: WalletChatAgent = Depends(get_agent),
):
    """
    Returns {response, pendingAction?}. A pending action still has to be
    signed in the browser and confirmed before anything is recorded.
    """
    wallet = await resolve_wallet(gateway, credential, request.wallet_id)
    context = ToolContext(
        credential=credential,
        gateway=gateway,
        engine=engine,
        ledger=ledger,
        wallet_id=wallet.id,
        subject_id=session.record.subject_id or "",
    )
    result = await agent.handle(request.message, context)

    data: dict = {"response": result.content}
    if result.pending_action is not None:
        data["pendingAction"] = result.pending_action.to_wire()
    logger.info("Chat done: wallet=%s meta=%s", wallet.id, result.metadata)
    return ok(data)
