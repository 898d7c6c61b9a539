"""
Custody onboarding API.

POST /api/circle/device-token    - Device token pair for the browser SDK
POST /api/circle/initialize-user - Initialize the custody user, attach the credential
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from ..core.dependencies import (
    RequestSession,
    get_restore_store,
    get_session_store,
    require_identity,
)
from ..core.errors import AlreadyInitialized
from ..core.session import CredentialRestoreStore, SessionStore
from ..models import WireModel
from ..services.custody import CustodyGateway, get_gateway
from .envelope import ok

logger = logging.getLogger(__name__)

circle_router = APIRouter(prefix="/circle", tags=["onboarding"])


class DeviceTokenRequest(WireModel):
    device_id: str = Field(min_length=1)


class InitializeUserRequest(WireModel):
    user_token: str = Field(min_length=1)
    account_type: Optional[str] = None
    blockchains: Optional[list[str]] = None


@circle_router.post("/device-token")
async def device_token(
    request: DeviceTokenRequest,
    gateway: CustodyGateway = Depends(get_gateway),
):
    """No session needed. The SDK uses the pair to run social login in the browser."""
    data = await gateway.create_device_token(request.device_id)
    return ok(data)


@circle_router.post("/initialize-user")
async def initialize_user(
    request: InitializeUserRequest,
    session: RequestSession = Depends(require_identity),
    sessions: SessionStore = Depends(get_session_store),
    restore: CredentialRestoreStore = Depends(get_restore_store),
    gateway: CustodyGateway = Depends(get_gateway),
):
    """
    Initialize the custody user and return the wallet-creation challenge.

    An already-initialized user is not an error: the credential is attached
    all the same and the client skips the challenge.
    """
    try:
        data = await gateway.initialize_user(
            request.user_token,
            account_type=request.account_type,
            blockchains=request.blockchains,
        )
        result = {"challengeId": data.get("challengeId")}
    except AlreadyInitialized:
        logger.info("Custody user already initialized for subject=%s", session.record.subject_id)
        result = {"alreadyInitialized": True}

    session.record.wallet_credential = request.user_token
    await sessions.save(session.id, session.record)
    await restore.remember(session.record.subject_id, request.user_token)
    return ok(result)
