"""
Auth API - session login/logout.

POST /api/auth/google       - Verify a Google ID token, start a session
POST /api/auth/circle-login - Start a session from a custody user token alone
POST /api/auth/logout       - Drop the session
GET  /api/auth/me           - Current identity
"""

import logging

from fastapi import APIRouter, Depends, Response
from pydantic import Field

from ..core.auth import verify_identity
from ..core.dependencies import (
    RequestSession,
    get_restore_store,
    get_session,
    get_session_store,
    require_identity,
)
from ..core.session import (
    CredentialRestoreStore,
    SessionRecord,
    SessionStore,
    clear_session_cookie,
    custody_subject,
    set_session_cookie,
)
from ..models import WireModel
from .envelope import ok

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["auth"])


class GoogleLoginRequest(WireModel):
    id_token: str = ""


class CircleLoginRequest(WireModel):
    user_token: str = Field(min_length=1)


def _identity_view(record: SessionRecord) -> dict:
    return {
        "sub": record.subject_id,
        "email": record.email,
        "hasWalletCredential": bool(record.wallet_credential),
    }


async def _start_session(
    response: Response,
    session: RequestSession,
    sessions: SessionStore,
    record: SessionRecord,
) -> None:
    """Replace any previous session with a fresh id holding `record`."""
    if session.id:
        await sessions.destroy(session.id)
    session_id = await sessions.create(record)
    set_session_cookie(response, session_id)


@auth_router.post("/google")
async def google_login(
    request: GoogleLoginRequest,
    response: Response,
    session: RequestSession = Depends(get_session),
    sessions: SessionStore = Depends(get_session_store),
    restore: CredentialRestoreStore = Depends(get_restore_store),
):
    """Sign in with Google. Returning users get their wallet credential back."""
    identity = await verify_identity(request.id_token)

    credential = None
    if session.record.subject_id == identity.subject:
        credential = session.record.wallet_credential
    if not credential:
        credential = await restore.get(identity.subject)
        if credential:
            logger.info("Restored wallet credential for subject=%s", identity.subject)

    record = SessionRecord(
        subject_id=identity.subject,
        email=identity.email,
        wallet_credential=credential,
    )
    await _start_session(response, session, sessions, record)
    return ok(_identity_view(record))


@auth_router.post("/circle-login")
async def circle_login(
    request: CircleLoginRequest,
    response: Response,
    session: RequestSession = Depends(get_session),
    sessions: SessionStore = Depends(get_session_store),
):
    """Sign in with a custody user token only. The subject id is derived from it."""
    record = SessionRecord(
        subject_id=custody_subject(request.user_token),
        wallet_credential=request.user_token,
    )
    await _start_session(response, session, sessions, record)
    return ok(_identity_view(record))


@auth_router.post("/logout")
async def logout(
    response: Response,
    session: RequestSession = Depends(get_session),
    sessions: SessionStore = Depends(get_session_store),
):
    if session.id:
        await sessions.destroy(session.id)
        logger.info("Session closed for subject=%s", session.record.subject_id)
    clear_session_cookie(response)
    return ok()


@auth_router.get("/me")
async def me(session: RequestSession = Depends(require_identity)):
    return ok(_identity_view(session.record))
