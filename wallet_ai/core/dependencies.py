"""
FastAPI dependencies. Injected into route handlers.

Identity and wallet credential are separate gates: a signed-in user with no
wallet credential gets CredentialRequired (403), not AuthRequired (401), so the
client can route to onboarding instead of the login screen.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from ..services.custody import CustodyGateway, get_gateway
from ..services.ledger import ConfirmationLedger, get_ledger
from ..services.proposals import ActionProposalEngine
from .config import get_settings
from .errors import AuthRequired, CredentialRequired
from .session import CredentialRestoreStore, SessionRecord, SessionStore
from .store import get_store


@dataclass
class RequestSession:
    """The caller's session. `id` is None until a record has been stored."""

    id: Optional[str]
    record: SessionRecord


def get_session_store() -> SessionStore:
    return SessionStore(get_store())


def get_restore_store() -> CredentialRestoreStore:
    return CredentialRestoreStore(get_store())


async def get_session(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
) -> RequestSession:
    """Load the session named by the cookie. Unknown or expired ids read as empty."""
    session_id = request.cookies.get(get_settings().session_cookie_name)
    record = await sessions.load(session_id) if session_id else None
    if record is None:
        return RequestSession(id=None, record=SessionRecord())
    return RequestSession(id=session_id, record=record)


async def require_identity(
    session: RequestSession = Depends(get_session),
) -> RequestSession:
    if not session.record.subject_id:
        raise AuthRequired()
    return session


async def require_wallet_credential(
    session: RequestSession = Depends(get_session),
) -> str:
    """The session's wallet credential. Checks identity first."""
    if not session.record.subject_id:
        raise AuthRequired()
    if not session.record.wallet_credential:
        raise CredentialRequired()
    return session.record.wallet_credential


def get_engine(
    gateway: CustodyGateway = Depends(get_gateway),
    ledger: ConfirmationLedger = Depends(get_ledger),
) -> ActionProposalEngine:
    """Proposal engine bound to the active gateway and ledger."""
    return ActionProposalEngine(gateway, ledger)
