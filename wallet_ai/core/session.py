"""
Server-side sessions.

The cookie carries only an opaque random id. The identity record
{subject_id, email?, wallet_credential?} lives in the key-value store.

Also holds the credential restore map (subject → wallet credential) so a
returning Google user gets their wallet back without redoing onboarding.
Signing secrets never reach the backend and are never stored here.
"""

import hashlib
import json
import logging
import secrets
from dataclasses import asdict, dataclass
from typing import Optional

from fastapi import Response

from .config import get_settings
from .store import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
RESTORE_PREFIX = "wallet-credential:"


@dataclass
class SessionRecord:
    subject_id: Optional[str] = None
    email: Optional[str] = None
    wallet_credential: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "SessionRecord":
        data = json.loads(raw)
        return cls(
            subject_id=data.get("subject_id"),
            email=data.get("email"),
            wallet_credential=data.get("wallet_credential"),
        )


class SessionStore:
    def __init__(self, store: KeyValueStore, ttl: Optional[int] = None):
        self._store = store
        self._ttl = ttl if ttl is not None else get_settings().session_ttl_seconds

    async def load(self, session_id: str) -> Optional[SessionRecord]:
        if not session_id:
            return None
        raw = await self._store.get(SESSION_PREFIX + session_id)
        if raw is None:
            return None
        try:
            return SessionRecord.from_json(raw)
        except (ValueError, TypeError):
            logger.warning("Dropping unreadable session record")
            await self._store.delete(SESSION_PREFIX + session_id)
            return None

    async def save(self, session_id: str, record: SessionRecord) -> None:
        await self._store.put(SESSION_PREFIX + session_id, record.to_json(), ttl=self._ttl)

    async def create(self, record: SessionRecord) -> str:
        """Store a new record under a fresh id. Returns the id for the cookie."""
        session_id = secrets.token_urlsafe(32)
        await self.save(session_id, record)
        logger.info("Session created for subject=%s", record.subject_id)
        return session_id

    async def destroy(self, session_id: str) -> None:
        await self._store.delete(SESSION_PREFIX + session_id)


class CredentialRestoreStore:
    def __init__(self, store: KeyValueStore):
        self._store = store

    async def get(self, subject_id: str) -> Optional[str]:
        return await self._store.get(RESTORE_PREFIX + subject_id)

    async def remember(self, subject_id: str, credential: str) -> None:
        await self._store.put(RESTORE_PREFIX + subject_id, credential)


def custody_subject(credential: str) -> str:
    """Stable subject id for users who sign in through the custody provider only."""
    return "circle-" + hashlib.sha256(credential.encode()).hexdigest()[:24]


def set_session_cookie(response: Response, session_id: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_settings().session_cookie_name)
