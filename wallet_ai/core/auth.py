"""
Google ID token validation OR dev-mode bypass. Controlled by FF_USE_GOOGLE_AUTH flag.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from jose import jwt, JWTError

from .config import get_settings
from .errors import AuthRequired
from .flags import get_flags

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass
class VerifiedIdentity:
    subject: str
    email: Optional[str] = None


# Dev-mode identity - returned when FF_USE_GOOGLE_AUTH=false
DEV_IDENTITY = VerifiedIdentity(subject="dev-user", email="dev@local")


class GoogleIdentityVerifier:
    """Validates Google ID tokens. Caches JWKS keys."""

    def __init__(self):
        self._jwks: Optional[dict] = None
        self._jwks_fetched_at: float = 0
        self._jwks_ttl: int = 600  # 10 minutes

    async def _get_jwks(self, url: str) -> dict:
        now = time.time()
        if self._jwks and (now - self._jwks_fetched_at) < self._jwks_ttl:
            return self._jwks

        async with httpx.AsyncClient() as client:
            resp = await client.get(url, timeout=10)
            resp.raise_for_status()
            self._jwks = resp.json()
            self._jwks_fetched_at = now
            return self._jwks

    async def verify_token(self, token: str) -> VerifiedIdentity:
        settings = get_settings()
        if not settings.google_client_id:
            raise RuntimeError(
                "GOOGLE_CLIENT_ID is not set. Use the same OAuth client ID as the frontend."
            )

        jwks = await self._get_jwks(settings.google_jwks_url)
        unverified_header = jwt.get_unverified_header(token)

        key = next(
            (k for k in jwks.get("keys", []) if k.get("kid") == unverified_header.get("kid")),
            None,
        )
        if key is None:
            raise JWTError("Unable to find matching key in JWKS")

        payload = jwt.decode(
            token,
            key,
            algorithms=[key.get("alg", "RS256")],
            audience=settings.google_client_id,
            options={"verify_at_hash": False},
        )
        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise JWTError(f"Unexpected issuer: {payload.get('iss')}")
        if not payload.get("sub"):
            raise JWTError("Token missing sub claim")

        return VerifiedIdentity(subject=payload["sub"], email=payload.get("email"))


# Singleton
_verifier = GoogleIdentityVerifier()


async def verify_identity(raw_token: str) -> VerifiedIdentity:
    """
    Turn a Google ID token into a verified identity.
    If FF_USE_GOOGLE_AUTH is false, returns the dev identity.
    """
    if not get_flags().use_google_auth:
        return DEV_IDENTITY

    if not raw_token:
        raise AuthRequired("idToken is required.")

    try:
        return await _verifier.verify_token(raw_token)
    except (JWTError, httpx.HTTPError) as e:
        logger.warning("Google token rejected: %s", e)
        raise AuthRequired("Invalid Google token.")
