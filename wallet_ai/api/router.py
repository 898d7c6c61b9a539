"""
Main API router. Mounts all sub-routers under /api.
"""

from fastapi import APIRouter

from .actions import actions_router
from .auth import auth_router
from .chat import chat_router
from .circle import circle_router
from .marketplace import marketplace_router
from .wallets import wallets_router

router = APIRouter()


# ── Health (no auth) ─────────────────────────────────────────────────

@router.get("/health")
async def health():
    return {"status": "ok", "service": "wallet-ai"}


# ── API routes (auth enforced per route) ─────────────────────────────

api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(circle_router)
api_router.include_router(wallets_router)
api_router.include_router(actions_router)
api_router.include_router(marketplace_router)
api_router.include_router(chat_router)

router.include_router(api_router)
