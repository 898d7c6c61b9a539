"""
FastAPI application factory.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.envelope import fail
from .api.router import router
from .core.config import get_settings
from .core.errors import WalletAIError
from .core.store import close_store
from .services.custody import close_gateway

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Wallet AI",
        description="Chat assistant and e-book marketplace over user-controlled wallets",
        version="1.0.0",
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
    )

    # ── CORS ─────────────────────────────────────────────────────
    # Cookies cross origins, so origins must be explicit
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Errors → envelope ────────────────────────────────────────
    @app.exception_handler(WalletAIError)
    async def wallet_ai_error(request: Request, exc: WalletAIError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=fail(exc.public_message))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'] if p != 'body') or 'body'}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content=fail(f"Invalid request. {problems}"))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("%s %s crashed", request.method, request.url.path)
        return JSONResponse(status_code=500, content=fail(WalletAIError.default_message))

    # ── Startup ──────────────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup():
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        logger.info("Starting Wallet AI (env=%s)", settings.env)

        from .tools.registry import get_tool_names
        logger.info("Tools: %s", ", ".join(get_tool_names()))

        from .core.flags import get_flags
        flags = get_flags()
        logger.info(
            "Flags: google_auth=%s redis=%s llm=%s verify_settlement=%s redact_upstream=%s",
            flags.use_google_auth, flags.use_redis, flags.llm_provider,
            flags.verify_settlement, flags.redact_upstream_errors,
        )
        if not settings.marketplace_wallet_address:
            logger.warning("MARKETPLACE_WALLET_ADDRESS not set; purchases will be rejected")

        logger.info("Wallet AI is ready")

    # ── Shutdown ─────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown():
        from .services.llm import close_client
        await close_client()
        await close_gateway()
        await close_store()
        logger.info("Wallet AI shut down")

    # ── Routes ───────────────────────────────────────────────────
    app.include_router(router)

    return app
