"""
Central feature flags. One file controls every external dependency.

Set via environment variables (prefix FF_) or .env file.
When a flag is OFF, the system uses a local fallback. Nothing crashes.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Auth ─────────────────────────────────────────────────────────
    use_google_auth: bool = Field(default=True, alias="FF_USE_GOOGLE_AUTH")
    # ON  → Google ID tokens validated via Google JWKS. Needs GOOGLE_CLIENT_ID.
    # OFF → Dev identity injected (sub="dev-user"). Any idToken is accepted.

    # ── Stores ───────────────────────────────────────────────────────
    use_redis: bool = Field(default=False, alias="FF_USE_REDIS")
    # ON  → Sessions, credential restore and purchase ledger live in Redis. Needs REDIS_URL.
    # OFF → Process-local dicts. Lost on restart, not shared between instances.

    # ── LLM Provider ─────────────────────────────────────────────────
    llm_provider: str = Field(default="groq", alias="FF_LLM_PROVIDER")
    # "groq"   → Groq (default). Needs GROQ_API_KEY.
    # "openai" → Direct OpenAI. Needs OPENAI_API_KEY.
    # "gemini" → Gemini OpenAI-compatible endpoint. Needs GEMINI_API_KEY.

    # ── Purchases ────────────────────────────────────────────────────
    verify_settlement: bool = Field(default=False, alias="FF_VERIFY_SETTLEMENT")
    # ON  → Purchase confirmation requires a settled outbound transfer to the
    #       marketplace address for the item price.
    # OFF → Confirmation trusts the client's report that the challenge was signed.

    # ── Error surface ────────────────────────────────────────────────
    redact_upstream_errors: bool = Field(default=True, alias="FF_REDACT_UPSTREAM_ERRORS")
    # ON  → Custody/LLM failures reach clients as a generic "try again" message.
    # OFF → The provider's status and body are forwarded (debugging only).


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()
