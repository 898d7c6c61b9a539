"""
Central configuration. All API keys and settings in one place.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Environment ---
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")

    # --- Session ---
    session_cookie_name: str = Field(default="wallet-ai.sid", alias="SESSION_COOKIE_NAME")
    session_ttl_seconds: int = Field(default=24 * 60 * 60, alias="SESSION_TTL_SECONDS")
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")

    # --- Google identity ---
    google_client_id: str = Field(default="", alias="GOOGLE_CLIENT_ID")
    google_jwks_url: str = Field(
        default="https://www.googleapis.com/oauth2/v3/certs",
        alias="GOOGLE_JWKS_URL",
    )

    # --- Circle user-controlled wallets ---
    circle_api_key: str = Field(default="", alias="CIRCLE_API_KEY")
    circle_base_url: str = Field(default="https://api.circle.com", alias="CIRCLE_BASE_URL")
    circle_default_blockchains: str = Field(default="ARC-TESTNET", alias="CIRCLE_DEFAULT_BLOCKCHAINS")
    circle_default_account_type: str = Field(default="EOA", alias="CIRCLE_DEFAULT_ACCOUNT_TYPE")

    # --- Marketplace ---
    marketplace_wallet_address: str = Field(default="", alias="MARKETPLACE_WALLET_ADDRESS")
    settlement_token_symbols: str = Field(default="USDC,USDC-TESTNET", alias="SETTLEMENT_TOKEN_SYMBOLS")
    explorer_tx_url: str = Field(default="https://testnet.arcscan.app/tx/", alias="EXPLORER_TX_URL")

    # --- LLM ---
    groq_api_key: str = Field(default="", alias="GROQ_API_KEY")
    groq_base_url: str = Field(default="https://api.groq.com/openai/v1", alias="GROQ_BASE_URL")
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    default_llm_model: str = Field(default="llama-3.3-70b-versatile", alias="DEFAULT_LLM_MODEL")
    default_llm_temperature: float = Field(default=0.0, alias="DEFAULT_LLM_TEMPERATURE")
    default_llm_max_tokens: int = Field(default=2048, alias="DEFAULT_LLM_MAX_TOKENS")

    # --- Redis ---
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # --- API ---
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=3001, alias="API_PORT")
    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    @property
    def settlement_symbols(self) -> list[str]:
        return [s.strip() for s in self.settlement_token_symbols.split(",") if s.strip()]

    @property
    def default_blockchains(self) -> list[str]:
        return [b.strip() for b in self.circle_default_blockchains.split(",") if b.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
