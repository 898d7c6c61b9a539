from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from wallet_ai.core import store as store_module
from wallet_ai.core.config import get_settings
from wallet_ai.core.flags import get_flags
from wallet_ai.core.store import MemoryStore
from wallet_ai.factory import create_app
from wallet_ai.services import llm
from wallet_ai.services.custody import get_gateway
from wallet_ai.services.ledger import ConfirmationLedger, get_ledger, reset_ledger
from wallet_ai.services.proposals import ActionProposalEngine

from tests.fakes import MARKET_ADDRESS, OTHER_TOKEN, USER_TOKEN, FakeGateway, usdc


@pytest.fixture(autouse=True)
def environment(monkeypatch):
    """Known settings and fresh process-wide singletons for every test."""
    monkeypatch.setenv("FF_USE_GOOGLE_AUTH", "false")
    monkeypatch.setenv("FF_USE_REDIS", "false")
    monkeypatch.setenv("FF_VERIFY_SETTLEMENT", "false")
    monkeypatch.setenv("FF_REDACT_UPSTREAM_ERRORS", "true")
    monkeypatch.setenv("FF_LLM_PROVIDER", "groq")
    monkeypatch.setenv("CIRCLE_API_KEY", "test-circle-key")
    monkeypatch.setenv("GROQ_API_KEY", "test-groq-key")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("MARKETPLACE_WALLET_ADDRESS", MARKET_ADDRESS)
    monkeypatch.setenv("ENV", "test")
    get_settings.cache_clear()
    get_flags.cache_clear()
    monkeypatch.setattr(store_module, "_store", None)
    reset_ledger()
    yield
    llm.set_client(None)
    reset_ledger()
    get_settings.cache_clear()
    get_flags.cache_clear()


@pytest.fixture
def gateway() -> FakeGateway:
    gw = FakeGateway()
    gw.add_wallet(USER_TOKEN, "W1", [usdc("0.20")])
    gw.add_wallet(USER_TOKEN, "W2", [usdc("5.00")])
    gw.add_wallet(OTHER_TOKEN, "W9", [usdc("100")])
    return gw


@pytest.fixture
def kv_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ledger(kv_store: MemoryStore) -> ConfirmationLedger:
    return ConfirmationLedger(kv_store)


@pytest.fixture
def engine(gateway: FakeGateway, ledger: ConfirmationLedger) -> ActionProposalEngine:
    return ActionProposalEngine(gateway, ledger, recipient_address=MARKET_ADDRESS, verify_settlement=False)


@pytest.fixture
def app(gateway: FakeGateway, ledger: ConfirmationLedger):
    application = create_app()
    application.dependency_overrides[get_gateway] = lambda: gateway
    application.dependency_overrides[get_ledger] = lambda: ledger
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def wallet_client(client: TestClient) -> TestClient:
    """Client with a session holding USER_TOKEN."""
    resp = client.post("/api/auth/circle-login", json={"userToken": USER_TOKEN})
    assert resp.status_code == 200
    return client
