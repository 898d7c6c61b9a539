from __future__ import annotations

import json

from fastapi.testclient import TestClient

from wallet_ai.core.errors import CredentialRequired, OwnershipViolation, UpstreamFailure
from wallet_ai.models import Transaction
from wallet_ai.services import llm

from tests.fakes import (
    MARKET_ADDRESS,
    USDC_TOKEN_ID,
    USER_TOKEN,
    FakeGateway,
    ScriptedModel,
    completion,
    tool_call,
    usdc,
)


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok", "service": "wallet-ai"}


def test_wallets_require_a_session(client: TestClient) -> None:
    resp = client.get("/api/wallets")

    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_identity_without_credential_is_credential_required(client: TestClient, gateway: FakeGateway) -> None:
    # Dev identity login: subject, no wallet credential
    login = client.post("/api/auth/google", json={"idToken": "ignored"})
    assert login.json()["data"] == {"sub": "dev-user", "email": "dev@local", "hasWalletCredential": False}

    resp = client.get("/api/wallets")

    assert resp.status_code == 403
    assert resp.json() == {"success": False, "error": CredentialRequired.default_message}
    assert gateway.calls["list_wallets"] == 0


def test_onboarding_attaches_and_restores_credential(client: TestClient, gateway: FakeGateway) -> None:
    client.post("/api/auth/google", json={"idToken": "ignored"})

    first = client.post("/api/circle/initialize-user", json={"userToken": USER_TOKEN})
    assert first.json() == {"success": True, "data": {"challengeId": "init-challenge"}}
    assert client.get("/api/auth/me").json()["data"]["hasWalletCredential"] is True

    again = client.post("/api/circle/initialize-user", json={"userToken": USER_TOKEN})
    assert again.json()["data"] == {"alreadyInitialized": True}

    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401

    # Returning user gets the credential back on login
    relogin = client.post("/api/auth/google", json={"idToken": "ignored"})
    assert relogin.json()["data"]["hasWalletCredential"] is True
    assert client.get("/api/wallets").status_code == 200


def test_initialize_user_needs_identity(client: TestClient, gateway: FakeGateway) -> None:
    resp = client.post("/api/circle/initialize-user", json={"userToken": USER_TOKEN})

    assert resp.status_code == 401
    assert gateway.calls["initialize_user"] == 0


def test_device_token_is_public(client: TestClient) -> None:
    resp = client.post("/api/circle/device-token", json={"deviceId": "dev-1"})

    assert resp.json()["data"]["deviceToken"] == "dt-dev-1"


def test_list_wallets(wallet_client: TestClient) -> None:
    resp = wallet_client.get("/api/wallets")

    assert resp.status_code == 200
    wallets = resp.json()["data"]["wallets"]
    assert [w["id"] for w in wallets] == ["W1", "W2"]
    assert wallets[0]["accountType"] == "EOA"


def test_foreign_and_missing_wallets_look_the_same(wallet_client: TestClient) -> None:
    foreign = wallet_client.get("/api/wallets/W9/balance")
    missing = wallet_client.get("/api/wallets/nope/balance")

    assert foreign.status_code == missing.status_code == 403
    assert foreign.json() == missing.json() == {
        "success": False, "error": OwnershipViolation.default_message,
    }


def test_wallet_reads(wallet_client: TestClient, gateway: FakeGateway) -> None:
    gateway.transactions.append(Transaction(id="tx-1", wallet_id="W1", state="COMPLETE", transaction_type="INBOUND"))

    assert wallet_client.get("/api/wallets/W1").json()["data"]["wallet"]["id"] == "W1"
    balances = wallet_client.get("/api/wallets/W1/balance").json()["data"]["tokenBalances"]
    assert balances == [{"tokenId": USDC_TOKEN_ID, "symbol": "USDC", "amount": "0.20", "blockchain": "ARC-TESTNET"}]
    txs = wallet_client.get("/api/wallets/W1/transactions").json()["data"]["transactions"]
    assert [t["id"] for t in txs] == ["tx-1"]
    assert wallet_client.get("/api/wallets/transactions/tx-1").json()["data"]["transaction"]["walletId"] == "W1"


def test_transactions_of_other_users_are_rejected(wallet_client: TestClient, gateway: FakeGateway) -> None:
    gateway.transactions.append(Transaction(id="tx-9", wallet_id="W9", state="COMPLETE"))

    assert wallet_client.get("/api/wallets/transactions/tx-9").status_code == 403
    assert wallet_client.get("/api/wallets/transactions/all?walletIds=W1,W9").status_code == 403

    all_owned = wallet_client.get("/api/wallets/transactions/all").json()["data"]["transactions"]
    assert all_owned == []


def test_prepare_transfer(wallet_client: TestClient, gateway: FakeGateway) -> None:
    resp = wallet_client.post("/api/actions/prepare", json={
        "kind": "transfer",
        "params": {"walletId": "W2", "tokenId": USDC_TOKEN_ID, "destinationAddress": "0xabc", "amount": "1.5"},
    })

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["challengeId"] == "challenge-1"
    assert data["type"] == "transfer"
    assert data["walletId"] == "W2"
    assert data["amount"] == "1.5"
    assert data["state"] == "prepared"


def test_prepare_transfer_insufficient_balance(wallet_client: TestClient, gateway: FakeGateway) -> None:
    gateway.balances["W1"] = [usdc("0.05")]

    resp = wallet_client.post("/api/actions/prepare", json={
        "kind": "transfer",
        "params": {"walletId": "W1", "tokenId": USDC_TOKEN_ID, "destinationAddress": "0xabc", "amount": "0.1"},
    })

    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "error": "Insufficient balance. Available: 0.05 USDC. Requested: 0.1 USDC.",
    }
    assert gateway.calls["create_challenge"] == 0


def test_prepare_from_foreign_wallet_never_creates_challenge(wallet_client: TestClient, gateway: FakeGateway) -> None:
    resp = wallet_client.post("/api/actions/prepare", json={
        "kind": "purchase", "params": {"walletId": "W9", "itemId": "1"},
    })

    assert resp.status_code == 403
    assert gateway.calls["create_challenge"] == 0


def test_prepare_rejects_unknown_kind(wallet_client: TestClient) -> None:
    resp = wallet_client.post("/api/actions/prepare", json={"kind": "withdraw", "params": {}})

    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_purchase_flow(wallet_client: TestClient, gateway: FakeGateway) -> None:
    prepared = wallet_client.post("/api/actions/prepare", json={
        "kind": "purchase", "params": {"walletId": "W1", "itemId": 1},
    }).json()["data"]
    assert prepared["type"] == "purchase"
    assert prepared["itemId"] == "1"
    assert gateway.challenges[0].destination_address == MARKET_ADDRESS

    before = wallet_client.get("/api/marketplace/ebooks/1/purchased?walletId=W1").json()["data"]
    assert before["purchased"] is False

    for _ in range(2):
        confirm = wallet_client.post("/api/actions/confirm", json={"walletId": "W1", "itemId": "1"})
        assert confirm.json() == {"success": True, "data": {"ok": True}}

    after = wallet_client.get("/api/marketplace/ebooks/1/purchased?walletId=W1").json()["data"]
    assert after["purchased"] is True
    purchased = wallet_client.get("/api/marketplace/purchased").json()["data"]
    assert purchased["walletId"] == "W1"
    assert [b["id"] for b in purchased["ebooks"]] == ["1"]


def test_confirm_checks_ownership(wallet_client: TestClient) -> None:
    resp = wallet_client.post("/api/actions/confirm", json={"walletId": "W9", "itemId": "1"})

    assert resp.status_code == 403


def test_public_catalog(client: TestClient) -> None:
    books = client.get("/api/marketplace/ebooks").json()["data"]["ebooks"]
    assert len(books) == 20
    assert books[0]["price"] == "0.15"

    found = client.get("/api/marketplace/ebooks/search", params={"q": "defi"}).json()["data"]["ebooks"]
    assert {b["id"] for b in found} == {"7", "19"}

    assert client.get("/api/marketplace/ebooks/404").status_code == 404
    config = client.get("/api/marketplace/config").json()["data"]
    assert config["marketplaceWalletAddress"] == MARKET_ADDRESS
    assert config["settlementSymbols"] == ["USDC", "USDC-TESTNET"]


def test_chat_returns_pending_action(wallet_client: TestClient, monkeypatch) -> None:
    args = json.dumps({"ebookId": "4"})
    model = ScriptedModel(
        completion(tool_calls=[tool_call("c1", "purchase_ebook", args)]),
        completion("Purchase prepared. Please confirm it in the app."),
    )
    monkeypatch.setattr(llm, "chat", model)

    resp = wallet_client.post("/api/chat", json={"message": "buy blockchain basics"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["response"] == "Purchase prepared. Please confirm it in the app."
    assert data["pendingAction"]["type"] == "purchase"
    assert data["pendingAction"]["walletId"] == "W1"
    assert data["pendingAction"]["challengeId"] == "challenge-1"


def test_chat_checks_supplied_wallet(wallet_client: TestClient, monkeypatch) -> None:
    model = ScriptedModel(completion("hi"))
    monkeypatch.setattr(llm, "chat", model)

    resp = wallet_client.post("/api/chat", json={"message": "hi", "walletId": "W9"})

    assert resp.status_code == 403
    assert model.requests == []


def test_upstream_errors_are_redacted(wallet_client: TestClient, gateway: FakeGateway) -> None:
    gateway.fail_with = UpstreamFailure("Circle list wallets failed: 500 secret internals", status=500)

    resp = wallet_client.get("/api/wallets")

    assert resp.status_code == 502
    assert "secret" not in resp.json()["error"]
    assert resp.json()["error"] == UpstreamFailure.default_message
