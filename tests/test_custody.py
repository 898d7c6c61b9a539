from __future__ import annotations

import json

import httpx
import pytest

from wallet_ai.core.errors import AlreadyInitialized, UpstreamFailure
from wallet_ai.models import TransferRequest
from wallet_ai.services.custody import CustodyGateway


def _gateway(handler) -> CustodyGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CustodyGateway(api_key="k", base_url="https://circle.test", client=client)


@pytest.mark.asyncio
async def test_reads_send_api_key_and_user_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"wallets": [
            {"id": "W1", "address": "0x1", "blockchain": "ARC-TESTNET", "accountType": "EOA", "state": "LIVE"},
        ]}})

    wallets = await _gateway(handler).list_wallets("cred-1")

    assert [w.id for w in wallets] == ["W1"]
    assert seen[0].url.path == "/v1/w3s/wallets"
    assert seen[0].headers["authorization"] == "Bearer k"
    assert seen[0].headers["x-user-token"] == "cred-1"


@pytest.mark.asyncio
async def test_balance_is_flattened() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/w3s/wallets/W1/balances"
        return httpx.Response(200, json={"data": {"tokenBalances": [
            {"amount": "2.5", "token": {"id": "tok", "symbol": "USDC", "blockchain": "ARC-TESTNET"}},
        ]}})

    balances = await _gateway(handler).get_balance("cred", "W1")

    assert balances[0].token_id == "tok"
    assert balances[0].amount == "2.5"


@pytest.mark.asyncio
async def test_transaction_filters_become_query_params() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        assert params["walletIds"] == "W1,W2"
        assert params["txType"] == "OUTBOUND"
        assert params["pageSize"] == "5"
        return httpx.Response(200, json={"data": {"transactions": [
            {"id": "t1", "walletId": "W1", "state": "COMPLETE", "transactionType": "OUTBOUND",
             "amounts": ["0.1"], "txHash": "0xhash"},
        ]}})

    txs = await _gateway(handler).list_transactions("cred", wallet_ids=["W1", "W2"], tx_type="OUTBOUND", page_size=5)

    assert txs[0].tx_hash == "0xhash"
    assert txs[0].wallet_id == "W1"


@pytest.mark.asyncio
async def test_create_challenge_payload() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/v1/w3s/user/transactions/transfer"
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"data": {"challengeId": "ch-1"}})

    challenge = await _gateway(handler).create_challenge("cred", TransferRequest(
        wallet_id="W1", token_id="tok", destination_address="0xabc",
        amount="0.1", fee_level="HIGH", idempotency_key="idem-1",
    ))

    assert challenge == "ch-1"
    assert bodies[0] == {
        "idempotencyKey": "idem-1",
        "walletId": "W1",
        "tokenId": "tok",
        "destinationAddress": "0xabc",
        "amounts": ["0.1"],
        "feeLevel": "HIGH",
    }


@pytest.mark.asyncio
async def test_already_initialized_is_distinct() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": 155106, "message": "user already initialized"})

    with pytest.raises(AlreadyInitialized):
        await _gateway(handler).initialize_user("cred")


@pytest.mark.asyncio
async def test_provider_errors_are_upstream_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="<html>oops</html>")

    with pytest.raises(UpstreamFailure) as exc_info:
        await _gateway(handler).list_wallets("cred")

    assert exc_info.value.status == 500
    assert exc_info.value.code is None
    assert exc_info.value.public_message == UpstreamFailure.default_message


@pytest.mark.asyncio
async def test_transport_errors_are_upstream_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(UpstreamFailure):
        await _gateway(handler).get_transaction("cred", "t1")
