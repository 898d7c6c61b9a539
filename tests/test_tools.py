from __future__ import annotations

import pytest

from wallet_ai.core.errors import OwnershipViolation, ValidationError
from wallet_ai.models import Transaction, TransferAction
from wallet_ai.tools.pending_action import PENDING_ACTION_MARKER, extract_pending_action
from wallet_ai.tools.registry import ToolContext, UnknownTool, build_toolbox, get_tool_names

from tests.fakes import USDC_TOKEN_ID, USER_TOKEN, FakeGateway


@pytest.fixture
def toolbox(gateway: FakeGateway, engine, ledger):
    context = ToolContext(credential=USER_TOKEN, gateway=gateway, engine=engine, ledger=ledger, wallet_id="W1")
    return build_toolbox(context)


def test_registry_is_closed_set() -> None:
    assert set(get_tool_names()) == {
        "check_wallet_balance", "get_wallet_info", "list_transactions", "get_transaction",
        "transfer_tokens", "browse_ebooks", "search_ebooks", "get_ebook_price",
        "purchase_ebook", "list_purchased_ebooks",
    }


def test_schemas_use_camel_case_and_reject_extras(toolbox) -> None:
    tools = {t["function"]["name"]: t["function"] for t in toolbox.for_llm()}

    transfer = tools["transfer_tokens"]["parameters"]
    assert transfer["type"] == "object"
    assert transfer["additionalProperties"] is False
    assert {"walletId", "tokenId", "destinationAddress", "amount", "feeLevel"} <= set(transfer["properties"])
    assert set(transfer["required"]) == {"tokenId", "destinationAddress", "amount"}
    assert "title" not in transfer


@pytest.mark.asyncio
async def test_bad_arguments_are_rejected_before_the_handler(toolbox, gateway: FakeGateway) -> None:
    with pytest.raises(ValidationError, match="transfer_tokens"):
        await toolbox.invoke("transfer_tokens", {"tokenId": USDC_TOKEN_ID, "amount": "0.1"})
    with pytest.raises(ValidationError):
        await toolbox.invoke("check_wallet_balance", {"walletId": "W1", "sudo": True})
    with pytest.raises(UnknownTool):
        await toolbox.invoke("drain_wallet", {})

    assert sum(gateway.calls.values()) == 0


@pytest.mark.asyncio
async def test_balance_defaults_to_primary_wallet(toolbox) -> None:
    text = await toolbox.invoke("check_wallet_balance", {})

    assert "W1" in text
    assert "0.20 USDC" in text
    assert USDC_TOKEN_ID in text


@pytest.mark.asyncio
async def test_model_supplied_wallet_is_ownership_checked(toolbox) -> None:
    with pytest.raises(OwnershipViolation):
        await toolbox.invoke("check_wallet_balance", {"walletId": "W9"})


@pytest.mark.asyncio
async def test_transfer_tool_embeds_pending_action(toolbox, gateway: FakeGateway) -> None:
    text = await toolbox.invoke("transfer_tokens", {
        "tokenId": USDC_TOKEN_ID, "destinationAddress": "0x1234567890abcdef", "amount": "0.1",
    })

    assert text.startswith(PENDING_ACTION_MARKER)
    action = extract_pending_action(text)
    assert isinstance(action, TransferAction)
    assert action.wallet_id == "W1"
    assert action.challenge_id == "challenge-1"
    assert gateway.challenges[0].destination_address == "0x1234567890abcdef"
    assert "Nothing has been sent" in text


@pytest.mark.asyncio
async def test_purchase_tool_accepts_numeric_ids(toolbox, ledger) -> None:
    text = await toolbox.invoke("purchase_ebook", {"ebookId": 4})

    action = extract_pending_action(text)
    assert action.item_id == "4"
    assert action.amount == "0.10"
    assert not await ledger.has("W1", "4")


@pytest.mark.asyncio
async def test_purchase_tool_skips_owned_books(toolbox, ledger, gateway: FakeGateway) -> None:
    await ledger.record("W1", "4")

    text = await toolbox.invoke("purchase_ebook", {"ebookId": "4"})

    assert "already owns" in text
    assert gateway.calls["create_challenge"] == 0


@pytest.mark.asyncio
async def test_get_transaction_of_foreign_wallet_is_rejected(toolbox, gateway: FakeGateway) -> None:
    gateway.transactions.append(Transaction(id="tx-9", wallet_id="W9", state="COMPLETE"))

    with pytest.raises(OwnershipViolation):
        await toolbox.invoke("get_transaction", {"transactionId": "tx-9"})


@pytest.mark.asyncio
async def test_catalog_tools(toolbox, ledger) -> None:
    assert "20 e-books" in await toolbox.invoke("browse_ebooks", {})
    assert "Solidity Programming" in await toolbox.invoke("search_ebooks", {"query": "solidity"})
    assert "0.19 USDC" in await toolbox.invoke("get_ebook_price", {"ebookId": "9"})
    assert "not found" in await toolbox.invoke("get_ebook_price", {"ebookId": "77"})

    await ledger.record("W1", "2")
    assert "Web3 Fundamentals" in await toolbox.invoke("list_purchased_ebooks", {})
