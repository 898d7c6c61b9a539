from __future__ import annotations

import json

from wallet_ai.models import ProposalState, PurchaseAction, TransferAction
from wallet_ai.tools.pending_action import (
    PENDING_ACTION_MARKER as M,
    embed_pending_action,
    extract_pending_action,
    strip_pending_action,
)


def _transfer(**overrides) -> TransferAction:
    fields = dict(
        wallet_id="W1", token_id="t", destination_address="0xabc", amount="0.1",
        state=ProposalState.PREPARED, challenge_id="c-1",
    )
    fields.update(overrides)
    return TransferAction(**fields)


def test_embedded_action_is_extracted_and_stripped() -> None:
    content = embed_pending_action(_transfer(), "Transfer prepared.")

    assert content.startswith(M)
    action = extract_pending_action(content)
    assert isinstance(action, TransferAction)
    assert action.challenge_id == "c-1"
    assert action.state == ProposalState.PREPARED
    assert strip_pending_action(content) == "Transfer prepared."


def test_wire_format_is_camel_case() -> None:
    content = embed_pending_action(_transfer(), "x")
    payload = json.loads(content.split(M)[1])

    assert payload["type"] == "transfer"
    assert payload["walletId"] == "W1"
    assert payload["challengeId"] == "c-1"
    assert payload["destinationAddress"] == "0xabc"


def test_only_first_block_is_used() -> None:
    first = json.dumps({"type": "purchase", "walletId": "W1", "itemId": "3", "challengeId": "first"})
    second = json.dumps({"type": "purchase", "walletId": "W1", "itemId": "4", "challengeId": "second"})
    content = f"{M}{first}{M}\ntext\n{M}{second}{M}"

    action = extract_pending_action(content)
    assert isinstance(action, PurchaseAction)
    assert action.challenge_id == "first"


def test_truncated_block_yields_nothing() -> None:
    content = f'{M}{{"type": "transfer", "walletId": "W1"'
    assert extract_pending_action(content) is None
    assert strip_pending_action(content) == content


def test_invalid_json_between_markers_yields_nothing() -> None:
    content = f'{M}{{"type": "transfer", "walletId": }}{M}\n\nprose'
    assert extract_pending_action(content) is None
    assert strip_pending_action(content) == "prose"


def test_unknown_type_yields_nothing() -> None:
    content = f'{M}{json.dumps({"type": "withdraw", "walletId": "W1"})}{M}'
    assert extract_pending_action(content) is None


def test_plain_text_has_no_action() -> None:
    assert extract_pending_action("Balance: 1 USDC") is None
    assert extract_pending_action("") is None
