"""
Wallet tools - balance, wallet info, transaction history, transfer proposals.

All wallet ids arrive from the model and are ownership-checked against the live
wallet list before use. transfer_tokens only prepares a challenge; the user
signs it in the app.
"""

import logging
from typing import Literal, Optional

from pydantic import Field

from ..core.config import get_settings
from ..core.errors import OwnershipViolation
from ..services.ownership import resolve_wallet, verify_ownership
from .pending_action import embed_pending_action
from .registry import ToolArgs, ToolContext, ToolRisk, tool

logger = logging.getLogger(__name__)

WALLET_ID_HELP = "The wallet ID. Omit to use the user's primary wallet."


class WalletArgs(ToolArgs):
    wallet_id: Optional[str] = Field(default=None, description=WALLET_ID_HELP)


class ListTransactionsArgs(ToolArgs):
    wallet_id: Optional[str] = Field(default=None, description=WALLET_ID_HELP)
    transaction_type: Optional[Literal["INBOUND", "OUTBOUND"]] = Field(
        default=None, description="Filter by direction",
    )
    state: Optional[str] = Field(
        default=None, description="Filter by state, e.g. COMPLETE, PENDING, FAILED",
    )
    page_size: int = Field(default=10, ge=1, le=50, description="Max transactions to return")


class GetTransactionArgs(ToolArgs):
    transaction_id: str = Field(description="The transaction ID")


class TransferArgs(ToolArgs):
    wallet_id: Optional[str] = Field(default=None, description="The source wallet ID. " + WALLET_ID_HELP)
    token_id: str = Field(description="Token ID to send. Get it from check_wallet_balance.")
    destination_address: str = Field(description="Recipient blockchain address")
    amount: str = Field(description="Amount as a decimal string, e.g. '0.1'")
    fee_level: Literal["LOW", "MEDIUM", "HIGH"] = Field(default="MEDIUM", description="Network fee level")


def _short(address: str) -> str:
    return f"{address[:10]}..." if len(address) > 10 else address


@tool(
    name="check_wallet_balance",
    description=(
        "Check the token balances of a wallet. Returns each token's symbol, amount "
        "and token ID. Use this before any transfer or purchase."
    ),
    args_model=WalletArgs,
    risk=ToolRisk.EXTERNAL,
    category="wallet",
)
async def check_wallet_balance(args: WalletArgs, ctx: ToolContext) -> str:
    wallet = await resolve_wallet(ctx.gateway, ctx.credential, args.wallet_id or ctx.wallet_id)
    balances = await ctx.gateway.get_balance(ctx.credential, wallet.id)
    if not balances:
        return f"Wallet {wallet.id} has no token balances yet. Fund it with testnet USDC first."

    lines = [f"Balances for wallet {wallet.id}:"]
    for b in balances:
        lines.append(f"- {b.amount} {b.symbol} (token ID: {b.token_id})")
    return "\n".join(lines)


@tool(
    name="get_wallet_info",
    description="Get a wallet's address, blockchain, account type and state.",
    args_model=WalletArgs,
    risk=ToolRisk.EXTERNAL,
    category="wallet",
)
async def get_wallet_info(args: WalletArgs, ctx: ToolContext) -> str:
    wallet = await resolve_wallet(ctx.gateway, ctx.credential, args.wallet_id or ctx.wallet_id)
    return (
        f"Wallet ID: {wallet.id}\n"
        f"Address: {wallet.address}\n"
        f"Blockchain: {wallet.blockchain}\n"
        f"Account type: {wallet.account_type or 'unknown'}\n"
        f"State: {wallet.state}"
    )


@tool(
    name="list_transactions",
    description="List recent transactions of a wallet, newest first. Optionally filter by direction or state.",
    args_model=ListTransactionsArgs,
    risk=ToolRisk.EXTERNAL,
    category="wallet",
)
async def list_transactions(args: ListTransactionsArgs, ctx: ToolContext) -> str:
    wallet = await resolve_wallet(ctx.gateway, ctx.credential, args.wallet_id or ctx.wallet_id)
    transactions = await ctx.gateway.list_transactions(
        ctx.credential,
        wallet_ids=[wallet.id],
        tx_type=args.transaction_type,
        state=args.state,
        page_size=args.page_size,
    )
    if not transactions:
        return f"No transactions found for wallet {wallet.id}."

    lines = [f"{len(transactions)} transaction(s) for wallet {wallet.id}:"]
    for tx in transactions:
        amount = ", ".join(tx.amounts) or "?"
        counterparty = tx.destination_address if tx.transaction_type == "OUTBOUND" else tx.source_address
        line = f"- {tx.id}: {tx.transaction_type} {amount} [{tx.state}]"
        if counterparty:
            line += f" {'to' if tx.transaction_type == 'OUTBOUND' else 'from'} {_short(counterparty)}"
        if tx.create_date:
            line += f" on {tx.create_date}"
        lines.append(line)
    return "\n".join(lines)


@tool(
    name="get_transaction",
    description="Get the details of one transaction by ID, including its explorer link once it has a hash.",
    args_model=GetTransactionArgs,
    risk=ToolRisk.EXTERNAL,
    category="wallet",
)
async def get_transaction(args: GetTransactionArgs, ctx: ToolContext) -> str:
    tx = await ctx.gateway.get_transaction(ctx.credential, args.transaction_id)
    if not tx.wallet_id:
        raise OwnershipViolation()
    await verify_ownership(ctx.gateway, ctx.credential, tx.wallet_id)

    lines = [
        f"Transaction {tx.id}",
        f"Type: {tx.transaction_type}",
        f"State: {tx.state}",
        f"Amount: {', '.join(tx.amounts) or '?'}",
    ]
    if tx.source_address:
        lines.append(f"From: {tx.source_address}")
    if tx.destination_address:
        lines.append(f"To: {tx.destination_address}")
    if tx.tx_hash:
        lines.append(f"Explorer: {get_settings().explorer_tx_url}{tx.tx_hash}")
    return "\n".join(lines)


@tool(
    name="transfer_tokens",
    description=(
        "Prepare a token transfer from the user's wallet. This does NOT send anything: "
        "it creates a challenge the user must confirm and sign in the app. "
        "Call check_wallet_balance first to get the token ID."
    ),
    args_model=TransferArgs,
    risk=ToolRisk.PROPOSAL,
    category="wallet",
)
async def transfer_tokens(args: TransferArgs, ctx: ToolContext) -> str:
    wallet = await resolve_wallet(ctx.gateway, ctx.credential, args.wallet_id or ctx.wallet_id)
    action = await ctx.engine.propose_transfer(
        ctx.credential,
        wallet_id=wallet.id,
        token_id=args.token_id,
        destination_address=args.destination_address,
        amount=args.amount,
        fee_level=args.fee_level,
    )
    return embed_pending_action(
        action,
        f"Transfer of {args.amount} to {_short(args.destination_address)} prepared. "
        "Ask the user to confirm and sign it in the app. Nothing has been sent yet.",
    )
