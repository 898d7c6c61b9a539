"""
Marketplace tools - browse the e-book catalog, prepare purchases, list what was bought.
"""

import logging
from typing import Annotated, Optional, Union

from pydantic import BeforeValidator, Field

from ..models import EBook
from ..services import catalog
from ..services.ownership import resolve_wallet
from .pending_action import embed_pending_action
from .registry import ToolArgs, ToolContext, ToolRisk, tool

logger = logging.getLogger(__name__)

# Models send ids as "3" or 3
ItemId = Annotated[str, BeforeValidator(lambda v: str(v).strip() if isinstance(v, (int, str)) else v)]


class NoArgs(ToolArgs):
    pass


class SearchArgs(ToolArgs):
    query: str = Field(min_length=1, description="Words to match in title, author, description or category")


class EbookArgs(ToolArgs):
    ebook_id: ItemId = Field(description="The e-book ID from browse_ebooks or search_ebooks")


class PurchaseArgs(ToolArgs):
    ebook_id: ItemId = Field(description="The e-book ID from browse_ebooks or search_ebooks")
    wallet_id: Optional[str] = Field(
        default=None, description="The paying wallet ID. Omit to use the user's primary wallet.",
    )
    token_id: Optional[Union[str, int]] = Field(
        default=None, description="Ignored. The marketplace always settles in USDC.",
    )


class PurchasedArgs(ToolArgs):
    wallet_id: Optional[str] = Field(
        default=None, description="The wallet ID. Omit to use the user's primary wallet.",
    )


def _line(book: EBook) -> str:
    return f"- [{book.id}] \"{book.title}\" by {book.author}: {book.price} USDC ({book.category})"


@tool(
    name="browse_ebooks",
    description="List every e-book in the marketplace with its ID, author and price in USDC.",
    args_model=NoArgs,
    category="marketplace",
)
async def browse_ebooks(args: NoArgs, ctx: ToolContext) -> str:
    books = catalog.all_items()
    return "\n".join([f"{len(books)} e-books available:"] + [_line(b) for b in books])


@tool(
    name="search_ebooks",
    description="Search e-books by title, author, description or category.",
    args_model=SearchArgs,
    category="marketplace",
)
async def search_ebooks(args: SearchArgs, ctx: ToolContext) -> str:
    books = catalog.search_items(args.query)
    if not books:
        return f'No e-books match "{args.query}". Try browse_ebooks to see the full catalog.'
    return "\n".join([f'{len(books)} e-book(s) match "{args.query}":'] + [_line(b) for b in books])


@tool(
    name="get_ebook_price",
    description="Get the details and price of one e-book.",
    args_model=EbookArgs,
    category="marketplace",
)
async def get_ebook_price(args: EbookArgs, ctx: ToolContext) -> str:
    book = catalog.find_item(args.ebook_id)
    if book is None:
        return f'E-book with ID "{args.ebook_id}" not found. Use browse_ebooks to see available IDs.'
    return (
        f"\"{book.title}\" by {book.author}\n"
        f"Price: {book.price} USDC\n"
        f"Category: {book.category}\n"
        f"{book.description}"
    )


@tool(
    name="purchase_ebook",
    description=(
        "Prepare the purchase of an e-book, paid in USDC from the user's wallet. "
        "This does NOT pay: it creates a challenge the user must confirm and sign in the app."
    ),
    args_model=PurchaseArgs,
    risk=ToolRisk.PROPOSAL,
    category="marketplace",
)
async def purchase_ebook(args: PurchaseArgs, ctx: ToolContext) -> str:
    wallet = await resolve_wallet(ctx.gateway, ctx.credential, args.wallet_id or ctx.wallet_id)
    if await ctx.ledger.has(wallet.id, args.ebook_id):
        return f'The user already owns e-book "{args.ebook_id}" in wallet {wallet.id}. No purchase needed.'

    action = await ctx.engine.propose_purchase(ctx.credential, args.ebook_id, wallet.id)
    return embed_pending_action(
        action,
        f'Purchase of "{action.title}" for {action.amount} USDC prepared. '
        "Ask the user to confirm and sign it in the app. Nothing has been paid yet.",
    )


@tool(
    name="list_purchased_ebooks",
    description="List the e-books the user has bought with a wallet.",
    args_model=PurchasedArgs,
    category="marketplace",
)
async def list_purchased_ebooks(args: PurchasedArgs, ctx: ToolContext) -> str:
    wallet = await resolve_wallet(ctx.gateway, ctx.credential, args.wallet_id or ctx.wallet_id)
    owned = await ctx.ledger.items(wallet.id)
    books = [b for b in catalog.all_items() if b.id in owned]
    if not books:
        return f"No e-books purchased with wallet {wallet.id} yet."
    return "\n".join([f"{len(books)} e-book(s) purchased:"] + [_line(b) for b in books])
