"""
Confirmation ledger - which wallet has paid for which item.

Append-only set membership keyed by wallet id. Re-recording a pair is a no-op.
"""

import logging
from typing import Optional

from ..core.store import KeyValueStore, get_store

logger = logging.getLogger(__name__)

LEDGER_PREFIX = "purchases:"


class ConfirmationLedger:
    def __init__(self, store: KeyValueStore):
        self._store = store

    async def record(self, wallet_id: str, item_id: str) -> None:
        await self._store.add_member(LEDGER_PREFIX + wallet_id, item_id)
        logger.info("Ledger: wallet=%s item=%s recorded", wallet_id, item_id)

    async def has(self, wallet_id: str, item_id: str) -> bool:
        return await self._store.is_member(LEDGER_PREFIX + wallet_id, item_id)

    async def items(self, wallet_id: str) -> set[str]:
        return await self._store.members(LEDGER_PREFIX + wallet_id)


_ledger: Optional[ConfirmationLedger] = None


def get_ledger() -> ConfirmationLedger:
    global _ledger
    if _ledger is None:
        _ledger = ConfirmationLedger(get_store())
    return _ledger


def reset_ledger() -> None:
    """Forget the shared instance. The next get_ledger() binds to the current store."""
    global _ledger
    _ledger = None
