"""Per-entity write locks for the ledger.

Postings against the same allocation or account are linearised here so that the
overpayment / insufficient-balance check and the write it guards cannot interleave
with another writer. Postings against different entities never wait on each other.
Inside the lock the ledger also re-reads the row with SELECT ... FOR UPDATE, which
extends the guarantee across worker processes on PostgreSQL.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Tuple

from school_ledger.core.config import settings
from school_ledger.core.exceptions import LedgerBusy

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class EntityLockRegistry:
    """Keyed asyncio locks with a bounded acquisition wait."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._entries: Dict[Tuple[str, Hashable], _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def hold(self, entity: str, entity_id: Hashable) -> AsyncIterator[None]:
        """Hold the write lock for one entity; raise LedgerBusy if it is not free within timeout."""
        key = (entity, entity_id)
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        try:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("Lock wait on %s %s exceeded %.2fs", entity, entity_id, self.timeout)
                raise LedgerBusy(entity, entity_id)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]


ledger_locks = EntityLockRegistry(timeout=settings.ledger_lock_timeout_seconds)
