import asyncio

import pytest

from school_ledger.core.exceptions import LedgerBusy
from school_ledger.core.locks import EntityLockRegistry


async def test_waiter_times_out_with_busy() -> None:
    registry = EntityLockRegistry(timeout=0.05)
    async with registry.hold("fee_allocation", "a-1"):
        with pytest.raises(LedgerBusy) as exc:
            async with registry.hold("fee_allocation", "a-1"):
                pass
    assert exc.value.status_code == 409
    assert exc.value.to_detail()["kind"] == "busy"
    assert len(registry) == 0


async def test_different_entities_do_not_block() -> None:
    registry = EntityLockRegistry(timeout=0.05)
    async with registry.hold("fee_allocation", "a-1"):
        async with registry.hold("fee_allocation", "a-2"):
            async with registry.hold("account", "a-1"):
                assert len(registry) == 3
    assert len(registry) == 0


async def test_writers_on_one_entity_are_serialised() -> None:
    registry = EntityLockRegistry(timeout=1)
    inside = 0
    peak = 0

    async def writer() -> None:
        nonlocal inside, peak
        async with registry.hold("account", "cash"):
            inside += 1
            peak = max(peak, inside)
            await asyncio.sleep(0.01)
            inside -= 1

    await asyncio.gather(*(writer() for _ in range(5)))
    assert peak == 1
    assert len(registry) == 0
