import asyncio

import pytest

from app.services.store import GoalLocks


@pytest.mark.asyncio
async def test_different_goals_do_not_block_each_other():
    locks = GoalLocks()

    async with locks.hold("goal-a"):
        async with locks.hold("goal-b"):
            assert len(locks) == 2
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_same_goal_is_serialized_and_entry_dropped():
    locks = GoalLocks()
    order = []

    async def worker(name):
        async with locks.hold("goal-a"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("first"), worker("second"), worker("third"))

    # no interleaving inside the critical section
    assert all(order[i].endswith("-in") and order[i + 1].endswith("-out") for i in range(0, len(order), 2))
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_cancelled_waiter_releases_its_entry():
    locks = GoalLocks()
    entered = asyncio.Event()

    async def waiter():
        async with locks.hold("goal-a"):
            entered.set()

    async with locks.hold("goal-a"):
        task = asyncio.create_task(waiter())
        await asyncio.sleep(0.01)
        assert not entered.is_set()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(locks) == 1

    assert len(locks) == 0
    assert not entered.is_set()
