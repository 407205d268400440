"""Tests for the host plan scheduler."""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from clubhost.billing.reconciler import HostPlanReconciler
from clubhost.platform.scheduler import HostPlanScheduler


def _session_factory(session):
    @asynccontextmanager
    async def factory():
        yield session

    return factory


async def test_run_once_uses_fresh_session():
    """One run reconciles every club on a session from the factory."""
    session = MagicMock()
    reconciler = MagicMock(spec=HostPlanReconciler)
    reconciler.reconcile_all = AsyncMock(return_value={"evaluated": 3})
    scheduler = HostPlanScheduler(
        reconciler, check_interval=60, session_factory=_session_factory(session)
    )

    summary = await scheduler.run_once()

    assert summary == {"evaluated": 3}
    reconciler.reconcile_all.assert_awaited_once_with(session)


async def test_start_and_stop():
    """The loop runs in the background and survives failing iterations."""
    calls = []

    async def reconcile_all(db):
        calls.append(db)
        if len(calls) == 1:
            raise RuntimeError("db down")
        return {}

    reconciler = MagicMock(spec=HostPlanReconciler)
    reconciler.reconcile_all = AsyncMock(side_effect=reconcile_all)
    scheduler = HostPlanScheduler(
        reconciler, check_interval=0.01, session_factory=_session_factory(MagicMock())
    )

    await scheduler.start()
    assert scheduler.running is True
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert scheduler.running is False
    assert scheduler.task is None
    assert reconciler.reconcile_all.await_count >= 2


async def test_start_twice_keeps_one_task():
    """Starting a running scheduler does not spawn a second loop."""
    reconciler = MagicMock(spec=HostPlanReconciler)
    reconciler.reconcile_all = AsyncMock(return_value={})
    scheduler = HostPlanScheduler(
        reconciler, check_interval=60, session_factory=_session_factory(MagicMock())
    )

    await scheduler.start()
    task = scheduler.task
    await scheduler.start()

    assert scheduler.task is task
    await scheduler.stop()
