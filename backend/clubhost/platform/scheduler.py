"""Background loop that reconciles host plan tiers with club usage.

Runs ``HostPlanReconciler.reconcile_all`` once per interval (a day by default) for as long
as the API process lives.
"""

import asyncio
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clubhost.billing.reconciler import HostPlanReconciler
from clubhost.core.config import settings
from clubhost.core.datetime_utils import utc_now
from clubhost.core.logging import logger
from clubhost.db.session import get_db_context


class HostPlanScheduler:
    """Owns the asyncio task of the reconciliation loop.

    A failed pass is logged and the next one runs on schedule.
    """

    def __init__(
        self,
        reconciler: HostPlanReconciler,
        check_interval: Optional[int] = None,
        session_factory: Callable[[], AsyncContextManager[AsyncSession]] = get_db_context,
    ):
        """Initialize the scheduler."""
        self.reconciler = reconciler
        self.session_factory = session_factory
        self.check_interval = check_interval or settings.HOST_PLAN_RECONCILE_INTERVAL_SECONDS
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self._log = logger.with_context(component="host_plan_scheduler")

    async def start(self):
        """Start the loop unless it is already running."""
        if self.running:
            self._log.warning("Host plan scheduler already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run_forever())
        self._log.info(f"Host plan scheduler started, interval {self.check_interval}s")

    async def stop(self):
        """Cancel the loop and wait for it to finish."""
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        self._log.info("Host plan scheduler stopped")

    async def run_once(self) -> dict[str, int]:
        """Reconcile every club once with a fresh session."""
        async with self.session_factory() as db:
            return await self.reconciler.reconcile_all(db)

    async def _run_forever(self):
        passes = 0
        while self.running:
            passes += 1
            started = utc_now()
            try:
                summary = await self.run_once()
            except Exception as e:
                self._log.error(f"Reconciliation pass {passes} failed: {e}", exc_info=True)
            else:
                elapsed = (utc_now() - started).total_seconds()
                self._log.info(f"Reconciliation pass {passes} took {elapsed:.3f}s: {summary}")

            await asyncio.sleep(self.check_interval)
