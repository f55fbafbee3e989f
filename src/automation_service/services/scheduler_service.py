"""Scheduler Service - fixed-interval rebalancing of configured wallets"""

import asyncio
import logging
from typing import List, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app_config import AppConfig, get_config
from chain_connector_base import RebalanceResult


class SchedulerService:
    """
    Runs a rebalance tick every ``automation.interval_seconds``.

    Ticks do nothing while automation is stopped. A tick that fires while the
    previous one is still running is skipped. Wallets within a tick are
    processed concurrently against a single target allocation.
    """

    def __init__(self, automation_service, config: Optional[AppConfig] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)
        self.automation = automation_service
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._tick_in_progress = False

    async def start(self):
        """Start the scheduler."""
        interval = self.config.automation.interval_seconds

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._execute_scheduled_tick,
            IntervalTrigger(seconds=interval),
            id='rebalance_tick',
            name='Interval wallet rebalance',
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()
        self.logger.info(f"Scheduler started: rebalance tick every {interval}s")

    async def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("Scheduler stopped")

    async def _execute_scheduled_tick(self):
        if not self.automation.is_running:
            self.logger.debug("Automation stopped, skipping scheduled tick")
            return

        if self._tick_in_progress:
            self.logger.warning("Previous rebalance tick still running, skipping this tick")
            return

        self._tick_in_progress = True
        try:
            await self.run_tick()
        except Exception as e:
            self.logger.error(f"Scheduled rebalance tick failed: {e}")
        finally:
            self._tick_in_progress = False

    async def run_tick(self) -> List[RebalanceResult]:
        """Rebalance every configured wallet once"""
        wallet_ids = self.config.automation.wallet_ids
        if not wallet_ids:
            self.logger.info("No wallets configured for scheduled rebalancing")
            return []

        target = await self.automation.recommendations.get_target_allocation()

        self.logger.info(f"Executing scheduled rebalance for {len(wallet_ids)} wallet(s)")
        outcomes = await asyncio.gather(
            *(self.automation.run_cycle(wallet_id, target) for wallet_id in wallet_ids),
            return_exceptions=True
        )

        results = []
        for wallet_id, outcome in zip(wallet_ids, outcomes):
            if isinstance(outcome, BaseException):
                self.logger.error(f"Scheduled rebalance failed for wallet {wallet_id}: {outcome}")
                continue

            results.append(outcome)
            log = self.logger.info if outcome.success else self.logger.error
            log(f"Wallet {wallet_id}: {outcome.status} - {outcome.message}")

        self.logger.info(f"Scheduled rebalance completed: {sum(1 for r in results if r.success)}/{len(wallet_ids)} successful")
        return results
