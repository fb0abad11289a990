"""
Reminder Scheduler

Runs the review-reminder dispatch periodically inside the backend process.
Disabled unless REMINDERS_ENABLED=true.
"""

import asyncio
import logging
import os
from datetime import datetime
from typing import Optional

from explorer_portal.push_notifications import DispatchSummary, PushDispatcher

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """
    Background loop around PushDispatcher.send_review_reminders.

    The dispatcher is synchronous (Supabase + pywebpush), so each run is
    executed in a worker thread.
    """

    def __init__(
        self,
        dispatcher: Optional[PushDispatcher],
        interval_hours: Optional[float] = None,
        enabled: Optional[bool] = None,
        initial_delay_seconds: float = 60
    ):
        """
        Args:
            dispatcher: Configured PushDispatcher (None disables the scheduler)
            interval_hours: Hours between runs (default: REMINDER_INTERVAL_HOURS or 24)
            enabled: Override REMINDERS_ENABLED
            initial_delay_seconds: Wait before the first run
        """
        self.dispatcher = dispatcher
        self.interval_hours = interval_hours or float(os.getenv("REMINDER_INTERVAL_HOURS", "24"))
        if enabled is None:
            enabled = os.getenv("REMINDERS_ENABLED", "false").lower() == "true"
        self.enabled = enabled and dispatcher is not None
        self.initial_delay_seconds = initial_delay_seconds
        self.last_run: Optional[datetime] = None
        self.last_summary: Optional[DispatchSummary] = None
        self.task: Optional[asyncio.Task] = None
        self.running = False

        if enabled and dispatcher is None:
            logger.warning("⚠️ [ReminderScheduler] No push dispatcher configured - reminders disabled")

    async def start(self):
        if not self.enabled:
            logger.info("🔕 [ReminderScheduler] Reminder scheduler is disabled")
            return

        if self.running:
            logger.warning("⚠️ [ReminderScheduler] Scheduler already running")
            return

        self.running = True
        logger.info(f"⏰ [ReminderScheduler] Starting reminders (interval: {self.interval_hours}h)")
        self.task = asyncio.create_task(self._loop())

    async def stop(self):
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("🛑 [ReminderScheduler] Reminder scheduler stopped")

    async def _loop(self):
        await asyncio.sleep(self.initial_delay_seconds)
        while self.running:
            try:
                await self.run_once()
                await asyncio.sleep(self.interval_hours * 3600)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"❌ [ReminderScheduler] Error in reminder loop: {e}")
                # Retry in an hour
                await asyncio.sleep(3600)

    async def run_once(self) -> Optional[DispatchSummary]:
        """Run a single review-reminder dispatch now."""
        if self.dispatcher is None:
            return None

        start_time = datetime.now()
        summary = await asyncio.to_thread(self.dispatcher.send_review_reminders)
        self.last_run = datetime.now()
        self.last_summary = summary
        duration = (self.last_run - start_time).total_seconds()
        logger.info(
            f"✅ [ReminderScheduler] Reminders dispatched in {duration:.1f}s "
            f"({summary.sent} sent, {summary.failed} failed)"
        )
        return summary

    def get_status(self) -> dict:
        return {
            "enabled": self.enabled,
            "running": self.running,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "interval_hours": self.interval_hours,
            "last_sent": self.last_summary.sent if self.last_summary else None,
        }
