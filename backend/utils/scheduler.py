"""
ChargeSphere - Background Scheduler
Periodically completes confirmed bookings whose time window has ended.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from typing import Optional
import logging

from config import get_settings

# Configure logging
logger = logging.getLogger(__name__)


class BookingScheduler:
    """Background scheduler for booking housekeeping."""

    def __init__(self, interval_minutes: Optional[int] = None):
        self.scheduler = AsyncIOScheduler()
        self.interval_minutes = interval_minutes or get_settings().booking_completion_interval_minutes
        self._is_running = False

    def start(self):
        """Start the background scheduler."""
        if self._is_running:
            logger.warning("Scheduler is already running")
            return

        self.scheduler.add_job(
            self._complete_past_bookings,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="complete_past_bookings",
            name="Complete confirmed bookings that have ended",
            replace_existing=True
        )

        self.scheduler.start()
        self._is_running = True
        logger.info(f"Background scheduler started (every {self.interval_minutes} min)")

    def stop(self):
        """Stop the background scheduler."""
        if not self._is_running:
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Background scheduler stopped")

    def is_running(self) -> bool:
        return self._is_running

    async def _complete_past_bookings(self):
        """Job body. Errors are logged so the next run still happens."""
        try:
            # Import here to avoid circular imports
            from services.booking_service import get_booking_service

            completed = await get_booking_service().complete_past_bookings()

            if completed > 0:
                logger.info(f"Completed {completed} booking(s)")

        except Exception as e:
            logger.error(f"Error completing past bookings: {e}")


# Singleton instance
_scheduler_instance: Optional[BookingScheduler] = None


def get_scheduler() -> BookingScheduler:
    """Get the scheduler singleton instance."""
    global _scheduler_instance
    if _scheduler_instance is None:
        _scheduler_instance = BookingScheduler()
    return _scheduler_instance


def start_scheduler():
    """Start the background scheduler."""
    get_scheduler().start()


def stop_scheduler():
    """Stop the background scheduler."""
    get_scheduler().stop()
