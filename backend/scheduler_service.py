"""
Scheduler for the lead pool automatic tasks
- Daily distribution at 6:30 AM Central (configurable)
- Hourly stale-lock sweep (crash recovery)
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import (
    db as default_db,
    DISTRIBUTION_TIMEZONE,
    DISTRIBUTION_CRON_HOUR,
    DISTRIBUTION_CRON_MINUTE,
    LOCK_STALE_SECONDS,
)
from services.lead_pool import LeadPool
from services.event_logger import log_event, dispatch_events

logger = logging.getLogger("scheduler")


class TaskScheduler:
    """Scheduled jobs manager"""

    def __init__(self, db=None):
        self.scheduler = AsyncIOScheduler(timezone=DISTRIBUTION_TIMEZONE)
        self.db = db if db is not None else default_db

    def register_jobs(self):
        self.scheduler.add_job(
            self.run_distribution,
            CronTrigger(hour=DISTRIBUTION_CRON_HOUR, minute=DISTRIBUTION_CRON_MINUTE),
            id="lead_distribution",
            name="Daily lead distribution",
            replace_existing=True
        )

        self.scheduler.add_job(
            self.sweep_stale_locks,
            IntervalTrigger(hours=1),
            id="stale_lock_sweep",
            name="Stale lock sweep",
            replace_existing=True
        )

    def start(self):
        """Starts the scheduler with every job"""
        self.register_jobs()
        self.scheduler.start()
        logger.info(
            f"Scheduler started: distribution at {DISTRIBUTION_CRON_HOUR:02d}:{DISTRIBUTION_CRON_MINUTE:02d} "
            f"{DISTRIBUTION_TIMEZONE}"
        )

    def stop(self):
        """Stops the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")

    # ==================== SCHEDULED TASKS ====================

    async def run_distribution(self):
        """Daily distribution round. Never raises."""
        try:
            pool = LeadPool(self.db)
            result = await pool.engine.distribute(force_rotate=True)

            await dispatch_events(self.db, result["events"])
            if result["status"] != "paused":
                await log_event(
                    self.db,
                    action="distribute_leads",
                    entity_type="lead_pool",
                    entity_id="distribution",
                    details={
                        "status": result["status"],
                        "moved_total": result["moved_total"],
                        "skipped": len(result["skipped"]),
                        "rotated_back": (result["rotation"] or {}).get("returned", 0),
                        "trigger": "scheduler",
                    }
                )

            logger.info(f"[SCHEDULER] distribution {result['status']}: {result['moved_total']} leads moved")
            return result

        except Exception as e:
            logger.error(f"[SCHEDULER] distribution failed: {str(e)}")
            return None

    async def sweep_stale_locks(self):
        """Releases or completes locks older than LOCK_STALE_SECONDS. Never raises."""
        try:
            pool = LeadPool(self.db)
            result = await pool.recall.force_unlock_pool(LOCK_STALE_SECONDS)
            if result["unlocked_count"] or result["completed_count"]:
                logger.warning(f"[SCHEDULER] stale locks: {result['message']}")
            return result

        except Exception as e:
            logger.error(f"[SCHEDULER] stale lock sweep failed: {str(e)}")
            return None


# Global instance
task_scheduler = TaskScheduler()
