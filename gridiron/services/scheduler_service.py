"""
Gridiron Picks background scheduler

Runs the score refresh pipeline on a fixed interval and a periodic full
statistics rebuild using APScheduler. Overlapping runs are tolerated: the
refresh is debounced by its cooldown marker and every step is idempotent.
"""

import atexit
import logging
from datetime import datetime, timezone

import requests
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from gridiron import db
from gridiron.services.pipeline import run_refresh
from gridiron.services.stats_service import recalculate_all_stats
from gridiron.utils import league_calendar

logger = logging.getLogger(__name__)


def _empty_stats():
    return {
        "last_sync": None,
        "last_status": None,
        "total_syncs": 0,
        "successful_syncs": 0,
        "skipped_syncs": 0,
        "failed_syncs": 0,
        "last_error": None,
        "games_updated": 0,
    }


class SchedulerService:
    """Manages automatic background scheduling of score refreshes"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.sync_stats = _empty_stats()

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        minutes = self.app.config.get("SCHEDULER_REFRESH_MINUTES", 5)

        self.scheduler.add_job(
            func=self._refresh_scores,
            trigger=IntervalTrigger(minutes=minutes),
            id="refresh_scores",
            name="Refresh Scores and Settle Picks",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        # Top of every hour
        self.scheduler.add_job(
            func=self._rebuild_stats,
            trigger=CronTrigger(minute=0),
            id="rebuild_stats",
            name="Rebuild Season Statistics",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        logger.info(f"Core scheduled jobs added (refresh every {minutes} min)")

    def _refresh_scores(self, force=False):
        """One pipeline run; failures are recorded and retried next interval"""
        with self.app.app_context():
            try:
                result = run_refresh(force=force)
            except (requests.exceptions.RequestException, SQLAlchemyError) as e:
                db.session.rollback()
                self._update_stats("failed", error=e)
                logger.error(f"Error in scheduled refresh: {e}", exc_info=True)
                return None

            games_updated = result.sync["written"] if result.sync else 0
            self._update_stats(result.status, games_updated=games_updated)
            return result

    def _rebuild_stats(self):
        with self.app.app_context():
            try:
                year = league_calendar.season_year_for(datetime.now(timezone.utc))
                users = recalculate_all_stats(year)
                logger.info(f"Rebuilt {year} statistics for {users} users")
            except SQLAlchemyError as e:
                db.session.rollback()
                self.sync_stats["last_error"] = str(e)
                logger.error(f"Error rebuilding statistics: {e}", exc_info=True)

    def _update_stats(self, status, games_updated=0, error=None):
        """Update sync statistics"""
        self.sync_stats["last_sync"] = datetime.now(timezone.utc)
        self.sync_stats["last_status"] = status
        self.sync_stats["total_syncs"] += 1

        if status == "failed":
            self.sync_stats["failed_syncs"] += 1
            self.sync_stats["last_error"] = str(error)
        elif status == "completed":
            self.sync_stats["successful_syncs"] += 1
            self.sync_stats["games_updated"] += games_updated
            self.sync_stats["last_error"] = None
        else:
            self.sync_stats["skipped_syncs"] += 1

        # Reset counters periodically
        if self.sync_stats["total_syncs"] > 10000:
            last_sync = self.sync_stats["last_sync"]
            self.sync_stats = _empty_stats()
            self.sync_stats["last_sync"] = last_sync

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.sync_stats)
        if stats["last_sync"]:
            stats["last_sync"] = stats["last_sync"].isoformat()

        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_sync(self, sync_type="refresh"):
        """Manually trigger a job outside its schedule"""
        if sync_type == "refresh":
            result = self._refresh_scores(force=True)
            if result is None:
                return False, f"Manual refresh failed: {self.sync_stats['last_error']}"
            return True, f"Manual refresh {result.status}"
        if sync_type == "stats":
            self._rebuild_stats()
            return True, "Manual statistics rebuild completed"
        raise ValueError(f"Unknown sync type: {sync_type}")


# Global scheduler instance
scheduler_service = SchedulerService()
