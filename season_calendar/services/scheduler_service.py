"""
Background jobs

Runs the countdown rollover on a cron schedule so stored cycle starts keep
up with the clock even when nobody reads the countdowns.
"""
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from season_calendar.config import settings
from season_calendar.services.countdown_service import CountdownService


logger = logging.getLogger(__name__)

JOB_ID = "countdown_rollover"


def build_trigger(cron_expression: str) -> CronTrigger:
    """Crontab trigger evaluated in UTC"""
    try:
        return CronTrigger.from_crontab(cron_expression, timezone="UTC")
    except (ValueError, KeyError) as exc:
        logger.error("Invalid cron expression '%s': %s", cron_expression, exc)
        raise


class CountdownScheduler:
    """Owns the AsyncIOScheduler running the rollover job"""

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None
        self._countdowns: CountdownService | None = None
        self.last_run: datetime | None = None
        self.last_moved: int | None = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    async def _rollover_job(self) -> None:
        if self._countdowns is None:
            return
        try:
            self.last_moved = await self._countdowns.roll_over()
        except Exception as e:
            logger.error(f"Countdown rollover failed: {e}", exc_info=True)
            return
        finally:
            self.last_run = datetime.now(timezone.utc)
        logger.debug("Countdown rollover moved %s countdown(s)", self.last_moved)

    def start(
        self,
        countdowns: CountdownService,
        *,
        cron_expression: str | None = None,
        misfire_grace_sec: int | None = None,
    ) -> None:
        """
        Schedule the rollover job

        Args:
            countdowns: Service whose stored starts are rolled forward
            cron_expression: Crontab schedule, defaults to settings.countdown_rollover_cron
            misfire_grace_sec: Late-run allowance, defaults to the configured value
        """
        if self.running:
            logger.warning("Scheduler already running")
            return

        trigger = build_trigger(cron_expression or settings.countdown_rollover_cron)
        if misfire_grace_sec is None:
            misfire_grace_sec = settings.countdown_rollover_misfire_grace_sec

        self._countdowns = countdowns
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        # one rollover at a time, missed runs collapse into one
        self.scheduler.add_job(
            self._rollover_job,
            trigger=trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=misfire_grace_sec,
        )
        self.scheduler.start()

        next_time = self.get_next_run_time()
        logger.info(
            "Countdown rollover scheduled, next run %s",
            next_time.isoformat() if next_time else "unknown",
        )

    def shutdown(self) -> None:
        if self.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None
        self._countdowns = None

    def get_next_run_time(self) -> datetime | None:
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None


countdown_scheduler = CountdownScheduler()
