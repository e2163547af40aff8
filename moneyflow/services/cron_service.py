"""
APScheduler-based CronService for materializing recurring transactions.

Runs one materialization pass daily (00:00 UTC by default) and optionally
once at startup. ``max_instances=1`` keeps passes from overlapping; a pass is
safe to repeat because each due entity advances by exactly one period.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from ..core.config import Settings
from .materializer import materialize_due

logger = logging.getLogger(__name__)


class CronService:
    """Background scheduler for the recurring transaction job."""

    def __init__(self, config: Settings, session_factory: Callable[[], Session]) -> None:
        self.config = config
        self.session_factory = session_factory
        self._scheduler: BackgroundScheduler | None = None
        self._daily_job_id = "materialize_recurring_daily"
        self._startup_job_id = "materialize_recurring_startup"

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        if self._scheduler is not None:
            logger.info("CronService already started; ignoring duplicate start.")
            return

        scheduler = BackgroundScheduler(timezone=timezone.utc)

        if self.config.MATERIALIZE_ON_STARTUP:
            scheduler.add_job(
                self.run_once,
                id=self._startup_job_id,
                next_run_time=datetime.now(timezone.utc),
                replace_existing=True,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=3600,
            )

        daily_trigger = CronTrigger(
            hour=self.config.MATERIALIZE_CRON_HOUR,
            minute=self.config.MATERIALIZE_CRON_MINUTE,
            timezone=timezone.utc,
        )
        scheduler.add_job(
            self.run_once,
            id=self._daily_job_id,
            trigger=daily_trigger,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=3600,
        )

        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "CronService started: recurring materialization scheduled daily at %02d:%02d UTC.",
            self.config.MATERIALIZE_CRON_HOUR,
            self.config.MATERIALIZE_CRON_MINUTE,
        )

    def stop(self) -> None:
        if self._scheduler is None:
            return
        try:
            self._scheduler.shutdown(wait=False)
            logger.info("CronService stopped.")
        finally:
            self._scheduler = None

    def run_once(self) -> None:
        try:
            result = materialize_due(self.session_factory)
            logger.info("materialize_due executed: processed=%s skipped=%s", result.processed, result.skipped)
        except Exception:
            logger.exception("materialize_due failed")
