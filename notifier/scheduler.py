"""
Process-wide background worker for periodic evaluation passes.

Wraps an APScheduler BackgroundScheduler: start it at process init, stop it at
process shutdown. It does not depend on any client connection.

A pass interrupted by shutdown is safe to abandon; the next pass re-evaluates
every item whose transition has not been reserved yet.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from notifier.evaluation import EvaluationReport, ExpiryEvaluator

logger = logging.getLogger("notifier.scheduler")

JOB_ID = "expiry-evaluation"


class EvaluationScheduler:
    """
    Runs ExpiryEvaluator.run_pass on a fixed interval.

    Example:
        scheduler = EvaluationScheduler(evaluator, interval_hours=6)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        evaluator: ExpiryEvaluator,
        interval_hours: float = 6,
        run_on_start: bool = True,
    ):
        self.evaluator = evaluator
        self.interval_hours = interval_hours
        self.run_on_start = run_on_start
        self.last_report: Optional[EvaluationReport] = None
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            logger.warning("EvaluationScheduler already started")
            return

        job_options = {}
        if self.run_on_start:
            job_options["next_run_time"] = datetime.now(timezone.utc)

        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            func=self.run_once,
            trigger="interval",
            hours=self.interval_hours,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            **job_options,
        )
        self._scheduler.start()
        logger.info(f"EvaluationScheduler started: every {self.interval_hours}h")

    def stop(self, wait: bool = False) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("EvaluationScheduler stopped")

    def run_once(self) -> Optional[EvaluationReport]:
        """Run one pass; exceptions are logged so the job keeps its schedule."""
        try:
            self.last_report = self.evaluator.run_pass()
        except Exception:
            logger.exception("Evaluation pass failed")
            return None
        return self.last_report

    def next_run_time(self) -> Optional[datetime]:
        if not self.running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
