# SPDX-License-Identifier: Apache-2.0

"""
Scheduled maintenance jobs with a per-job single-run guard.

A run that finds the previous run of the same job still in flight is
skipped. Every exception raised by a job is caught and logged per run; the
schedule continues on the next interval.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from models.base import utc_now

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


JOB_COMPLETED = "completed"
JOB_SKIPPED = "skipped"
JOB_FAILED = "failed"


@dataclass
class JobResult:
    """Outcome of one job run."""
    name: str
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "result": self.result,
            "error": self.error
        }


@dataclass
class ScheduledJob:
    name: str
    func: Callable[[], Any]
    interval_seconds: float
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_result: Optional[JobResult] = None


class JobRunner:
    """Registers jobs and runs each on its own interval thread."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self._jobs: Dict[str, ScheduledJob] = {}
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    def register(self, name: str, func: Callable[[], Any], interval_seconds: float) -> None:
        if name in self._jobs:
            raise ValueError(f"Job {name} already registered")
        self._jobs[name] = ScheduledJob(name=name, func=func, interval_seconds=interval_seconds)

    @property
    def job_names(self) -> List[str]:
        return sorted(self._jobs)

    def last_result(self, name: str) -> Optional[JobResult]:
        return self._jobs[name].last_result

    def run(self, name: str) -> JobResult:
        """
        Run a job once unless a previous run is still in flight.

        Args:
            name: Registered job name

        Returns:
            JobResult with status completed, skipped or failed
        """
        job = self._jobs[name]
        started_at = self.clock()

        if not job.lock.acquire(blocking=False):
            logger.warning(
                "Job run skipped, previous run still in flight",
                extra={"extra_fields": {"job": name}}
            )
            return JobResult(name=name, status=JOB_SKIPPED, started_at=started_at, finished_at=started_at)

        try:
            with tracer.start_as_current_span(f"job.{name}") as span:
                try:
                    outcome = job.func()
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    logger.error(
                        "Job run failed",
                        extra={"extra_fields": {"job": name, "error": str(e)}},
                        exc_info=True
                    )
                    result = JobResult(
                        name=name,
                        status=JOB_FAILED,
                        started_at=started_at,
                        finished_at=self.clock(),
                        error=str(e)
                    )
                else:
                    span.set_status(Status(StatusCode.OK))
                    logger.info(
                        "Job run completed",
                        extra={"extra_fields": {"job": name, "result": outcome}}
                    )
                    result = JobResult(
                        name=name,
                        status=JOB_COMPLETED,
                        started_at=started_at,
                        finished_at=self.clock(),
                        result=outcome
                    )
            job.last_result = result
            return result
        finally:
            job.lock.release()

    def _loop(self, name: str) -> None:
        job = self._jobs[name]
        while not self._stop_event.wait(job.interval_seconds):
            self.run(name)

    def start(self) -> None:
        """Start one daemon thread per registered job."""
        self._stop_event.clear()
        for name in self._jobs:
            thread = threading.Thread(target=self._loop, args=(name,), name=f"job-{name}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logger.info("Job runner started", extra={"extra_fields": {"jobs": self.job_names}})

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("Job runner stopped")


def build_maintenance_jobs(services: Any, retention_days: int = 90) -> JobRunner:
    """
    Register the maintenance jobs against a service container.

    Jobs: score snapshot refresh (hourly), expired issue purge (daily),
    authority metric refresh (hourly), resolution award reconciliation (daily).
    """
    runner = JobRunner(clock=services.clock)

    def purge_expired_issues() -> int:
        cutoff = services.clock() - timedelta(days=retention_days)
        return services.issues.delete_many(services.issues.find_expired_terminal(cutoff))

    runner.register("refresh_score_snapshots", services.leaderboard.refresh_score_snapshots, 3600)
    runner.register("purge_expired_issues", purge_expired_issues, 86400)
    runner.register("refresh_authority_metrics", services.authorities.refresh_all_metrics, 3600)
    runner.register("reconcile_resolution_awards", services.state_machine.reconcile_resolution_awards, 86400)
    return runner
