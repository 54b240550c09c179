"""
rolesync.services.jobs

Background sync-all jobs.

Responsibilities:
- Run a sync-all as an asyncio task and keep its live counters queryable.
- Notify the invoking context (channel message, HTTP poller) when it finishes.
"""

from __future__ import annotations

import asyncio
import enum
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from rolesync.observability.logging import get_logger
from rolesync.reconciliation.outcomes import SyncAllReport
from rolesync.services.sync_service import ProgressCallback

log = get_logger(__name__)


class JobStatus(enum.StrEnum):
    running = "RUNNING"
    completed = "COMPLETED"
    failed = "FAILED"


@dataclass(slots=True)
class SyncAllJob:
    id: uuid.UUID
    requested_by: str
    status: JobStatus = JobStatus.running
    report: SyncAllReport = field(default_factory=SyncAllReport)
    error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    finished_at: datetime | None = None

    @property
    def done(self) -> bool:
        return self.status is not JobStatus.running


SyncAllRunner = Callable[[ProgressCallback], Awaitable[SyncAllReport]]
JobDoneCallback = Callable[[SyncAllJob], Awaitable[None]]


class SyncAllJobs:
    def __init__(self, *, keep_finished: int = 20) -> None:
        self._jobs: dict[uuid.UUID, SyncAllJob] = {}
        self._keep_finished = keep_finished
        self._tasks: set[asyncio.Task[None]] = set()

    def start(
        self,
        run: SyncAllRunner,
        *,
        requested_by: str,
        on_done: JobDoneCallback | None = None,
    ) -> SyncAllJob:
        job = SyncAllJob(id=uuid.uuid4(), requested_by=requested_by)
        self._jobs[job.id] = job
        task = asyncio.create_task(self._drive(job, run, on_done), name=f"sync-all-{job.id}")
        # Hold a reference until the task ends; the loop only keeps weak ones.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log.info("sync_all_job_started", job_id=str(job.id), requested_by=requested_by)
        return job

    def get(self, job_id: uuid.UUID) -> SyncAllJob | None:
        return self._jobs.get(job_id)

    async def wait(self) -> None:
        """Wait for all running jobs (tests and graceful shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.wait()

    def _evict_finished(self) -> None:
        # Oldest first: dict order is start order.
        finished = [job_id for job_id, job in self._jobs.items() if job.done]
        for job_id in finished[: max(0, len(finished) - self._keep_finished)]:
            del self._jobs[job_id]

    async def _drive(
        self, job: SyncAllJob, run: SyncAllRunner, on_done: JobDoneCallback | None
    ) -> None:
        async def progress(report: SyncAllReport) -> None:
            job.report = report

        try:
            job.report = await run(progress)
            job.status = JobStatus.completed
        except Exception as e:
            log.exception("sync_all_job_failed", job_id=str(job.id))
            job.status = JobStatus.failed
            job.error = str(e)
        finally:
            job.finished_at = datetime.now(tz=UTC)
            self._evict_finished()

        if on_done is not None:
            try:
                await on_done(job)
            except Exception:
                log.exception("sync_all_job_notify_failed", job_id=str(job.id))
