"""
Job dispatch: getting queued jobs executed.

Two modes, chosen by `generation.dispatch_mode`:

- inline: the API process runs the job in a supervised background task.
  The task set is kept on the dispatcher, every task is logged when it
  finishes, and the application drains the set on shutdown.
- worker: the API process only notifies the worker endpoint; the worker
  pulls the job from the queue (the pull path is also what the CLI worker
  loop and the scheduler's worker poll use).

Either way the executor's atomic claim makes duplicate dispatch harmless.
"""

import asyncio
from dataclasses import dataclass
from functools import lru_cache

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autoblog.config import get_config, get_settings
from autoblog.core.database import AsyncSessionLocal
from autoblog.core.logging import get_logger
from autoblog.core.retry import RetryConfig, retry_with_backoff
from autoblog.generation import store
from autoblog.generation.executor import PublishHook, process_job
from autoblog.generation.recovery import recover_stuck_jobs
from autoblog.models import JobStatus
from autoblog.pipeline import ContentPipeline

logger = get_logger(__name__)

DISPATCH_INLINE = "inline"
DISPATCH_WORKER = "worker"


@dataclass
class WorkerResult:
    processed: bool
    job_id: str | None = None
    reason: str | None = None


async def pull_and_process(
    job_id: str | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    pipeline: ContentPipeline | None = None,
    publish_hook: PublishHook | None = None,
) -> WorkerResult:
    """
    Recover stuck jobs, then run the requested job (if still queued) or the
    oldest queued one.
    """
    session_factory = session_factory or AsyncSessionLocal

    async with session_factory() as db:
        await recover_stuck_jobs(db)
        await db.commit()

        job = None
        if job_id:
            job = await store.get_job(db, job_id)
            if job is not None and job.status != JobStatus.QUEUED:
                job = None
        if job is None:
            job = await store.next_queued_job(db)

    if job is None:
        return WorkerResult(processed=False, reason="no_queued_jobs")

    outcome = await process_job(
        job.id,
        session_factory=session_factory,
        pipeline=pipeline,
        publish_hook=publish_hook,
    )
    if outcome is None:
        return WorkerResult(processed=False, job_id=job.id, reason="already_claimed")
    return WorkerResult(processed=True, job_id=job.id)


async def drain_queue(
    max_jobs: int | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    pipeline: ContentPipeline | None = None,
) -> int:
    """Process queued jobs one after another until the queue is empty."""
    processed = 0
    while max_jobs is None or processed < max_jobs:
        result = await pull_and_process(session_factory=session_factory, pipeline=pipeline)
        if result.reason == "no_queued_jobs":
            break
        if result.processed:
            processed += 1
    return processed


async def run_worker_loop(
    stop_event: asyncio.Event | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    pipeline: ContentPipeline | None = None,
) -> None:
    """Long-running pull loop: drain the queue, sleep, repeat."""
    stop_event = stop_event or asyncio.Event()
    poll_interval = get_config().worker.poll_interval_seconds
    logger.bind(poll_interval_seconds=poll_interval).info("worker_loop_started")

    while not stop_event.is_set():
        processed = await drain_queue(session_factory=session_factory, pipeline=pipeline)
        if processed:
            logger.bind(processed=processed).info("worker_batch_completed")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=poll_interval)
        except TimeoutError:
            pass

    logger.info("worker_loop_stopped")


class JobDispatcher:
    """Hands job ids to whatever executes them and supervises the handoff tasks."""

    def __init__(
        self,
        mode: str | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        pipeline: ContentPipeline | None = None,
        publish_hook: PublishHook | None = None,
        job_timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = get_config()
        self.mode = mode or config.generation.dispatch_mode
        self.job_timeout_seconds = job_timeout_seconds or config.generation.job_timeout_seconds
        self._session_factory = session_factory
        self._pipeline = pipeline
        self._publish_hook = publish_hook
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, job_id: str) -> asyncio.Task:
        """Start executing (or notify the worker about) a committed queued job."""
        if self.mode == DISPATCH_WORKER:
            coro = self._notify_worker(job_id)
        else:
            coro = self._run_inline(job_id)

        task = asyncio.create_task(coro, name=f"generation-job-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        logger.bind(job_id=job_id, mode=self.mode).debug("job_dispatched")
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.bind(task=task.get_name()).warning("dispatch_task_cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.bind(task=task.get_name(), error=str(exc)).opt(exception=exc).error(
                "dispatch_task_failed"
            )

    async def _run_inline(self, job_id: str) -> None:
        try:
            async with asyncio.timeout(self.job_timeout_seconds):
                await process_job(
                    job_id,
                    session_factory=self._session_factory,
                    pipeline=self._pipeline,
                    publish_hook=self._publish_hook,
                )
        except TimeoutError:
            # The executor already recorded the job as failed on cancellation
            logger.bind(job_id=job_id, timeout_seconds=self.job_timeout_seconds).warning(
                "job_time_limit_exceeded"
            )

    async def _notify_worker(self, job_id: str) -> None:
        settings = get_settings()
        config = get_config()

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=config.worker.request_timeout_seconds,
        ) as client:

            async def _post() -> httpx.Response:
                return await client.post(
                    settings.worker_url,
                    json={"jobId": job_id},
                    headers={"Authorization": f"Bearer {settings.cron_secret}"},
                )

            try:
                response = await retry_with_backoff(
                    _post,
                    # A read timeout means the worker is busy with the job, not unreachable
                    RetryConfig(max_attempts=3, retryable_exceptions=(httpx.ConnectError,)),
                    operation_name="worker_notify",
                )
            except httpx.HTTPError as e:
                # Job stays queued; the next worker poll or cron run picks it up
                logger.bind(job_id=job_id, error=str(e)).warning("worker_notify_failed")
                return

        if response.is_error:
            logger.bind(job_id=job_id, status_code=response.status_code).warning(
                "worker_notify_rejected"
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight tasks (application shutdown); cancel what is left after `timeout`."""
        if not self._tasks:
            return

        tasks = list(self._tasks)
        logger.bind(pending=len(tasks)).info("dispatcher_draining")
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.bind(cancelled=len(still_running)).warning("dispatcher_drain_cancelled")


@lru_cache
def get_dispatcher() -> JobDispatcher:
    """Process-wide dispatcher (overridden in tests)."""
    return JobDispatcher()
