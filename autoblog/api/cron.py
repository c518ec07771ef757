"""Shared-secret endpoints driven by the scheduler and the worker."""

from fastapi import APIRouter

from autoblog.dependencies import CronAuth, DBSession, Dispatcher, Pipeline, SessionFactory
from autoblog.generation.dispatcher import pull_and_process
from autoblog.generation.scheduled import run_scheduled_generation
from autoblog.schemas.job import CronResponse, WorkerRequest, WorkerResponse

router = APIRouter()


@router.post("/cron/generate", response_model=CronResponse, dependencies=[CronAuth])
async def cron_generate(db: DBSession, dispatcher: Dispatcher) -> CronResponse:
    """Hourly sweep: recover, publish due posts, queue one post per eligible site."""
    return await run_scheduled_generation(db, dispatcher=dispatcher)


@router.post("/worker/process", response_model=WorkerResponse, dependencies=[CronAuth])
async def worker_process(
    session_factory: SessionFactory,
    pipeline: Pipeline,
    body: WorkerRequest | None = None,
) -> WorkerResponse:
    """Run one queued job (the requested one if still queued) to completion."""
    result = await pull_and_process(
        body.job_id if body else None,
        session_factory=session_factory,
        pipeline=pipeline,
    )
    return WorkerResponse(processed=result.processed, jobId=result.job_id, reason=result.reason)
