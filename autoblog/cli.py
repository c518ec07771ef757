"""
Autoblog CLI - Command line interface for the generation queue.

Usage:
    autoblog --help             Show all commands
    autoblog cron               Run one scheduled-generation sweep
    autoblog worker             Run the queue worker until interrupted
    autoblog worker --once      Drain the queue once and exit
    autoblog process JOB_ID     Execute one queued job in the foreground
    autoblog recover            Fail jobs stuck in processing
"""

import asyncio

import typer

app = typer.Typer(
    name="autoblog",
    help="Autoblog CLI - Generation queue runner",
    no_args_is_help=True,
)


def _print_success(message: str) -> None:
    """Print a success message."""
    typer.echo(f"  ✅ {message}")


def _print_skipped(message: str) -> None:
    """Print a skipped step message."""
    typer.echo(f"  ⏭️ {message}")


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


@app.command()
def cron():
    """Recover stuck jobs, publish due posts and queue one post per eligible site."""
    from autoblog.core.database import AsyncSessionLocal
    from autoblog.core.logging import setup_logging
    from autoblog.generation.dispatcher import JobDispatcher
    from autoblog.generation.scheduled import run_scheduled_generation

    setup_logging()

    async def _run() -> None:
        # Queued jobs are left for the worker; this process exits right away
        dispatcher = JobDispatcher(mode="worker")
        async with AsyncSessionLocal() as db:
            summary = await run_scheduled_generation(db, dispatcher=dispatcher)
            await db.commit()
        await dispatcher.drain()

        typer.echo(f"\nRecovered {summary.recoveredJobs} stuck job(s)")
        typer.echo(f"Published {summary.scheduledPublished} scheduled post(s)")
        for result in summary.results:
            if result.jobId:
                _print_success(f"{result.name}: queued {result.jobId}")
            else:
                _print_skipped(f"{result.name}: {result.action}")

    asyncio.run(_run())


@app.command()
def worker(
    once: bool = typer.Option(False, "--once", help="Drain the queue once and exit"),
):
    """Pull and execute queued generation jobs."""
    from autoblog.core.logging import setup_logging
    from autoblog.generation.dispatcher import drain_queue, run_worker_loop

    setup_logging()

    if once:
        processed = asyncio.run(drain_queue())
        _print_success(f"Processed {processed} job(s)")
        return

    try:
        asyncio.run(run_worker_loop())
    except KeyboardInterrupt:
        typer.echo("\nWorker stopped")


@app.command()
def process(job_id: str = typer.Argument(..., help="Generation job ID")):
    """Execute one queued job in the foreground."""
    from autoblog.core.logging import setup_logging
    from autoblog.generation.executor import process_job

    setup_logging()
    outcome = asyncio.run(process_job(job_id))

    if outcome is None:
        _print_error(f"Job {job_id} is not queued (already running, finished or missing)")
        raise typer.Exit(1)
    if outcome.error:
        _print_error(f"Job {job_id} failed: {outcome.error}")
        raise typer.Exit(1)
    _print_success(f"Job {job_id} {outcome.status.value} (post {outcome.blog_post_id})")


@app.command()
def recover(
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", help="Minutes in processing before a job counts as stuck"
    ),
):
    """Fail generation jobs stuck in processing."""
    from autoblog.core.database import AsyncSessionLocal
    from autoblog.core.logging import setup_logging
    from autoblog.generation.recovery import recover_stuck_jobs

    setup_logging()

    async def _run() -> int:
        async with AsyncSessionLocal() as db:
            count = await recover_stuck_jobs(db, timeout_minutes=timeout)
            await db.commit()
            return count

    count = asyncio.run(_run())
    _print_success(f"Recovered {count} stuck job(s)")


if __name__ == "__main__":
    app()
