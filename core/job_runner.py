# core/job_runner.py
import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, Optional
from core.entities import (
    ProviderConfig,
    SourceFile,
    StreamError,
    StreamEvent,
    TextIncrement,
)
from model.job import Job, JobStatus
from util.errors import StreamFailure
from util.timing import timed

logger = logging.getLogger(__name__)

Extractor = Callable[[SourceFile], Awaitable[str]]
LLMStream = Callable[[str, str, ProviderConfig], AsyncIterator[StreamEvent]]
JobListener = Callable[[Job], None]


def _notify(job: Job, on_update: Optional[JobListener]) -> None:
    if on_update is None:
        return
    try:
        on_update(job)
    except Exception:
        # A broken renderer must not change the job's outcome.
        logger.exception("job.listener.error file=%s", job.filename)


def _transition(
    job: Job,
    status: JobStatus,
    message: str,
    on_update: Optional[JobListener],
) -> None:
    job.status = status
    job.statusMessage = message
    _notify(job, on_update)


async def _drive(
    job: Job,
    source: SourceFile,
    prompt: str,
    config: ProviderConfig,
    extract: Extractor,
    llm: LLMStream,
    on_update: Optional[JobListener],
) -> None:
    _transition(job, JobStatus.extracting, "Extracting text...", on_update)
    with timed(logger, "job.extract", file=job.filename):
        text = await extract(source)

    _transition(job, JobStatus.calling, "Processing with LLM...", on_update)
    with timed(logger, "job.llm", file=job.filename, provider=config.provider.value):
        async with aclosing(llm(prompt, text, config)) as events:
            async for event in events:
                if isinstance(event, TextIncrement):
                    job.output += event.text
                    _notify(job, on_update)
                elif isinstance(event, StreamError):
                    raise StreamFailure(event.message)
                else:
                    break

    _transition(job, JobStatus.complete, "Complete", on_update)


async def run_job(
    job: Job,
    source: SourceFile,
    *,
    prompt: str,
    config: ProviderConfig,
    extract: Extractor,
    llm: LLMStream,
    on_update: Optional[JobListener] = None,
    timeout: Optional[float] = None,
) -> Job:
    """
    Drive one job Pending -> Extracting -> Calling -> Complete | Failed.

    Never raises: every failure, including a timeout when `timeout` is
    set, ends in JobStatus.failed with the error text in statusMessage.
    Output received before a failure is kept.
    """
    logger.info(
        "job.start file=%s provider=%s bytes=%d",
        job.filename,
        config.provider.value,
        len(source.data),
    )
    try:
        work = _drive(job, source, prompt, config, extract, llm, on_update)
        if timeout:
            await asyncio.wait_for(work, timeout)
        else:
            await work
    except asyncio.TimeoutError:
        logger.warning("job.timeout file=%s after=%ss", job.filename, timeout)
        _transition(job, JobStatus.failed, f"Error: Timed out after {timeout:g}s", on_update)
    except Exception as e:
        logger.warning(
            "job.failed file=%s stage=%s err=%s",
            job.filename,
            job.status.value,
            type(e).__name__,
        )
        _transition(job, JobStatus.failed, f"Error: {e}", on_update)
    else:
        logger.info("job.complete file=%s chars=%d", job.filename, len(job.output))
    return job
