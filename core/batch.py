# core/batch.py
import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence
from core.entities import ProviderConfig, SourceFile
from core.job_runner import Extractor, LLMStream, run_job
from model.job import Job, JobStatus
from util import functions
from util.errors import BatchRejected
from util.types import JobPayload
from util.timing import timed

logger = logging.getLogger(__name__)

BatchListener = Callable[["Batch", Job], None]

NO_FILES = "Please upload at least one PDF file"
NO_PROMPT = "Please enter a prompt"


def prepare_sources(files: Iterable[SourceFile]) -> List[SourceFile]:
    """
    Shape an uploaded file set into batch input: PDFs only, one file per
    filename (first occurrence wins), sorted by filename.
    """
    seen: Dict[str, SourceFile] = {}
    for f in files:
        if not functions.is_pdf(f.filename, f.content_type):
            logger.info("batch.skip.non_pdf file=%s", f.filename)
            continue
        if f.filename in seen:
            logger.info("batch.skip.duplicate file=%s", f.filename)
            continue
        seen[f.filename] = f
    return sorted(seen.values(), key=lambda f: f.filename.casefold())


def validate_batch_input(files: Sequence[SourceFile], prompt: str | None) -> str:
    """Return the trimmed prompt, or raise BatchRejected."""
    if not files:
        raise BatchRejected(NO_FILES)
    cleaned = (prompt or "").strip()
    if not cleaned:
        raise BatchRejected(NO_PROMPT)
    return cleaned


class Batch:
    """
    The jobs of one run. Job i belongs to input file i for the batch's
    lifetime; jobs are never added, removed or reordered.
    """

    def __init__(
        self, files: Sequence[SourceFile], prompt: str, config: ProviderConfig
    ) -> None:
        self.prompt = prompt
        self.config = config
        self.jobs: tuple[Job, ...] = tuple(Job(filename=f.filename) for f in files)
        self._positions = {id(job): i for i, job in enumerate(self.jobs)}

    def __len__(self) -> int:
        return len(self.jobs)

    def index_of(self, job: Job) -> int:
        return self._positions[id(job)]

    def count(self, status: JobStatus) -> int:
        return sum(1 for j in self.jobs if j.status == status)

    @property
    def finished(self) -> bool:
        return all(j.is_terminal for j in self.jobs)

    def job_payload(self, job: Job) -> JobPayload:
        return {"index": self.index_of(job), **job.model_dump(mode="json")}

    def snapshot(self) -> List[JobPayload]:
        # Copies; callers may hold them while jobs keep mutating.
        return [self.job_payload(j) for j in self.jobs]


class BatchCoordinator:
    """
    Runs every job of a batch at once and waits for all of them.

    One failed job never affects another: runners convert their own
    failures into JobStatus.failed, and the gather collects outcomes
    without cancelling siblings. Starting a batch while one is running is
    not supported; the caller must gate its trigger.
    """

    def __init__(
        self,
        *,
        extract: Extractor,
        llm: LLMStream,
        job_timeout: Optional[float] = None,
    ) -> None:
        self._extract = extract
        self._llm = llm
        self._job_timeout = job_timeout
        self._batch: Optional[Batch] = None

    @property
    def batch(self) -> Optional[Batch]:
        return self._batch

    def clear(self) -> None:
        self._batch = None

    async def start(
        self,
        files: Sequence[SourceFile],
        prompt: str | None,
        config: ProviderConfig,
        on_update: Optional[BatchListener] = None,
        on_start: Optional[Callable[[Batch], None]] = None,
    ) -> Batch:
        """
        Build one Pending job per file and run them all; resolves once every
        job is Complete or Failed. Raises BatchRejected (and builds nothing)
        for an empty file list or a blank prompt.
        """
        prompt = validate_batch_input(files, prompt)
        batch = Batch(files, prompt, config)
        self._batch = batch
        if on_start is not None:
            on_start(batch)
        logger.info(
            "batch.start files=%d provider=%s model=%s",
            len(batch),
            config.provider.value,
            config.model_override or "default",
        )

        def _job_update(job: Job) -> None:
            if on_update is not None:
                on_update(batch, job)

        with timed(logger, "batch.run", files=len(batch)):
            outcomes = await asyncio.gather(
                *(
                    run_job(
                        job,
                        source,
                        prompt=prompt,
                        config=config,
                        extract=self._extract,
                        llm=self._llm,
                        on_update=_job_update,
                        timeout=self._job_timeout,
                    )
                    for job, source in zip(batch.jobs, files)
                ),
                return_exceptions=True,
            )

        for job, outcome in zip(batch.jobs, outcomes):
            if isinstance(outcome, BaseException):
                # run_job is not supposed to raise; keep the batch consistent anyway
                logger.error(
                    "batch.job.escaped file=%s err=%s",
                    job.filename,
                    type(outcome).__name__,
                )
                job.status = JobStatus.failed
                job.statusMessage = f"Error: {outcome}"

        logger.info(
            "batch.done complete=%d failed=%d",
            batch.count(JobStatus.complete),
            batch.count(JobStatus.failed),
        )
        return batch
