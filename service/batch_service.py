# service/batch_service.py
import asyncio
import json
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence
from config.settings import settings
from core.batch import Batch, BatchCoordinator, prepare_sources, validate_batch_input
from core.entities import ProviderConfig, SourceFile
from core.job_runner import Extractor, LLMStream
from core.pdf_text import extract_source
from core.providers import ProviderGateway
from model.api import BatchEvent
from model.job import Job, JobStatus
from service.credential_service import CredentialService
from util.enums import ErrorMessage, ProviderId
from util.errors import AppError, BatchRejected
from util.types import DonePayload, EventType

LINE_SEP = "\n"
logger = logging.getLogger(__name__)


def ndjson_line(obj: Dict[str, object]) -> bytes:
    return (json.dumps(obj, separators=(",", ":"), ensure_ascii=False) + LINE_SEP).encode(
        "utf-8"
    )


def _event(type_: EventType, payload: dict) -> bytes:
    return ndjson_line(BatchEvent(type=type_, payload=payload).model_dump())


class BatchService:
    """
    Server-side batches streamed to the caller as NDJSON:
      - one "batch" event with every job at Pending
      - one "job" event per transition or increment (index + job)
      - one "done" event with the complete/failed counts
    """

    def __init__(
        self,
        credentials: CredentialService,
        extract: Extractor = extract_source,
        llm: Optional[LLMStream] = None,
    ) -> None:
        self._credentials = credentials
        self._extract = extract
        self._llm = llm

    @staticmethod
    def _config(provider: str, model_name: Optional[str]) -> ProviderConfig:
        pid = ProviderId.parse(provider)
        if pid is None:
            raise AppError(
                ErrorMessage.INVALID_PROVIDER.value.message,
                ErrorMessage.INVALID_PROVIDER.value.http_status,
            )
        return ProviderConfig(provider=pid, model_name=model_name)

    def open_batch(
        self,
        files: Sequence[SourceFile],
        prompt: str,
        provider: str,
        model_name: Optional[str],
        token: Optional[str],
    ) -> AsyncIterator[bytes]:
        """
        Check the batch preconditions up front (AppError 400, nothing built,
        nothing called) and return the NDJSON event stream.
        """
        config = self._config(provider, model_name)
        sources = prepare_sources(files)
        try:
            validate_batch_input(sources, prompt)
        except BatchRejected as e:
            raise AppError(str(e))
        if len(sources) > settings.MAX_BATCH_FILES:
            raise AppError(f"Too many files (max {settings.MAX_BATCH_FILES})")

        llm = self._llm or ProviderGateway(self._credentials.resolver(token))
        coordinator = BatchCoordinator(
            extract=self._extract,
            llm=llm,
            job_timeout=settings.JOB_TIMEOUT_SECONDS,
        )
        return self._stream(coordinator, sources, prompt, config)

    async def _stream(
        self,
        coordinator: BatchCoordinator,
        sources: List[SourceFile],
        prompt: str,
        config: ProviderConfig,
    ) -> AsyncIterator[bytes]:
        queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()

        def _on_start(batch: Batch) -> None:
            queue.put_nowait(_event("batch", {"jobs": batch.snapshot()}))

        def _on_update(batch: Batch, job: Job) -> None:
            queue.put_nowait(_event("job", batch.job_payload(job)))

        async def _run() -> Batch:
            try:
                return await coordinator.start(
                    sources, prompt, config, on_update=_on_update, on_start=_on_start
                )
            finally:
                queue.put_nowait(None)

        task = asyncio.create_task(_run())
        try:
            while True:
                line = await queue.get()
                if line is None:
                    break
                yield line
            batch = await task
        except BaseException:
            # Client went away; the jobs have nowhere to report to.
            task.cancel()
            raise

        logger.info("batch.stream.done files=%d", len(batch))
        done: DonePayload = {
            "complete": batch.count(JobStatus.complete),
            "failed": batch.count(JobStatus.failed),
        }
        yield _event("done", dict(done))
