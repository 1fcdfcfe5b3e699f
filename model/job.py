# model/job.py
from enum import Enum
from pydantic import BaseModel


class JobStatus(str, Enum):
    pending = "pending"
    extracting = "extracting"
    calling = "calling"
    complete = "complete"
    failed = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.complete, JobStatus.failed)


class Job(BaseModel):
    """
    One file's trip through extraction and the LLM call.
    Only the job's own runner writes status, statusMessage and output.
    """

    filename: str
    status: JobStatus = JobStatus.pending
    statusMessage: str = "Pending..."
    output: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status.terminal
