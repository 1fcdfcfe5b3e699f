from typing import Literal, TypedDict


# Flow: Narrow types for NDJSON batch events.
EventType = Literal["batch", "job", "done"]


class JobPayload(TypedDict):
    index: int
    filename: str
    status: str
    statusMessage: str
    output: str


class DonePayload(TypedDict):
    complete: int
    failed: int
