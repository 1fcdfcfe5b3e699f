# util/errors.py
from fastapi import HTTPException, status


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)


class ExtractionError(Exception):
    """The source document could not be turned into text."""


class StreamFailure(Exception):
    """The LLM stream ended with an error record or a rejected handshake."""


class BatchRejected(ValueError):
    """A batch was refused before any job was built."""
