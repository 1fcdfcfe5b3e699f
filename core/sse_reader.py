# core/sse_reader.py
import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, Callable, Final, Optional
from core.entities import Done, StreamError, StreamEvent, TextIncrement

DATA_PREFIX: Final[str] = "data:"
LINE_SEP: Final[str] = "\n"

logger = logging.getLogger(__name__)

Interpreter = Callable[[str], Optional[StreamEvent]]


def _record_payload(line: str, prefix: str) -> Optional[str]:
    if not line.strip() or not line.startswith(prefix):
        return None
    return line[len(prefix):].strip()


async def iter_records(
    chunks: AsyncIterable[bytes], prefix: str = DATA_PREFIX
) -> AsyncIterator[str]:
    """
    Reassemble line-framed records from arbitrarily split byte chunks.

    - The incremental decoder keeps a partial UTF-8 sequence until the
      next chunk completes it.
    - Only whole lines are emitted; the trailing fragment stays in the
      buffer and is dropped if the stream ends without a line break.
    - Lines without `prefix` (comments, `event:` lines, heartbeats) are skipped.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for chunk in chunks:
        if not chunk:
            continue
        buffer += decoder.decode(chunk)
        lines = buffer.split(LINE_SEP)
        buffer = lines.pop()
        for line in lines:
            payload = _record_payload(line, prefix)
            if payload is not None:
                yield payload

    buffer += decoder.decode(b"", final=True)
    if buffer.strip():
        logger.debug("sse.trailing.dropped chars=%d", len(buffer))


def parse_record(payload: str) -> Optional[dict]:
    """Decode one record payload; anything that is not a JSON object is None."""
    try:
        data = json.loads(payload)
    except ValueError:
        logger.debug("sse.record.malformed chars=%d", len(payload))
        return None
    return data if isinstance(data, dict) else None


def record_error(data: dict) -> Optional[str]:
    """Message of an explicit `error` field, in either string or object form."""
    err = data.get("error")
    if not err:
        return None
    if isinstance(err, dict):
        return str(err.get("message") or err.get("type") or json.dumps(err))
    return str(err)


async def iter_events(
    chunks: AsyncIterable[bytes], interpret: Interpreter, prefix: str = DATA_PREFIX
) -> AsyncIterator[StreamEvent]:
    """
    Turn a byte stream into StreamEvents using a record `interpret`er.

    The sequence always ends with exactly one Done or StreamError:
    consumption stops at the first terminal event, and exhaustion
    without one counts as Done.
    """
    async for payload in iter_records(chunks, prefix):
        event = interpret(payload)
        if event is None:
            continue
        if isinstance(event, TextIncrement):
            if event.text:
                yield event
            continue
        yield event
        return
    yield Done()


def interpret_backend_record(payload: str) -> Optional[StreamEvent]:
    # The streaming endpoint's own framing: {chunk} | {done} | {error}
    data = parse_record(payload)
    if data is None:
        return None
    message = record_error(data)
    if message is not None:
        return StreamError(message)
    if data.get("done"):
        return Done()
    chunk = data.get("chunk")
    if isinstance(chunk, str) and chunk:
        return TextIncrement(chunk)
    return None


def sse_record(data: dict) -> bytes:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n".encode("utf-8")


def event_to_sse(event: StreamEvent) -> bytes:
    if isinstance(event, TextIncrement):
        return sse_record({"chunk": event.text})
    if isinstance(event, StreamError):
        return sse_record({"error": event.message})
    return sse_record({"done": True})
