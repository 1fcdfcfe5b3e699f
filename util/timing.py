# util/timing.py
import time
from contextlib import contextmanager
from typing import Any, Iterator
import logging


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[None]:
    """
    Usage:
      with timed(logger, "job.extract", file="a.pdf"):
          ...
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    On error the line reads "<name>.failed" so slow failures stay visible.
    A generator body closed by its consumer (GeneratorExit) counts as done.
    """
    t0 = time.perf_counter()
    outcome = "done"
    try:
        yield
    except GeneratorExit:
        raise
    except BaseException:
        outcome = "failed"
        raise
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        logger.info("%s.%s ms=%d%s", name, outcome, dt_ms, suffix)
