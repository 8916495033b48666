from __future__ import annotations

from contextlib import contextmanager
import contextvars
from dataclasses import dataclass
import logging
import time
from typing import Generator, Optional

DEFAULT_LOGGER_NAME = "uvicorn.error"
logger = logging.getLogger(DEFAULT_LOGGER_NAME)

_CURRENT_TIMING: contextvars.ContextVar["RequestTiming | None"] = contextvars.ContextVar(
    "request_timing", default=None
)


@dataclass
class RequestTiming:
    route: str
    method: str
    start: float
    sql_seconds: float = 0.0
    sql_queries: int = 0

    def add_sql(self, seconds: float) -> None:
        self.sql_seconds += seconds
        self.sql_queries += 1


def has_active_timing() -> bool:
    return _CURRENT_TIMING.get() is not None


def record_sql_time(seconds: float) -> None:
    timing = _CURRENT_TIMING.get()
    if timing is None:
        return
    timing.add_sql(seconds)


@contextmanager
def request_timing(
    route: str, method: str, log: Optional[logging.Logger] = None
) -> Generator[RequestTiming, None, None]:
    start = time.perf_counter()
    timing = RequestTiming(route=route, method=method, start=start)
    token = _CURRENT_TIMING.set(timing)
    try:
        yield timing
    finally:
        total = time.perf_counter() - start
        non_sql = max(0.0, total - timing.sql_seconds)
        (log or logger).info(
            "request.timing route=%s method=%s total_ms=%.2f sql_ms=%.2f sql_queries=%d non_sql_ms=%.2f",
            route,
            method,
            total * 1000,
            timing.sql_seconds * 1000,
            timing.sql_queries,
            non_sql * 1000,
        )
        _CURRENT_TIMING.reset(token)
