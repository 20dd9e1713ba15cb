"""Simple span helper for timing completion calls."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from .logger import log_event


@contextmanager
def span(session_id: str | None, name: str, **fields: Any) -> Iterator[dict[str, Any]]:
    start = time.time()
    outcome: dict[str, Any] = {"outcome": "ok"}
    try:
        yield outcome
    except Exception:
        outcome["outcome"] = "error"
        raise
    finally:
        elapsed_ms = int((time.time() - start) * 1000)
        log_event("span", session_id, call=name, ms=elapsed_ms, **fields, **outcome)


__all__ = ["span"]
