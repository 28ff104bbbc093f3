"""Context propagation for build correlation across async boundaries."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


# Per-task context; asyncio copies it into tasks created while it is set
index_context: ContextVar[dict | None] = ContextVar("index_context", default=None)


def generate_build_id() -> str:
    """Generate a 16-char hex build ID."""
    return uuid4().hex[:16]


def get_index_context() -> dict:
    """Current index context (empty when no build is running)."""
    return index_context.get() or {}


@contextmanager
def bind_index_context(index: str, **extra: object) -> Iterator[dict]:
    """Bind ``index`` (and a fresh ``build_id``) for log records emitted inside the block."""

    ctx = {"index": index, "build_id": generate_build_id(), **extra}
    token = index_context.set(ctx)
    try:
        yield ctx
    finally:
        index_context.reset(token)
