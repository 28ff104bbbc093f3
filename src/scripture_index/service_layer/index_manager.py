"""Lifecycle owner for one runtime index.

``IndexManager`` replaces module-level singleton state: it is constructed once
per index, handed to the services that read it, and owns the
``none -> building -> ready`` state machine.

* ``ensure_ready()`` starts work only from ``none``. All concurrent callers
  share the single in-flight task, so two builds never run for one index.
* The in-flight task first tries the snapshot loader (on a worker thread) and
  falls back to an incremental rebuild against the document source.
* ``cancel()`` flips the build's cancellation token; the walk notices at the
  next chapter boundary, partial state is dropped and the manager returns to
  ``none`` so a later call can retry cleanly.
* Readers only ever see ``index`` once it is complete; a ready index is never
  replaced or mutated.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
import time
from typing import Any, Generic, TypeVar

from scripture_index.domain.errors import BuildCancelledError
from scripture_index.domain.model import IndexStatus
from scripture_index.observability.context import bind_index_context
from scripture_index.search.indexer import CancellationToken


logger = logging.getLogger(__name__)

IndexT = TypeVar("IndexT")

SnapshotLoader = Callable[[], "IndexT | None"]
IndexBuilder = Callable[[CancellationToken], Awaitable["IndexT"]]


class IndexManager(Generic[IndexT]):
    """Own the load-or-build lifecycle of a single index."""

    def __init__(
        self,
        name: str,
        *,
        load_snapshot: SnapshotLoader | None = None,
        build_index: IndexBuilder | None = None,
    ) -> None:
        self.name = name
        self._load_snapshot = load_snapshot
        self._build_index = build_index

        self._status = IndexStatus.NONE
        self._index: IndexT | None = None
        self._task: asyncio.Task[IndexT | None] | None = None
        self._token: CancellationToken | None = None

        self._origin: str | None = None
        self._builds_started = 0
        self._builds_cancelled = 0
        self._builds_failed = 0
        self._last_duration_s: float | None = None

    @property
    def status(self) -> IndexStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is IndexStatus.READY

    @property
    def index(self) -> IndexT | None:
        """The ready index, or ``None`` while not ready."""
        return self._index if self._status is IndexStatus.READY else None

    async def ensure_ready(self) -> IndexT | None:
        """Load or build the index if needed and return it.

        Returns ``None`` when the in-flight build was cancelled or failed; the
        manager is then back in ``none``.
        """

        if self._status is IndexStatus.READY:
            return self._index
        if self._task is None:
            self._start()
        assert self._task is not None
        return await asyncio.shield(self._task)

    async def wait_for_index(self) -> IndexT | None:
        """Return the ready index, await an in-flight build, or ``None`` if idle.

        Never starts work.
        """

        if self._status is IndexStatus.READY:
            return self._index
        task = self._task
        if task is None:
            return None
        return await asyncio.shield(task)

    def cancel(self) -> bool:
        """Request cancellation of the in-flight build.

        Idempotent: returns ``False`` when nothing is building or cancellation
        was already requested. A ready index is never affected.
        """

        if self._status is not IndexStatus.BUILDING or self._token is None:
            return False
        signalled = self._token.cancel()
        if signalled:
            logger.info("Cancellation requested for %s index", self.name)
        return signalled

    def status_snapshot(self) -> dict[str, Any]:
        """Read-only diagnostic view of the manager."""

        stats = getattr(self._index, "stats", None) if self.is_ready else None
        return {
            "name": self.name,
            "status": self._status.value,
            "source": self._origin,
            "builds_started": self._builds_started,
            "builds_cancelled": self._builds_cancelled,
            "builds_failed": self._builds_failed,
            "last_duration_s": round(self._last_duration_s, 4) if self._last_duration_s is not None else None,
            "stats": stats.model_dump(by_alias=True) if stats is not None else None,
        }

    # --- internal helpers -------------------------------------------------

    def _start(self) -> None:
        token = CancellationToken()
        self._token = token
        self._status = IndexStatus.BUILDING
        self._builds_started += 1
        self._task = asyncio.create_task(self._run(token), name=f"index-build:{self.name}")

    async def _run(self, token: CancellationToken) -> IndexT | None:
        start = time.perf_counter()
        with bind_index_context(self.name):
            try:
                index, origin = await self._load_or_build(token)
                token.raise_if_cancelled()
            except BuildCancelledError:
                self._builds_cancelled += 1
                logger.info("%s index build cancelled; partial state discarded", self.name)
                self._reset()
                return None
            except Exception:  # noqa: BLE001 - a failed build degrades to the fallback path
                self._builds_failed += 1
                logger.error("%s index build failed", self.name, exc_info=True)
                self._reset()
                return None
            finally:
                self._task = None
                self._token = None
                self._last_duration_s = time.perf_counter() - start

            if index is None:
                logger.warning("%s index unavailable: no snapshot and no rebuild source", self.name)
                self._reset()
                return None

            self._index = index
            self._origin = origin
            self._status = IndexStatus.READY
            logger.info("%s index ready from %s in %.2fs", self.name, origin, self._last_duration_s)
            return index

    async def _load_or_build(self, token: CancellationToken) -> tuple[IndexT | None, str | None]:
        if self._load_snapshot is not None:
            loaded = await asyncio.to_thread(self._load_snapshot)
            if loaded is not None:
                return loaded, "snapshot"
        if self._build_index is None:
            return None, None
        logger.info("Rebuilding %s index from the document source", self.name)
        return await self._build_index(token), "rebuild"

    def _reset(self) -> None:
        self._index = None
        self._origin = None
        self._status = IndexStatus.NONE
