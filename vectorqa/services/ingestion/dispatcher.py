"""Fire-and-forget fan-out for sitemap ingestion.

``IngestionDispatcher.dispatch`` schedules one asyncio task per request and
returns at once; the HTTP caller is told ingestion "started" while the
tasks run in the background.  Concurrency across *all* dispatched work is
capped by one semaphore.

Per-item failures never reach the original caller (it has already been
answered).  They are logged, counted, and passed to the optional
``on_complete`` hook, which receives either the :class:`IngestionResult`
or the exception for each request.

Task references are kept in a set until each task finishes, otherwise the
event loop could garbage-collect a running task.  ``drain()`` waits for
everything in flight and is called on shutdown and by the CLI.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, Iterable, Union

import structlog
from pydantic import BaseModel, ConfigDict

from vectorqa.models.rag import IngestionRequest, IngestionResult

logger = structlog.get_logger(logger_name=__name__)

IngestHandler = Callable[[IngestionRequest], Awaitable[IngestionResult]]
CompletionHook = Callable[
    [IngestionRequest, Union[IngestionResult, Exception]],
    Union[Awaitable[None], None],
]


class DispatchStats(BaseModel):
    """Running counters for dispatched fan-out work."""

    model_config = ConfigDict(frozen=True)

    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    in_flight: int = 0


class IngestionDispatcher:
    """Runs ingestion requests in the background with bounded concurrency.

    Parameters
    ----------
    max_concurrency:
        Maximum number of ingestions running at the same time.
    on_complete:
        Optional sync or async callable invoked with each request and its
        result or exception.
    """

    def __init__(self, max_concurrency: int = 5, on_complete: CompletionHook | None = None) -> None:
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._on_complete = on_complete
        self._tasks: set[asyncio.Task[None]] = set()
        self._dispatched = 0
        self._succeeded = 0
        self._failed = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dispatch(self, requests: Iterable[IngestionRequest], handler: IngestHandler) -> int:
        """Schedule *handler* for every request and return how many were scheduled.

        Must be called from inside a running event loop.
        """
        count = 0
        for request in requests:
            task = asyncio.create_task(self._run(handler, request), name=f"ingest:{request.locator}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            count += 1

        self._dispatched += count
        logger.info("fanout_dispatched", count=count, in_flight=len(self._tasks))
        return count

    @property
    def stats(self) -> DispatchStats:
        return DispatchStats(
            dispatched=self._dispatched,
            succeeded=self._succeeded,
            failed=self._failed,
            in_flight=len(self._tasks),
        )

    async def drain(self) -> None:
        """Wait until every dispatched task (including ones dispatched meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("fanout_drained", **self.stats.model_dump())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, handler: IngestHandler, request: IngestionRequest) -> None:
        async with self._semaphore:
            try:
                result = await handler(request)
            except Exception as exc:
                self._failed += 1
                logger.warning(
                    "fanout_item_failed",
                    locator=request.locator,
                    collection=request.collection_id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                await self._notify(request, exc)
                return

        self._succeeded += 1
        logger.info(
            "fanout_item_done",
            locator=request.locator,
            status=result.status.value,
            chunks=result.chunks_indexed,
        )
        await self._notify(request, result)

    async def _notify(self, request: IngestionRequest, outcome: IngestionResult | Exception) -> None:
        if self._on_complete is None:
            return
        try:
            maybe_awaitable = self._on_complete(request, outcome)
            if inspect.isawaitable(maybe_awaitable):
                await maybe_awaitable
        except Exception:
            logger.exception("fanout_hook_failed", locator=request.locator)
