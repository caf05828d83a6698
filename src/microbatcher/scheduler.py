"""
Flush scheduling for a batched function.

A flush is triggered either when the window timer elapses or, if a size
threshold is configured, as soon as that many calls are pending. Each
drained group is resolved in a background task so that new calls can be
queued and flushed while earlier groups are still in flight.
"""

from __future__ import annotations

import asyncio
import uuid
from enum import StrEnum

import structlog

from microbatcher.dispatcher import Dispatcher
from microbatcher.ledger import PendingCall, PendingCallLedger
from microbatcher.logging import logging_context

log = structlog.get_logger(__name__)


class SchedulerState(StrEnum):
    idle = "idle"
    armed = "armed"


class FlushScheduler:
    """
    Own the window timer and decide when the ledger is drained.

    Parameters
    ----------
    ledger : PendingCallLedger
        Ledger of the owning batched function.
    dispatcher : Dispatcher
        Dispatcher resolving drained groups.
    flush_interval_ms : int
        Window length before an automatic flush. ``0`` flushes on the next
        event-loop tick.
    size_threshold : int | None
        Pending count that triggers an early flush of exactly that many calls.
    name : str
        Batched function name, bound on every log line.
    """

    def __init__(
        self,
        *,
        ledger: PendingCallLedger,
        dispatcher: Dispatcher,
        flush_interval_ms: int,
        size_threshold: int | None,
        name: str,
    ) -> None:
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._flush_interval_seconds = flush_interval_ms / 1000
        self._size_threshold = size_threshold
        self._name = name
        self._window_task: asyncio.Task[None] | None = None
        self._group_tasks: set[asyncio.Task[None]] = set()
        self._log = log.bind(batched_function=name)

    @property
    def state(self) -> SchedulerState:
        if self._window_task is None:
            return SchedulerState.idle
        return SchedulerState.armed

    @property
    def active_group_count(self) -> int:
        return len(self._group_tasks)

    def notify_enqueued(self) -> None:
        """
        React to a call that was just appended to the ledger.

        Arms the window timer if idle, then flushes early when the size
        threshold is reached.
        """
        if self._window_task is None:
            self._arm()

        pending_count = self._ledger.size()
        if self._size_threshold is not None and pending_count >= self._size_threshold:
            self._log.debug(
                event="Size threshold reached",
                pending_count=pending_count,
                size_threshold=self._size_threshold,
            )
            self._cancel_window()
            self._dispatch(group=self._ledger.drain(max_count=self._size_threshold))
            if self._ledger.size():
                self._arm()

    def flush(self) -> int:
        """
        Drain everything pending immediately.

        Returns
        -------
        int
            Number of calls handed to the dispatcher.
        """
        self._cancel_window()
        group = self._ledger.drain()
        self._dispatch(group=group)
        return len(group)

    async def wait_idle(self) -> None:
        """
        Wait until every in-flight group has been resolved.
        """
        while self._group_tasks:
            await asyncio.gather(*list(self._group_tasks), return_exceptions=True)

    def _arm(self) -> None:
        self._log.debug(
            event="Starting flush window timer",
            flush_interval_seconds=self._flush_interval_seconds,
        )
        self._window_task = asyncio.create_task(
            coro=self._window_timer(),
            name=f"flush_window_timer_{self._name}",
        )

    def _cancel_window(self) -> None:
        window_task = self._window_task
        self._window_task = None
        if window_task is not None and not window_task.done():
            if window_task is not asyncio.current_task():
                window_task.cancel()

    async def _window_timer(self) -> None:
        try:
            await asyncio.sleep(delay=self._flush_interval_seconds)
        except asyncio.CancelledError:
            self._log.debug(event="Flush window timer cancelled")
            raise
        # A timer cancelled after waking up may still reach this point.
        if self._window_task is not asyncio.current_task():
            return
        self._window_task = None
        group = self._ledger.drain()
        if not group:
            self._log.debug(event="Flush window elapsed with empty ledger")
            return
        self._log.debug(event="Flush window elapsed", group_size=len(group))
        self._dispatch(group=group)

    def _dispatch(self, *, group: list[PendingCall]) -> None:
        if not group:
            return
        group_id = str(object=uuid.uuid4())
        self._log.debug(event="Dispatching group", group_id=group_id, group_size=len(group))
        task = asyncio.create_task(
            coro=self._resolve_group(group=group, group_id=group_id),
            name=f"resolve_group_{self._name}_{group_id}",
        )
        self._group_tasks.add(task)
        task.add_done_callback(self._group_tasks.discard)

    async def _resolve_group(self, *, group: list[PendingCall], group_id: str) -> None:
        with logging_context(group_id=group_id):
            await self._dispatcher.resolve(group)
