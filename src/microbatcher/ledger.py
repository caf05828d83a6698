"""
Ordered ledger of calls waiting to be flushed.
"""

from __future__ import annotations

import asyncio
import typing as t
import uuid
from collections import deque
from dataclasses import dataclass, field

import structlog

log = structlog.get_logger(__name__)


@dataclass
class PendingCall:
    """A call waiting for its group to be resolved."""

    payload: tuple[t.Any, ...]
    future: asyncio.Future[t.Any]
    call_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def settle(self, value: t.Any) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def settle_with_error(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class PendingCallLedger:
    """
    FIFO collection of pending calls for one batched function.

    Notes
    -----
    Every method is synchronous, so a drain can never interleave with an
    enqueue running on the same event loop.
    """

    def __init__(self) -> None:
        self._calls: deque[PendingCall] = deque()

    def __len__(self) -> int:
        return len(self._calls)

    def size(self) -> int:
        return len(self._calls)

    def enqueue(self, payload: tuple[t.Any, ...]) -> PendingCall:
        """
        Append a call in arrival order.

        Parameters
        ----------
        payload : tuple[typing.Any, ...]
            Positional arguments of the call.

        Returns
        -------
        PendingCall
            The queued call, whose future is not yet settled.

        Raises
        ------
        RuntimeError
            If no event loop is running.
        """
        loop = asyncio.get_running_loop()
        call = PendingCall(payload=payload, future=loop.create_future())
        self._calls.append(call)
        return call

    def drain(self, max_count: int | None = None) -> list[PendingCall]:
        """
        Remove and return the oldest calls.

        Parameters
        ----------
        max_count : int | None, optional
            Upper bound on drained calls. Drain everything when omitted.

        Returns
        -------
        list[PendingCall]
            Drained calls in arrival order.
        """
        if max_count is not None and max_count <= 0:
            raise ValueError(f"max_count must be positive, got {max_count}")
        count = len(self._calls) if max_count is None else min(max_count, len(self._calls))
        group = [self._calls.popleft() for _ in range(count)]
        log.debug(
            event="Drained pending calls",
            drained_count=len(group),
            remaining_count=len(self._calls),
        )
        return group
