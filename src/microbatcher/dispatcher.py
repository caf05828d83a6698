"""
Resolve drained groups and route every outcome back to its caller.
"""

from __future__ import annotations

import asyncio
import typing as t
from collections.abc import Sequence

import structlog

from microbatcher.config import BatchOptions, ErrorPolicy
from microbatcher.exceptions import BatchedCallError, BatchResolverContractError
from microbatcher.ledger import PendingCall
from microbatcher.payload import PayloadShape, pack_payload

log = structlog.get_logger(__name__)

SingleOperation = t.Callable[..., t.Awaitable[t.Any]]
BatchResolver = t.Callable[[list[t.Any]], t.Awaitable[Sequence[t.Any]]]


class Dispatcher:
    """
    Execute a group through the batch resolver or the single-item operation.

    Parameters
    ----------
    operation : SingleOperation
        Single-item coroutine function.
    batch_resolver : BatchResolver | None
        Coroutine function resolving a list of payloads at once.
    options : BatchOptions
        Batching options of the owning function.
    payload_shape : PayloadShape
        How payloads are presented to the batch resolver.
    name : str
        Batched function name, bound on every log line.
    """

    def __init__(
        self,
        *,
        operation: SingleOperation,
        batch_resolver: BatchResolver | None,
        options: BatchOptions,
        payload_shape: PayloadShape,
        name: str,
    ) -> None:
        self._operation = operation
        self._batch_resolver = batch_resolver
        self._options = options
        self._payload_shape = payload_shape
        self._log = log.bind(batched_function=name)

    def uses_batch_path(self, *, group_size: int) -> bool:
        if self._batch_resolver is None:
            return False
        if group_size > 1:
            return True
        return group_size == 1 and self._options.force_batch_for_single_call

    @staticmethod
    def _is_cancelling() -> bool:
        # True only when the running task itself was asked to cancel.
        task = asyncio.current_task()
        return task is not None and task.cancelling() > 0

    def _caller_error(self, error: BaseException) -> BaseException:
        if self._options.error_policy is ErrorPolicy.wrap:
            return BatchedCallError(original=error)
        return error

    async def resolve(self, group: list[PendingCall]) -> None:
        """
        Resolve every call of a drained group.

        Parameters
        ----------
        group : list[PendingCall]
            Calls drained together, in arrival order.

        Notes
        -----
        Failures are settled on the affected futures and never raised.
        """
        if not group:
            return
        batch_resolver = self._batch_resolver
        if batch_resolver is not None and self.uses_batch_path(group_size=len(group)):
            await self._resolve_batch(group=group, batch_resolver=batch_resolver)
        else:
            await asyncio.gather(*(self._resolve_single(call=call) for call in group))

    async def _resolve_batch(
        self, *, group: list[PendingCall], batch_resolver: BatchResolver
    ) -> None:
        payloads = [pack_payload(args=call.payload, shape=self._payload_shape) for call in group]
        self._log.info(event="Resolving batch", group_size=len(group))
        try:
            results = await batch_resolver(payloads)
        except asyncio.CancelledError:
            self._log.warning(event="Batch resolver cancelled", group_size=len(group))
            for call in group:
                call.future.cancel()
            if self._is_cancelling():
                raise
            return
        except Exception as e:
            self._log.error(
                event="Batch resolver failed",
                group_size=len(group),
                error=str(object=e),
            )
            self._fail_group(group=group, error=e)
            return

        if isinstance(results, (str, bytes)) or not isinstance(results, Sequence):
            contract_error = BatchResolverContractError(expected=len(group), actual=None)
        elif len(results) != len(group):
            contract_error = BatchResolverContractError(expected=len(group), actual=len(results))
        else:
            for call, result in zip(group, results):
                call.settle(result)
            self._log.debug(event="Batch resolved", group_size=len(group))
            return

        self._log.error(
            event="Batch resolver broke result contract",
            group_size=len(group),
            error=str(object=contract_error),
        )
        self._fail_group(group=group, error=contract_error)

    async def _resolve_single(self, *, call: PendingCall) -> None:
        try:
            result = await self._operation(*call.payload)
        except asyncio.CancelledError:
            call.future.cancel()
            if self._is_cancelling():
                raise
            self._log.debug(event="Single call cancelled by operation", call_id=call.call_id)
            return
        except Exception as e:
            self._log.debug(
                event="Single call failed",
                call_id=call.call_id,
                error=str(object=e),
            )
            call.settle_with_error(self._caller_error(e))
            return
        call.settle(result)

    def _fail_group(self, *, group: list[PendingCall], error: BaseException) -> None:
        for call in group:
            call.settle_with_error(self._caller_error(error))
