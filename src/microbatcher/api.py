"""
Main endpoint for users.
Exposes a `MicroBatcher` builder that binds a single-item coroutine function,
an optional batch resolver and its options, and builds a `BatchedFunction`
with its own ledger, timer and dispatcher.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import typing as t
from collections.abc import Sequence

import structlog

from microbatcher.config import BatchOptions
from microbatcher.dispatcher import BatchResolver, Dispatcher, SingleOperation
from microbatcher.ledger import PendingCallLedger
from microbatcher.payload import PayloadShape, detect_payload_shape
from microbatcher.scheduler import FlushScheduler

log = structlog.get_logger(__name__)

R = t.TypeVar(name="R")


class BatchedFunction(t.Generic[R]):
    """
    Callable returned by ``MicroBatcher.build``.

    Calling it queues the arguments and returns an ``asyncio.Future`` that
    settles with the same value (or error) the wrapped operation would
    produce, whether or not the call was batched.

    Parameters
    ----------
    operation : SingleOperation
        Single-item coroutine function.
    batch_resolver : BatchResolver | None
        Coroutine function resolving a list of payloads at once.
    options : BatchOptions
        Batching options.
    """

    def __init__(
        self,
        *,
        operation: SingleOperation,
        batch_resolver: BatchResolver | None,
        options: BatchOptions,
    ) -> None:
        self._operation = operation
        self._batch_resolver = batch_resolver
        self._options = options
        self._name = f"{getattr(operation, '__qualname__', type(operation).__name__)}@{id(self):x}"
        try:
            self._signature: inspect.Signature | None = inspect.signature(operation)
        except (TypeError, ValueError):
            self._signature = None
        self._payload_shape: PayloadShape = options.payload_shape or detect_payload_shape(
            operation=operation
        )
        flush_interval_ms = options.resolve_flush_interval_ms(
            has_batch_resolver=batch_resolver is not None
        )

        self._ledger = PendingCallLedger()
        self._dispatcher = Dispatcher(
            operation=operation,
            batch_resolver=batch_resolver,
            options=options,
            payload_shape=self._payload_shape,
            name=self._name,
        )
        self._scheduler = FlushScheduler(
            ledger=self._ledger,
            dispatcher=self._dispatcher,
            flush_interval_ms=flush_interval_ms,
            size_threshold=options.size_threshold,
            name=self._name,
        )
        functools.update_wrapper(wrapper=self, wrapped=operation, updated=())

        log.debug(
            event="Built batched function",
            batched_function=self._name,
            has_batch_resolver=batch_resolver is not None,
            flush_interval_ms=flush_interval_ms,
            size_threshold=options.size_threshold,
            force_batch_for_single_call=options.force_batch_for_single_call,
            error_policy=options.error_policy,
            payload_shape=self._payload_shape,
        )

    @property
    def options(self) -> BatchOptions:
        return self._options

    @property
    def payload_shape(self) -> PayloadShape:
        return self._payload_shape

    @property
    def pending_count(self) -> int:
        return self._ledger.size()

    @property
    def active_group_count(self) -> int:
        return self._scheduler.active_group_count

    def _bind_payload(self, args: tuple[t.Any, ...], kwargs: dict[str, t.Any]) -> tuple[t.Any, ...]:
        """
        Normalize call arguments to a positional payload tuple.

        Parameters
        ----------
        args : tuple[typing.Any, ...]
            Positional arguments of the call.
        kwargs : dict[str, typing.Any]
            Keyword arguments of the call.

        Returns
        -------
        tuple[typing.Any, ...]
            Positional arguments with defaults applied.

        Raises
        ------
        TypeError
            If the arguments do not match the operation signature, or a
            keyword-only argument is involved.
        """
        if self._signature is None:
            if kwargs:
                raise TypeError(
                    f"{self._name} only accepts positional arguments: "
                    "the wrapped operation has no inspectable signature"
                )
            return args
        bound = self._signature.bind(*args, **kwargs)
        parameters = self._signature.parameters
        keyword_only = sorted(
            name
            for name, value in bound.arguments.items()
            if parameters[name].kind is inspect.Parameter.KEYWORD_ONLY
            or (parameters[name].kind is inspect.Parameter.VAR_KEYWORD and value)
        )
        if keyword_only:
            raise TypeError(f"{self._name} cannot batch keyword-only arguments: {keyword_only}")
        # Keyword-only parameters keep their own defaults at call time.
        bound.apply_defaults()
        return tuple(bound.args)

    def __call__(self, *args: t.Any, **kwargs: t.Any) -> asyncio.Future[R]:
        payload = self._bind_payload(args, kwargs)
        call = self._ledger.enqueue(payload)
        log.debug(
            event="Queued call",
            batched_function=self._name,
            call_id=call.call_id,
            pending_count=self._ledger.size(),
        )
        self._scheduler.notify_enqueued()
        return call.future

    def flush(self) -> int:
        """
        Dispatch every pending call without waiting for the window.

        Returns
        -------
        int
            Number of calls dispatched.
        """
        return self._scheduler.flush()

    async def aclose(self) -> None:
        """
        Flush pending calls and wait for every in-flight group to settle.
        """
        flushed = self._scheduler.flush()
        if flushed:
            log.info(
                event="Flushed pending calls on close",
                batched_function=self._name,
                call_count=flushed,
            )
        await self._scheduler.wait_idle()
        log.debug(event="Batched function closed", batched_function=self._name)

    async def __aenter__(self) -> BatchedFunction[R]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: t.Any,
    ) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<BatchedFunction {self._name} pending={self.pending_count}>"


class MicroBatcher(t.Generic[R]):
    """
    Builder for batched functions.

    Parameters
    ----------
    operation : typing.Callable[..., typing.Awaitable[R]]
        Single-item coroutine function to wrap.

    Examples
    --------
    >>> async def double(n: int) -> int:
    ...     return n * 2
    >>> async def double_many(ns: list[int]) -> list[int]:
    ...     return [n * 2 for n in ns]
    >>> batched_double = (
    ...     MicroBatcher(double)
    ...     .batch_resolver(double_many, flush_interval_ms=200, size_threshold=3)
    ...     .build()
    ... )
    """

    def __init__(self, operation: t.Callable[..., t.Awaitable[R]]) -> None:
        if not callable(operation):
            raise TypeError(f"MicroBatcher expects a callable, got {type(operation).__name__}")
        self._operation = operation
        self._batch_resolver: BatchResolver | None = None
        self._options = BatchOptions()

    @staticmethod
    def _merge_options(options: BatchOptions | None, option_fields: dict[str, t.Any]) -> BatchOptions:
        if options is not None and option_fields:
            raise TypeError("Pass either a BatchOptions instance or option fields, not both")
        if options is not None:
            return options
        return BatchOptions(**option_fields)

    def batch_resolver(
        self,
        resolver: t.Callable[[list[t.Any]], t.Awaitable[Sequence[R]]],
        options: BatchOptions | None = None,
        **option_fields: t.Any,
    ) -> MicroBatcher[R]:
        """
        Bind a batch resolver and its options.

        Parameters
        ----------
        resolver : typing.Callable[[list[typing.Any]], typing.Awaitable[typing.Sequence[R]]]
            Coroutine function receiving the ordered payload list of a group
            and returning one result per payload, in the same order.
        options : BatchOptions | None, optional
            Batching options.
        **option_fields : typing.Any
            ``BatchOptions`` fields, as an alternative to ``options``.

        Returns
        -------
        MicroBatcher[R]
            This builder.
        """
        if not callable(resolver):
            raise TypeError(f"Batch resolver must be callable, got {type(resolver).__name__}")
        self._batch_resolver = resolver
        self._options = self._merge_options(options, option_fields)
        return self

    def options(self, options: BatchOptions | None = None, **option_fields: t.Any) -> MicroBatcher[R]:
        """
        Set batching options, with or without a batch resolver.

        Returns
        -------
        MicroBatcher[R]
            This builder.
        """
        self._options = self._merge_options(options, option_fields)
        return self

    def build(self) -> BatchedFunction[R]:
        """
        Build an independent batched function.

        Returns
        -------
        BatchedFunction[R]
            New callable with its own ledger, timer and dispatcher.
        """
        return BatchedFunction(
            operation=self._operation,
            batch_resolver=self._batch_resolver,
            options=self._options,
        )


def micro_batcher(
    resolver: t.Callable[[list[t.Any]], t.Awaitable[Sequence[t.Any]]] | None = None,
    **option_fields: t.Any,
) -> t.Callable[[t.Callable[..., t.Awaitable[R]]], BatchedFunction[R]]:
    """
    Decorator form of ``MicroBatcher``.

    Parameters
    ----------
    resolver : typing.Callable | None, optional
        Batch resolver. Calls are resolved one by one when omitted.
    **option_fields : typing.Any
        ``BatchOptions`` fields.

    Returns
    -------
    typing.Callable
        Decorator turning a coroutine function into a ``BatchedFunction``.

    Notes
    -----
    >>> @micro_batcher(double_many, size_threshold=10)
    ... async def double(n: int) -> int:
    ...     return n * 2
    """

    def decorator(operation: t.Callable[..., t.Awaitable[R]]) -> BatchedFunction[R]:
        builder = MicroBatcher(operation)
        if resolver is None:
            builder.options(**option_fields)
        else:
            builder.batch_resolver(resolver, **option_fields)
        return builder.build()

    return decorator
