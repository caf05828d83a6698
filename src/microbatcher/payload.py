"""
Payload shapes shared by the ledger, the dispatcher and batch resolvers.

Every call is stored as the tuple of its positional arguments. The shape
only decides how those tuples are presented to a batch resolver: bare values
for single-argument operations, tuples otherwise.
"""

from __future__ import annotations

import inspect
import typing as t
from enum import StrEnum

import structlog

log = structlog.get_logger(__name__)

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class PayloadShape(StrEnum):
    unary = "unary"
    tuple = "tuple"


def detect_payload_shape(*, operation: t.Callable[..., t.Any]) -> PayloadShape:
    """
    Infer the payload shape of a single-item operation from its signature.

    Parameters
    ----------
    operation : typing.Callable[..., typing.Any]
        Single-item operation.

    Returns
    -------
    PayloadShape
        ``unary`` for exactly one positional parameter and no ``*args``,
        ``tuple`` otherwise, including callables without an inspectable
        signature.
    """
    try:
        signature = inspect.signature(operation)
    except (TypeError, ValueError):
        log.debug(
            event="Signature unavailable, defaulting payload shape",
            operation=getattr(operation, "__qualname__", repr(operation)),
            payload_shape=PayloadShape.tuple,
        )
        return PayloadShape.tuple

    parameters = signature.parameters.values()
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in parameters):
        return PayloadShape.tuple
    positional = [p for p in parameters if p.kind in _POSITIONAL_KINDS]
    if len(positional) == 1:
        return PayloadShape.unary
    return PayloadShape.tuple


def pack_payload(*, args: tuple[t.Any, ...], shape: PayloadShape) -> t.Any:
    """
    Convert stored call arguments to the form a batch resolver receives.

    Parameters
    ----------
    args : tuple[typing.Any, ...]
        Positional arguments of one call.
    shape : PayloadShape
        Payload shape of the wrapped operation.

    Returns
    -------
    typing.Any
        ``args[0]`` for unary payloads, ``args`` unchanged otherwise.
    """
    if shape is PayloadShape.unary and len(args) == 1:
        return args[0]
    return args

