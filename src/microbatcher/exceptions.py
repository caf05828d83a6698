"""
Microbatcher-specific runtime exceptions.
"""

from __future__ import annotations


class MicroBatchError(RuntimeError):
    """
    Base class for errors raised by the batching engine itself.
    """


class BatchResolverContractError(MicroBatchError):
    """
    Signal that a batch resolver broke its positional result contract.

    Parameters
    ----------
    expected : int
        Number of payloads handed to the resolver.
    actual : int | None
        Number of results returned, or ``None`` when the return value
        was not a sized sequence.
    """

    def __init__(self, *, expected: int, actual: int | None) -> None:
        self.expected = expected
        self.actual = actual
        if actual is None:
            message = (
                f"Batch resolver must return a sequence of {expected} result(s), "
                "got a non-sequence value"
            )
        else:
            message = (
                f"Batch resolver returned {actual} result(s) for {expected} payload(s)"
            )
        super().__init__(message)


class BatchedCallError(MicroBatchError):
    """
    Wrapper settled on callers when the error policy is ``WRAP``.

    The original exception is kept on ``original`` and chained as
    ``__cause__``.
    """

    def __init__(self, original: BaseException) -> None:
        self.original = original
        super().__init__(f"{type(original).__name__}: {original}")
        self.__cause__ = original
