import pytest

from microbatcher.config import BatchOptions
from microbatcher.dispatcher import Dispatcher
from microbatcher.ledger import PendingCallLedger
from microbatcher.payload import PayloadShape
from tests.mocks.operations import RecordingBatchResolver, RecordingOperation


@pytest.fixture
def operation() -> RecordingOperation:
    """
    Create a recording ``double`` operation.
    """
    return RecordingOperation()


@pytest.fixture
def batch_resolver() -> RecordingBatchResolver:
    """
    Create a recording ``double`` batch resolver.
    """
    return RecordingBatchResolver()


@pytest.fixture
def ledger() -> PendingCallLedger:
    return PendingCallLedger()


@pytest.fixture
def make_dispatcher(operation: RecordingOperation, batch_resolver: RecordingBatchResolver):
    """
    Build dispatchers around the recording fakes.

    Returns
    -------
    typing.Callable[..., Dispatcher]
        Factory accepting ``BatchOptions`` fields and ``with_resolver``.
    """

    def factory(*, with_resolver: bool = True, **option_fields) -> Dispatcher:
        return Dispatcher(
            operation=operation,
            batch_resolver=batch_resolver if with_resolver else None,
            options=BatchOptions(**option_fields),
            payload_shape=PayloadShape.unary,
            name="double",
        )

    return factory
