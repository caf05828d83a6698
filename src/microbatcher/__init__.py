from .api import BatchedFunction as BatchedFunction
from .api import MicroBatcher as MicroBatcher
from .api import micro_batcher as micro_batcher
from .config import BatchOptions as BatchOptions
from .config import ErrorPolicy as ErrorPolicy
from .exceptions import BatchedCallError as BatchedCallError
from .exceptions import BatchResolverContractError as BatchResolverContractError
from .exceptions import MicroBatchError as MicroBatchError
from .payload import PayloadShape as PayloadShape

__all__ = [
    "MicroBatcher",
    "BatchedFunction",
    "micro_batcher",
    "BatchOptions",
    "ErrorPolicy",
    "PayloadShape",
    "MicroBatchError",
    "BatchResolverContractError",
    "BatchedCallError",
]
