import asyncio
import logging
import time

from microbatcher import MicroBatcher
from microbatcher.logging import setup_logging


async def double(n: int) -> int:
    await asyncio.sleep(0.3)
    return n * 2


async def double_many(numbers: list[int]) -> list[int]:
    await asyncio.sleep(0.3)
    return [n * 2 for n in numbers]


async def main() -> None:
    batched_double = (
        MicroBatcher(double)
        .batch_resolver(double_many, flush_interval_ms=200, size_threshold=3)
        .build()
    )
    start = time.perf_counter()
    async with batched_double:
        results = await asyncio.gather(*(batched_double(n) for n in range(1, 6)))
    print(f"results={results} elapsed={time.perf_counter() - start:.2f}s")


if __name__ == "__main__":
    setup_logging(level=logging.DEBUG, colors=False)
    asyncio.run(main())
