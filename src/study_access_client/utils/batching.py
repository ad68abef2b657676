import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Iterable[T], size: int) -> List[List[T]]:
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


async def process_in_batches(
    items: Iterable[T],
    batch_size: int,
    fn: Callable[[T], Awaitable[R]],
) -> List[R]:
    """
    Не более batch_size корутин одновременно; пачки выполняются строго друг за другом.
    Исключение любой корутины пробрасывается наружу, остальные пачки не запускаются.
    """
    results: List[R] = []
    for batch in chunked(items, batch_size):
        results.extend(await asyncio.gather(*(fn(item) for item in batch)))
    return results
