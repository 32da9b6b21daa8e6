"""Bounded-concurrency helpers for catalog fan-out."""
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def map_limit(items: Sequence[T], concurrency: int, mapper: Callable[[T], R]) -> List[R]:
    """
    Apply mapper to every item with at most `concurrency` calls in flight.

    The result list lines up with `items` regardless of completion order.
    Exceptions raised by mapper propagate; network-backed mappers are expected
    to degrade to None/empty themselves.
    """
    if not items:
        return []

    workers = max(1, min(concurrency, len(items)))
    if workers == 1:
        return [mapper(item) for item in items]

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="catalog") as executor:
        return list(executor.map(mapper, items))
