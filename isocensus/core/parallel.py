"""
Order-preserving parallel map used by the parser and the aggregator.
"""

from typing import Callable, Iterable, List, Sequence, TypeVar

from joblib import Parallel, delayed

from isocensus.core.logger import get_logger

logger = get_logger("isocensus.parallel")

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], n_chunks: int) -> List[Sequence[T]]:
    """
    Split a sequence into at most ``n_chunks`` contiguous chunks.

    Parameters
    ----------
    items : Sequence
        Items to split.
    n_chunks : int
        Desired number of chunks.

    Returns
    -------
    list
        Non-empty chunks in input order.
    """
    if not items:
        return []
    n_chunks = max(1, min(n_chunks, len(items)))
    size, rest = divmod(len(items), n_chunks)
    chunks = []
    start = 0
    for i in range(n_chunks):
        stop = start + size + (1 if i < rest else 0)
        chunks.append(items[start:stop])
        start = stop
    return chunks


def parallel_map(fn: Callable[[T], R], items: Iterable[T], n_workers: int = 1) -> List[R]:
    """
    Apply ``fn`` to every item, returning results in input order.

    With ``n_workers <= 1`` the map runs in-process. Otherwise the items are
    dispatched to joblib worker processes; ``fn`` and the items must be
    picklable.

    Parameters
    ----------
    fn : Callable
        Module-level function to apply.
    items : Iterable
        Work items.
    n_workers : int
        Number of joblib jobs.

    Returns
    -------
    list
        ``[fn(item) for item in items]``.
    """
    items = list(items)
    if n_workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]

    workers = min(n_workers, len(items))
    logger.debug("Dispatching %d work items to %d workers", len(items), workers)
    return Parallel(n_jobs=workers)(delayed(fn)(item) for item in items)
