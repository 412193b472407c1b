"""Fan-out helper for per-holder computation.

Holders are independent of each other, so per-holder work can be spread over
a thread pool. ``max_workers <= 1`` runs inline, which keeps small requests
and tests free of pool overhead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Below this many items a pool costs more than it saves.
MIN_PARALLEL_ITEMS = 64


def map_holders(fn: Callable[[T], R], items: Iterable[T], *, max_workers: int = 1) -> list[R]:
    """Apply ``fn`` to every item, preserving input order.

    Exceptions raised by ``fn`` propagate to the caller.
    """
    materialized = list(items)
    if max_workers <= 1 or len(materialized) < MIN_PARALLEL_ITEMS:
        return [fn(item) for item in materialized]

    logger.debug("Mapping %d holders over %d workers", len(materialized), max_workers)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(fn, materialized))
