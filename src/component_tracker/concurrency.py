# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Bounded worker pool used for concurrent component resolution."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextvars import copy_context
from typing import Callable, Dict, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_tasks_fail_fast(tasks: Sequence[Callable[[], T]], max_workers: int) -> List[T]:
    """Run tasks concurrently and return their results in submission order.

    The first failure cancels every task that hasn't started yet and is
    re-raised; results of tasks that already finished are discarded.
    """
    if not tasks:
        return []
    if max_workers <= 1 or len(tasks) == 1:
        return [task() for task in tasks]

    results: Dict[int, T] = {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as executor:
        future_to_index = {
            executor.submit(copy_context().run, task): index for index, task in enumerate(tasks)
        }
        try:
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        except Exception:
            cancelled = sum(1 for future in future_to_index if future.cancel())
            logger.debug(f"Task failed, cancelled {cancelled} pending tasks")
            raise

    return [results[index] for index in range(len(tasks))]
