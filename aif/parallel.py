# -*- coding: utf-8 -*-
"""
Parallel Tasks - Index-addressed task execution on a thread pool.

Runs a worker over a list of independent task records. Each record carries
its own inputs and its own output slot, so workers never share mutable
state and the caller recombines results by task index after the join.
Task order therefore never depends on completion order.

Tasks are grouped into contiguous stripes; each stripe runs its tasks
sequentially on one pool thread. The stripe count is a granularity hint
only and never affects results. OpenCV releases the GIL inside its
kernels, so threads give real parallelism for detection and matching.

Author
------
Steven Siebert

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.

Created
-------
2026-10-12

Modified
--------
2026-10-14
"""

# Standard library
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def split_stripes(ntasks: int, nstripes: float = -1) -> List[Tuple[int, int]]:
    """Partition ``range(ntasks)`` into contiguous ``[start, end)`` stripes.

    Parameters
    ----------
    ntasks : int
        Number of tasks.
    nstripes : float
        Requested number of stripes. Values ``<= 0`` mean one stripe per
        task. Values above ``ntasks`` are clamped.

    Returns
    -------
    List[Tuple[int, int]]
        Stripe bounds in task order.
    """
    if ntasks <= 0:
        return []
    if nstripes <= 0:
        nstripes = ntasks
    nstripes = min(int(math.ceil(nstripes)), ntasks)
    size = int(math.ceil(ntasks / nstripes))
    return [(start, min(start + size, ntasks))
            for start in range(0, ntasks, size)]


def _run_stripe(
    worker: Callable[[T], None],
    tasks: Sequence[Optional[T]],
    start: int,
    end: int,
) -> None:
    for i in range(start, end):
        if tasks[i] is not None:
            worker(tasks[i])


def run_tasks(
    worker: Callable[[T], None],
    tasks: Sequence[Optional[T]],
    max_workers: Optional[int] = None,
    nstripes: float = -1,
) -> None:
    """Apply ``worker`` to every non-``None`` task and block until done.

    Parameters
    ----------
    worker : Callable[[T], None]
        Function that reads a task record's inputs and fills its outputs.
    tasks : Sequence[Optional[T]]
        Task records. ``None`` entries are skipped and keep whatever
        default output the caller assigned for that index.
    max_workers : Optional[int]
        Thread-pool size. ``None`` uses the ``ThreadPoolExecutor`` default.
    nstripes : float
        Stripe count hint, see :func:`split_stripes`.

    Raises
    ------
    Exception
        The first exception raised by a worker, re-raised after every
        stripe has finished.
    """
    stripes = split_stripes(len(tasks), nstripes)
    if not stripes:
        return
    if len(stripes) == 1 or max_workers == 1:
        for start, end in stripes:
            _run_stripe(worker, tasks, start, end)
        return

    logger.debug("Running %d tasks in %d stripes", len(tasks), len(stripes))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_run_stripe, worker, tasks, start, end)
                   for start, end in stripes]
    # Executor exit joins every stripe before results are inspected
    for future in futures:
        future.result()
