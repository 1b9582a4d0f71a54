# -*- coding: utf-8 -*-
"""
Parallel Matching - One query against many references concurrently.

Author
------
Duane Smalley, PhD
duane.d.smalley@gmail.com

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.

Created
-------
2026-10-14

Modified
--------
2026-10-14
"""

# Standard library
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

# Third-party
import cv2
import numpy as np

# AIF internal
from aif.features.base import Results
from aif.matching.matcher import ResultMatcher, identity_transform
from aif.parallel import run_tasks


@dataclass
class MatchTask:
    """Inputs and output slot of one reference's match."""

    matcher: ResultMatcher
    query: Results
    transform: np.ndarray = field(default_factory=identity_transform)
    matches: List[cv2.DMatch] = field(default_factory=list)


def _run_match_task(task: MatchTask) -> None:
    task.transform, task.matches = task.matcher.match(task.query)


def parallel_match(
    matchers: Sequence[Optional[ResultMatcher]],
    query: Results,
    max_workers: Optional[int] = None,
    nstripes: float = -1,
) -> Tuple[List[np.ndarray], List[List[cv2.DMatch]]]:
    """Match *query* against every matcher's reference in parallel.

    Parameters
    ----------
    matchers : Sequence[Optional[ResultMatcher]]
        One matcher per reference. None entries are skipped.
    query : Results
        Query shared read-only by all tasks.
    max_workers : Optional[int]
        Thread-pool size. None uses the ``ThreadPoolExecutor`` default.
    nstripes : float
        Task grouping hint; ``<= 0`` runs one stripe per matcher.

    Returns
    -------
    Tuple[List[np.ndarray], List[List[cv2.DMatch]]]
        Transforms and inlier matches, index-aligned with *matchers*.
        Skipped entries hold the identity transform and no matches.
    """
    tasks = [MatchTask(m, query) if m is not None else None for m in matchers]
    run_tasks(_run_match_task, tasks, max_workers=max_workers, nstripes=nstripes)

    transforms = []
    matches_array = []
    for task in tasks:
        if task is None:
            transforms.append(identity_transform())
            matches_array.append([])
        else:
            transforms.append(task.transform)
            matches_array.append(task.matches)
    return transforms, matches_array
