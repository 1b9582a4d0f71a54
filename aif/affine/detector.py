# -*- coding: utf-8 -*-
"""
Affine Invariant Detector - Feature detection over simulated viewpoints.

Runs an underlying feature backend on every viewpoint of the affine sample
plan in parallel, maps each sample's keypoints back to source coordinates,
and merges the per-sample outputs into one keypoint list and one
descriptor matrix. Keypoints that a single-view detector would lose under
strong skew or foreshortening are recovered from the sample whose
simulated view undoes that distortion.

Each sample is an independent ``SampleTask`` record holding its inputs and
its output slot. Tasks read the shared source image and mask and write
only to their own record; merging walks the records in plan order, so the
output does not depend on thread scheduling.

Dependencies
------------
opencv-python-headless

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
2026-10-13

Modified
--------
2026-10-17
"""

# Standard library
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

# Third-party
import cv2
import numpy as np

# AIF internal
from aif.affine.sampling import AffineSample, affine_sample_plan
from aif.affine.warp import (
    apply_to_image,
    apply_to_mask,
    build_forward_map,
    invert_keypoints,
)
from aif.exceptions import ConfigurationError, ValidationError
from aif.features.base import FeatureBackend, as_descriptor_matrix, empty_descriptors
from aif.parallel import run_tasks
from aif.vocabulary import DistanceMetric

logger = logging.getLogger(__name__)


def detect_sample(
    image: np.ndarray,
    mask: Optional[np.ndarray],
    sample: AffineSample,
    backend: FeatureBackend,
    use_provided_keypoints: bool = False,
) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
    """Detect features in one simulated view of *image*.

    Parameters
    ----------
    image : np.ndarray
        Source image. Not modified.
    mask : Optional[np.ndarray]
        uint8 source validity mask, or None. Not modified.
    sample : AffineSample
        Viewpoint to simulate.
    backend : FeatureBackend
        Backend run on the warped image and mask.
    use_provided_keypoints : bool
        Forwarded to the backend unchanged.

    Returns
    -------
    Tuple[List[cv2.KeyPoint], np.ndarray]
        Keypoints in source coordinates and their descriptors.
    """
    affine_map = build_forward_map(sample, image.shape)
    warped = apply_to_image(image, affine_map)
    warped_mask = apply_to_mask(
        mask, affine_map, (warped.shape[1], warped.shape[0])
    )

    keypoints, descriptors = backend.detect_and_compute(
        warped, warped_mask, use_provided_keypoints
    )
    keypoints = list(keypoints)
    descriptors = as_descriptor_matrix(descriptors, len(keypoints))
    invert_keypoints(keypoints, affine_map)
    return keypoints, descriptors


@dataclass
class SampleTask:
    """Inputs and output slot of one per-sample detection task."""

    image: np.ndarray
    mask: Optional[np.ndarray]
    sample: AffineSample
    backend: FeatureBackend
    keypoints: List[cv2.KeyPoint] = field(default_factory=list)
    descriptors: np.ndarray = field(default_factory=empty_descriptors)


def _run_sample_task(task: SampleTask) -> None:
    task.keypoints, task.descriptors = detect_sample(
        task.image, task.mask, task.sample, task.backend
    )
    logger.debug("Sample tilt=%.3f phi=%.2f: %d keypoints",
                 task.sample.tilt, task.sample.phi, len(task.keypoints))


def merge_sample_outputs(
    tasks: Sequence[SampleTask],
) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
    """Concatenate per-sample outputs in task order.

    Samples without keypoints contribute nothing; the descriptor width and
    type come from the first sample that has rows.

    Parameters
    ----------
    tasks : Sequence[SampleTask]
        Completed tasks, in plan order.

    Returns
    -------
    Tuple[List[cv2.KeyPoint], np.ndarray]
        Merged keypoints and row-aligned descriptors. All-empty input
        gives ``([], empty_descriptors())``.

    Raises
    ------
    ValidationError
        If non-empty samples disagree on descriptor width or type.
    """
    keypoints: List[cv2.KeyPoint] = []
    for task in tasks:
        keypoints.extend(task.keypoints)

    blocks = [task.descriptors for task in tasks if task.descriptors.shape[0]]
    if not blocks:
        return keypoints, empty_descriptors()

    first = blocks[0]
    for block in blocks[1:]:
        if block.shape[1] != first.shape[1] or block.dtype != first.dtype:
            raise ValidationError(
                f"Inconsistent descriptors across samples: "
                f"{first.shape[1]}x{first.dtype} vs {block.shape[1]}x{block.dtype}"
            )
    return keypoints, np.vstack(blocks)


class AffineInvariantDetector(FeatureBackend):
    """Affine invariant wrapper around a point-feature backend.

    The detector is itself a ``FeatureBackend`` reporting the inner
    backend's distance metric, so its output can be matched with
    ``ResultMatcher`` like any other backend's.

    Parameters
    ----------
    backend : Optional[FeatureBackend]
        Underlying detector/descriptor. May be None at construction; using
        a detector without a backend raises ``ConfigurationError``.
    max_workers : Optional[int]
        Thread-pool size for per-sample tasks. None uses the
        ``ThreadPoolExecutor`` default.
    nstripes : float
        Task grouping hint; ``<= 0`` runs one stripe per sample.

    Examples
    --------
    >>> from aif.features.opencv import SIFTParameters
    >>> detector = AffineInvariantDetector(SIFTParameters().create_backend())
    >>> keypoints, descriptors = detector.detect_and_compute(gray)
    """

    def __init__(
        self,
        backend: Optional[FeatureBackend],
        max_workers: Optional[int] = None,
        nstripes: float = -1,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValidationError(f"max_workers must be >= 1, got {max_workers}")
        self._backend = backend
        self._max_workers = max_workers
        self._nstripes = nstripes

    @property
    def backend(self) -> Optional[FeatureBackend]:
        """The wrapped backend."""
        return self._backend

    @property
    def distance_metric(self) -> DistanceMetric:
        return self._require_backend().distance_metric

    @property
    def descriptor_size(self) -> Optional[int]:
        return self._require_backend().descriptor_size

    @property
    def default_name(self) -> str:
        return "AffineInvariantFeature"

    def _require_backend(self) -> FeatureBackend:
        if self._backend is None:
            raise ConfigurationError(
                "AffineInvariantDetector has no feature backend configured"
            )
        return self._backend

    def detect_and_compute(
        self,
        image: np.ndarray,
        mask: Optional[np.ndarray] = None,
        use_provided_keypoints: bool = False,
    ) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
        """Detect and describe features over every simulated viewpoint.

        Parameters
        ----------
        image : np.ndarray
            Source image. Shape (rows, cols) or (rows, cols, channels).
        mask : Optional[np.ndarray]
            uint8 validity mask of shape (rows, cols), or None.
        use_provided_keypoints : bool
            Accepted for interface compatibility. Per-sample detection
            always detects its own keypoints.

        Returns
        -------
        Tuple[List[cv2.KeyPoint], np.ndarray]
            Keypoints in source coordinates, grouped by sample in plan
            order, and their row-aligned descriptors.

        Raises
        ------
        ConfigurationError
            If no backend is configured.
        ValidationError
            If the image or mask shape is invalid.
        """
        backend = self._require_backend()
        if image.ndim not in (2, 3):
            raise ValidationError(
                f"Image must be 2D or 3D, got {image.ndim} dimensions"
            )
        if mask is not None and mask.shape[:2] != image.shape[:2]:
            raise ValidationError(
                f"Mask shape {mask.shape[:2]} does not match image shape "
                f"{image.shape[:2]}"
            )
        if use_provided_keypoints:
            logger.warning(
                "use_provided_keypoints is not supported by "
                "AffineInvariantDetector and is ignored"
            )

        tasks = [SampleTask(image, mask, sample, backend)
                 for sample in affine_sample_plan()]
        run_tasks(_run_sample_task, tasks,
                  max_workers=self._max_workers, nstripes=self._nstripes)

        keypoints, descriptors = merge_sample_outputs(tasks)
        logger.debug("Merged %d samples: %d keypoints, descriptors %s",
                     len(tasks), len(keypoints), descriptors.shape)
        return keypoints, descriptors

    def __repr__(self) -> str:
        return f"AffineInvariantDetector({self._backend!r})"
