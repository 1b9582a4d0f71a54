# -*- coding: utf-8 -*-
"""
Feature Backend Base Classes - The point-feature capability contract.

Defines the ``FeatureBackend`` ABC that every point-feature algorithm must
satisfy to be used by the affine sampling detector and the matcher, and the
immutable ``Results`` bundle that detection produces and matching consumes.

A backend is anything that, given an image and an optional validity mask,
returns a list of ``cv2.KeyPoint`` and a descriptor matrix with one row per
keypoint, and that declares which distance metric its descriptors use.

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
2026-10-12

Modified
--------
2026-10-15
"""

# Standard library
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

# Third-party
import cv2
import numpy as np

# AIF internal
from aif.exceptions import ValidationError
from aif.vocabulary import DistanceMetric


def empty_descriptors() -> np.ndarray:
    """Descriptor matrix for a detection that produced no keypoints.

    Returns
    -------
    np.ndarray
        Array of shape (0, 0), dtype uint8.
    """
    return np.empty((0, 0), dtype=np.uint8)


def as_descriptor_matrix(
    descriptors: Optional[np.ndarray],
    num_keypoints: int,
) -> np.ndarray:
    """Normalize backend descriptor output and check row alignment.

    OpenCV returns ``None`` instead of an empty matrix when nothing is
    detected; that case becomes :func:`empty_descriptors`.

    Parameters
    ----------
    descriptors : Optional[np.ndarray]
        Raw descriptor output. Shape (N, D) or None.
    num_keypoints : int
        Number of keypoints the descriptors belong to.

    Returns
    -------
    np.ndarray
        Descriptor matrix of shape (num_keypoints, D).

    Raises
    ------
    ValidationError
        If the row count differs from ``num_keypoints``.
    """
    if descriptors is None or descriptors.size == 0:
        rows = 0
        descriptors = empty_descriptors()
    else:
        descriptors = np.asarray(descriptors)
        if descriptors.ndim == 1:
            descriptors = descriptors.reshape(1, -1)
        rows = descriptors.shape[0]
    if rows != num_keypoints:
        raise ValidationError(
            f"Descriptor rows ({rows}) do not match keypoint count "
            f"({num_keypoints})"
        )
    return descriptors


class FeatureBackend(ABC):
    """Abstract point-feature detector and descriptor extractor.

    Concrete backends wrap a specific algorithm (an OpenCV ``Feature2D``,
    a combination of backends, or the affine sampling detector itself).
    Implementations must not mutate the input image or mask.
    """

    @abstractmethod
    def detect_and_compute(
        self,
        image: np.ndarray,
        mask: Optional[np.ndarray] = None,
        use_provided_keypoints: bool = False,
    ) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
        """Detect keypoints and compute their descriptors.

        Parameters
        ----------
        image : np.ndarray
            Input image. Shape (rows, cols) or (rows, cols, channels).
        mask : Optional[np.ndarray]
            uint8 validity mask, same rows and cols as ``image``. Nonzero
            pixels are searched. None searches the whole image.
        use_provided_keypoints : bool
            Backend-specific flag forwarded from callers.

        Returns
        -------
        Tuple[List[cv2.KeyPoint], np.ndarray]
            Keypoints and a descriptor matrix with one row per keypoint.
            An empty result is ``([], empty_descriptors())``.
        """
        ...

    @property
    @abstractmethod
    def distance_metric(self) -> DistanceMetric:
        """Distance metric used to compare this backend's descriptors."""
        ...

    @property
    def descriptor_size(self) -> Optional[int]:
        """Descriptor row width, or None when only known after detection."""
        return None

    @property
    def default_name(self) -> str:
        """Human-readable algorithm name."""
        return type(self).__name__


class Results:
    """Immutable bundle of keypoints, descriptors and distance metric.

    Produced once by detection and shared read-only with any number of
    matchers afterwards. The descriptor array is stored as a read-only copy.

    Parameters
    ----------
    keypoints : Sequence[cv2.KeyPoint]
        Keypoints in image coordinates.
    descriptors : Optional[np.ndarray]
        Descriptor matrix, one row per keypoint. None means no descriptors.
    distance_metric : DistanceMetric
        Metric the descriptors are compared with.

    Raises
    ------
    ValidationError
        If the descriptor row count differs from the keypoint count.
    """

    __slots__ = ('_keypoints', '_descriptors', '_distance_metric')

    def __init__(
        self,
        keypoints: Sequence[cv2.KeyPoint],
        descriptors: Optional[np.ndarray],
        distance_metric: DistanceMetric,
    ) -> None:
        keypoints = tuple(keypoints)
        descriptors = np.array(
            as_descriptor_matrix(descriptors, len(keypoints)), copy=True
        )
        descriptors.setflags(write=False)
        self._keypoints = keypoints
        self._descriptors = descriptors
        self._distance_metric = DistanceMetric(distance_metric)

    @property
    def keypoints(self) -> Tuple[cv2.KeyPoint, ...]:
        """Keypoints, row-aligned with ``descriptors``."""
        return self._keypoints

    @property
    def descriptors(self) -> np.ndarray:
        """Read-only descriptor matrix. Shape (N, D)."""
        return self._descriptors

    @property
    def distance_metric(self) -> DistanceMetric:
        """Descriptor distance metric."""
        return self._distance_metric

    def points(self) -> np.ndarray:
        """Keypoint locations as an (N, 2) float32 array of (x, y)."""
        if not self._keypoints:
            return np.empty((0, 2), dtype=np.float32)
        return np.array([kp.pt for kp in self._keypoints], dtype=np.float32)

    def __len__(self) -> int:
        return len(self._keypoints)

    def __repr__(self) -> str:
        return (
            f"Results(keypoints={len(self._keypoints)}, "
            f"descriptors={self._descriptors.shape}, "
            f"metric={self._distance_metric.value})"
        )


def extract_results(
    backend: FeatureBackend,
    image: np.ndarray,
    mask: Optional[np.ndarray] = None,
) -> Results:
    """Run a backend on an image and wrap its output as ``Results``.

    Parameters
    ----------
    backend : FeatureBackend
        Backend to run.
    image : np.ndarray
        Input image.
    mask : Optional[np.ndarray]
        Optional uint8 validity mask.

    Returns
    -------
    Results
        Immutable detection output tagged with the backend's metric.
    """
    keypoints, descriptors = backend.detect_and_compute(image, mask)
    return Results(keypoints, descriptors, backend.distance_metric)
