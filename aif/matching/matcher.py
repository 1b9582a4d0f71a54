# -*- coding: utf-8 -*-
"""
Result Matcher - Ratio-tested, homography-verified descriptor matching.

A ``ResultMatcher`` owns a FLANN index over one reference ``Results``. The
index type follows the reference's distance metric: randomized KD-trees
for L2 descriptors and locality-sensitive hashing for binary descriptors.

Matching a query keeps a query row only when its nearest reference row is
clearly closer than the second nearest (Lowe's ratio test), then fits a
homography with RANSAC and keeps the inliers. When RANSAC finds no model
the query is reported as unregistered: identity transform, no matches.

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
2026-10-14

Modified
--------
2026-10-17
"""

# Standard library
import logging
from typing import Any, Dict, List, Sequence, Tuple

# Third-party
import numpy as np

try:
    import cv2
except ImportError:
    raise ImportError(
        "ResultMatcher requires opencv-python-headless. "
        "Install with: pip install opencv-python-headless>=4.5"
    )

# AIF internal
from aif.exceptions import ConfigurationError, ValidationError
from aif.features.base import Results
from aif.vocabulary import DistanceMetric

logger = logging.getLogger(__name__)

# FLANN algorithm identifiers (flann/defines.h)
FLANN_INDEX_KDTREE = 1
FLANN_INDEX_LSH = 6

#: Minimum correspondences for a homography fit.
MIN_HOMOGRAPHY_MATCHES = 4


def identity_transform() -> np.ndarray:
    """3x3 identity homography used when no registration is found."""
    return np.eye(3, dtype=np.float64)


def ratio_filter(
    knn_matches: Sequence[Sequence[cv2.DMatch]],
    ratio: float = 0.75,
) -> List[cv2.DMatch]:
    """Keep nearest matches that are unambiguous against the runner-up.

    A query row survives when it has at least two neighbors and its nearest
    distance is not greater than ``ratio`` times the second-nearest one.
    A row exactly at the ratio is kept.

    Parameters
    ----------
    knn_matches : Sequence[Sequence[cv2.DMatch]]
        Per query row, neighbors sorted by increasing distance.
    ratio : float
        Ratio threshold. Default 0.75.

    Returns
    -------
    List[cv2.DMatch]
        Surviving nearest matches, in query order.
    """
    unique = []
    for neighbors in knn_matches:
        if len(neighbors) < 2:
            continue
        if neighbors[0].distance > ratio * neighbors[1].distance:
            continue
        unique.append(neighbors[0])
    return unique


def _index_params(metric: DistanceMetric) -> Dict[str, Any]:
    if metric is DistanceMetric.L2:
        return dict(algorithm=FLANN_INDEX_KDTREE, trees=4)
    if metric is DistanceMetric.HAMMING:
        return dict(algorithm=FLANN_INDEX_LSH, table_number=6,
                    key_size=12, multi_probe_level=1)
    raise ConfigurationError(f"Unrecognized distance metric: {metric!r}")


def _as_index_input(descriptors: np.ndarray, metric: DistanceMetric) -> np.ndarray:
    """FLANN wants float32 rows for KD-trees and uint8 rows for LSH."""
    if metric is DistanceMetric.L2:
        return np.ascontiguousarray(descriptors, dtype=np.float32)
    if descriptors.dtype != np.uint8:
        raise ValidationError(
            f"Hamming descriptors must be uint8, got {descriptors.dtype}"
        )
    return np.ascontiguousarray(descriptors)


class ResultMatcher:
    """Matches query ``Results`` against one fixed reference.

    The index is built once at construction and only read afterwards, so
    one matcher can serve concurrent ``match`` calls.

    Parameters
    ----------
    reference : Results
        Reference keypoints and descriptors. Shared, never modified.
    ratio : float
        Ratio-test threshold. Default 0.75.
    ransac_threshold : float
        RANSAC reprojection threshold in pixels. Default 5.0.

    Raises
    ------
    ConfigurationError
        If the reference is missing, its metric is unrecognized, or the
        FLANN index cannot be built.
    ValidationError
        If the reference has no descriptors or parameters are out of range.

    Examples
    --------
    >>> matcher = ResultMatcher(reference_results)
    >>> transform, matches = matcher.match(query_results)
    """

    def __init__(
        self,
        reference: Results,
        ratio: float = 0.75,
        ransac_threshold: float = 5.0,
    ) -> None:
        if reference is None:
            raise ConfigurationError("ResultMatcher requires reference results")
        if not 0.0 < ratio <= 1.0:
            raise ValidationError(f"ratio must be in (0, 1], got {ratio}")
        if ransac_threshold <= 0.0:
            raise ValidationError(
                f"ransac_threshold must be positive, got {ransac_threshold}"
            )
        if len(reference) == 0:
            raise ValidationError("Reference results contain no descriptors")

        metric = reference.distance_metric
        index_params = _index_params(metric)
        try:
            matcher = cv2.FlannBasedMatcher(index_params, dict())
            matcher.add([_as_index_input(reference.descriptors, metric)])
            matcher.train()
        except cv2.error as e:
            raise ConfigurationError(
                f"Failed to build {metric.value} descriptor index: {e}"
            ) from e

        self._reference = reference
        self._ratio = ratio
        self._ransac_threshold = ransac_threshold
        self._matcher = matcher
        logger.debug("Built %s index over %d reference descriptors",
                     metric.value, len(reference))

    @property
    def reference(self) -> Results:
        """The reference results this matcher indexes."""
        return self._reference

    def match(self, query: Results) -> Tuple[np.ndarray, List[cv2.DMatch]]:
        """Match a query against the reference and verify geometrically.

        Parameters
        ----------
        query : Results
            Query keypoints and descriptors. Not modified.

        Returns
        -------
        Tuple[np.ndarray, List[cv2.DMatch]]
            3x3 homography mapping query (x, y) to reference (x, y), and
            the inlier matches (``queryIdx`` into the query, ``trainIdx``
            into the reference) in query order. With fewer than four
            ratio-test survivors, or when RANSAC finds no model, the
            transform is the identity and the list is empty.

        Raises
        ------
        ValidationError
            If the query's metric or descriptor width differs from the
            reference's.
        """
        transform = identity_transform()
        if len(query) == 0:
            return transform, []

        metric = self._reference.distance_metric
        if query.distance_metric is not metric:
            raise ValidationError(
                f"Query metric {query.distance_metric.value} does not match "
                f"reference metric {metric.value}"
            )
        if query.descriptors.shape[1] != self._reference.descriptors.shape[1]:
            raise ValidationError(
                f"Query descriptor width {query.descriptors.shape[1]} does not "
                f"match reference width {self._reference.descriptors.shape[1]}"
            )
        if len(self._reference) < 2:
            # No query row can have a runner-up neighbor
            logger.debug("Reference has %d descriptor; no ratio-test survivors",
                         len(self._reference))
            return transform, []

        knn_matches = self._matcher.knnMatch(
            _as_index_input(query.descriptors, metric), k=2
        )
        unique = ratio_filter(knn_matches, self._ratio)
        if len(unique) < MIN_HOMOGRAPHY_MATCHES:
            return transform, []

        query_points = np.float32(
            [query.keypoints[m.queryIdx].pt for m in unique]
        ).reshape(-1, 1, 2)
        reference_points = np.float32(
            [self._reference.keypoints[m.trainIdx].pt for m in unique]
        ).reshape(-1, 1, 2)

        try:
            homography, inliers = cv2.findHomography(
                query_points, reference_points,
                cv2.RANSAC, self._ransac_threshold,
            )
        except cv2.error as e:
            logger.info("Homography estimation failed and was handled: %s", e)
            homography, inliers = None, None
        if homography is None or inliers is None:
            logger.info("No homography found for %d candidate matches; "
                        "treating query as unregistered", len(unique))
            return transform, []

        inliers = inliers.ravel().astype(bool)
        matches = [m for m, keep in zip(unique, inliers) if keep]
        logger.debug("Matched %d of %d ratio-test survivors",
                     len(matches), len(unique))
        return homography, matches

    def __repr__(self) -> str:
        return (
            f"ResultMatcher(reference={len(self._reference)}, "
            f"metric={self._reference.distance_metric.value})"
        )
