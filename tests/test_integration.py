# -*- coding: utf-8 -*-
"""
End-to-end Tests.

Detects affine invariant SIFT features in a textured image and in an
obliquely warped copy of it, then recovers the warp by matching, both
directly and through the parallel multi-reference matcher.

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
2026-10-16

Modified
--------
2026-10-17
"""

import cv2
import numpy as np
import pytest

import aif
from aif import (
    AIFParameters,
    ResultMatcher,
    extract_results,
    load_parameters,
    parallel_match,
)
from aif.features.opencv import SIFTParameters


SIZE = 240


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def scene():
    """Smooth random texture with some sharp-edged patches."""
    rng = np.random.RandomState(2026)
    noise = rng.rand(SIZE, SIZE).astype(np.float32)
    texture = cv2.GaussianBlur(noise, (0, 0), 2.5)
    texture = (texture - texture.min()) / (texture.max() - texture.min()) * 200
    for _ in range(25):
        r, c = rng.randint(10, SIZE - 30, size=2)
        h, w = rng.randint(6, 20, size=2)
        texture[r:r + h, c:c + w] = rng.randint(0, 256)
    return texture.astype(np.uint8)


@pytest.fixture(scope="module")
def view_transform():
    """Oblique view: rotation by 20 degrees with 0.8 horizontal shrink."""
    center = (SIZE / 2.0, SIZE / 2.0)
    rotation = np.vstack([cv2.getRotationMatrix2D(center, 20.0, 1.0), [0, 0, 1]])
    shrink = np.array([[0.8, 0.0, 0.1 * SIZE], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    return shrink @ rotation


@pytest.fixture(scope="module")
def view(scene, view_transform):
    """Warped scene and its validity mask."""
    matrix = view_transform[:2]
    image = cv2.warpAffine(scene, matrix, (SIZE, SIZE), flags=cv2.INTER_LINEAR)
    mask = cv2.warpAffine(np.full(scene.shape, 255, dtype=np.uint8), matrix,
                          (SIZE, SIZE), flags=cv2.INTER_NEAREST)
    mask = cv2.erode(mask, np.ones((5, 5), dtype=np.uint8))
    return image, mask


@pytest.fixture(scope="module")
def detector():
    return AIFParameters([SIFTParameters()]).create_backend()


@pytest.fixture(scope="module")
def reference(detector, scene):
    return extract_results(detector, scene)


@pytest.fixture(scope="module")
def query(detector, view):
    image, mask = view
    return extract_results(detector, image, mask)


def _apply(M, points):
    mapped = np.hstack([points, np.ones((len(points), 1))]) @ M.T
    return mapped[:, :2] / mapped[:, 2:3]


def _reprojection_error(H, truth):
    """Pixel error of H, mapping view to scene, on a scene grid."""
    grid = np.float64([[x, y] for x in range(60, 181, 30) for y in range(60, 181, 30)])
    view_points = _apply(truth, grid)
    return np.hypot(*(_apply(H, view_points) - grid).T)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestEndToEnd:
    """Detect, match, and verify the recovered view transform."""

    def test_detection_produces_features(self, reference, query):
        assert len(reference) > 100
        assert len(query) > 100
        assert reference.descriptors.shape[1] == 128

    def test_recovers_view_transform(self, reference, query, view_transform):
        transform, matches = ResultMatcher(reference).match(query)
        assert len(matches) >= 12
        # transform maps query (view) coordinates to reference (scene)
        errors = _reprojection_error(transform, view_transform)
        assert np.median(errors) < 3.0

    def test_inliers_agree_with_truth(self, reference, query, view_transform):
        _, matches = ResultMatcher(reference).match(query)
        query_points = query.points()[[m.queryIdx for m in matches]].astype(np.float64)
        ref_points = reference.points()[[m.trainIdx for m in matches]].astype(np.float64)
        mapped = np.hstack([ref_points, np.ones((len(ref_points), 1))]) @ view_transform.T
        errors = np.hypot(*(mapped[:, :2] - query_points).T)
        assert np.median(errors) < 3.0

    def test_parallel_selects_true_reference(self, reference, query, detector):
        rng = np.random.RandomState(8)
        decoy_image = cv2.GaussianBlur(
            (rng.rand(SIZE, SIZE) * 255).astype(np.uint8), (0, 0), 2.0
        )
        decoy = extract_results(detector, decoy_image)
        transforms, matches = parallel_match(
            [ResultMatcher(decoy), ResultMatcher(reference)], query
        )
        assert len(matches[1]) > len(matches[0])
        assert len(matches[1]) >= 12

    def test_configuration_round_trip(self):
        params = AIFParameters([SIFTParameters(nfeatures=400)])
        loaded = load_parameters({'AIFParameters': params.to_dict()})
        detector = loaded.create_backend()
        assert detector.default_name == "AffineInvariantFeature"
        assert loaded.children[0].nfeatures == 400
        assert detector.backend.descriptor_size == 128

    def test_package_exports(self):
        assert aif.__version__ == "0.1.0"
        assert len(aif.affine_sample_plan()) == 43
