# -*- coding: utf-8 -*-
"""
Affine Invariant Detector Tests.

Tests per-sample detection, the ordered merge of sample outputs, and the
``AffineInvariantDetector`` backend with fake and real OpenCV backends.

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
2026-10-15

Modified
--------
2026-10-17
"""

import logging
import threading

import cv2
import numpy as np
import pytest

from aif.affine.detector import (
    AffineInvariantDetector,
    SampleTask,
    detect_sample,
    merge_sample_outputs,
)
from aif.affine.sampling import IDENTITY_SAMPLE, AffineSample, affine_sample_plan
from aif.affine.warp import apply_to_image, build_forward_map
from aif.exceptions import ConfigurationError, ValidationError
from aif.features.base import FeatureBackend, empty_descriptors
from aif.features.opencv import OpenCVBackend
from aif.vocabulary import DistanceMetric


# ---------------------------------------------------------------------------
# Fake backends
# ---------------------------------------------------------------------------

class ShapeBackend(FeatureBackend):
    """One keypoint per image, described by the image (width, height)."""

    def detect_and_compute(self, image, mask=None, use_provided_keypoints=False):
        height, width = image.shape[:2]
        kp = cv2.KeyPoint(width / 2.0, height / 2.0, 4.0)
        return [kp], np.array([[width, height]], dtype=np.float32)

    @property
    def distance_metric(self):
        return DistanceMetric.L2

    @property
    def descriptor_size(self):
        return 2


class SourceOnlyBackend(FeatureBackend):
    """Finds two keypoints in an image of the given shape, nothing elsewhere."""

    def __init__(self, shape):
        self.shape = shape

    def detect_and_compute(self, image, mask=None, use_provided_keypoints=False):
        if image.shape != self.shape:
            return [], None
        keypoints = [cv2.KeyPoint(10.0, 20.0, 4.0), cv2.KeyPoint(30.0, 40.0, 4.0)]
        return keypoints, np.full((2, 8), 7, dtype=np.uint8)

    @property
    def distance_metric(self):
        return DistanceMetric.HAMMING


class EmptyBackend(FeatureBackend):
    def detect_and_compute(self, image, mask=None, use_provided_keypoints=False):
        return [], None

    @property
    def distance_metric(self):
        return DistanceMetric.L2


class MaskRecorder(FeatureBackend):
    """Records (image shape, mask shape, mask dtype) per call."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def detect_and_compute(self, image, mask=None, use_provided_keypoints=False):
        with self._lock:
            self.calls.append((image.shape[:2], mask.shape, mask.dtype))
        return [], None

    @property
    def distance_metric(self):
        return DistanceMetric.L2


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def image():
    rng = np.random.default_rng(5)
    return rng.integers(0, 256, size=(60, 80), dtype=np.uint8)


@pytest.fixture
def textured_image():
    """160x160 uint8 image with a grid of noisy bright squares."""
    rng = np.random.RandomState(42)
    image = rng.rand(160, 160) * 30
    for r in range(15, 145, 25):
        for c in range(15, 145, 25):
            image[r:r + 12, c:c + 12] = 200.0 + rng.rand(12, 12) * 50
    return image.astype(np.uint8)


# ---------------------------------------------------------------------------
# Per-sample detection
# ---------------------------------------------------------------------------

class TestDetectSample:
    """Test detection in one simulated view."""

    def test_identity_passes_through(self, image):
        keypoints, descriptors = detect_sample(
            image, None, IDENTITY_SAMPLE, ShapeBackend()
        )
        assert keypoints[0].pt == pytest.approx((40.0, 30.0))
        np.testing.assert_array_equal(descriptors, [[80, 60]])

    def test_backend_sees_warped_image(self, image):
        sample = AffineSample(2.0, 0.0)
        keypoints, descriptors = detect_sample(image, None, sample, ShapeBackend())
        np.testing.assert_array_equal(descriptors, [[40, 60]])
        # Center of the compressed view maps back to the source center
        assert keypoints[0].pt == pytest.approx((40.0, 30.0))

    def test_mask_matches_warped_image(self, image):
        recorder = MaskRecorder()
        for sample in affine_sample_plan():
            detect_sample(image, None, sample, recorder)
        for image_shape, mask_shape, dtype in recorder.calls:
            assert image_shape == mask_shape
            assert dtype == np.uint8

    def test_empty_detection(self, image):
        keypoints, descriptors = detect_sample(
            image, None, AffineSample(2.0, 36.0), EmptyBackend()
        )
        assert keypoints == []
        assert descriptors.shape == (0, 0)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def _task(image, keypoints, descriptors):
    task = SampleTask(image, None, IDENTITY_SAMPLE, EmptyBackend())
    task.keypoints = keypoints
    task.descriptors = descriptors
    return task


class TestMergeSampleOutputs:
    """Test ordered concatenation of per-sample outputs."""

    def test_concatenates_in_order(self, image):
        a = [cv2.KeyPoint(1.0, 1.0, 1.0)]
        b = [cv2.KeyPoint(2.0, 2.0, 1.0), cv2.KeyPoint(3.0, 3.0, 1.0)]
        tasks = [
            _task(image, a, np.zeros((1, 4), dtype=np.float32)),
            _task(image, [], empty_descriptors()),
            _task(image, b, np.ones((2, 4), dtype=np.float32)),
        ]
        keypoints, descriptors = merge_sample_outputs(tasks)
        assert [kp.pt for kp in keypoints] == [(1.0, 1.0), (2.0, 2.0), (3.0, 3.0)]
        np.testing.assert_array_equal(descriptors[:, 0], [0, 1, 1])

    def test_all_empty(self, image):
        tasks = [_task(image, [], empty_descriptors()) for _ in range(3)]
        keypoints, descriptors = merge_sample_outputs(tasks)
        assert keypoints == []
        assert descriptors.shape == (0, 0)
        assert descriptors.dtype == np.uint8

    def test_width_mismatch_raises(self, image):
        kp = [cv2.KeyPoint(1.0, 1.0, 1.0)]
        tasks = [
            _task(image, kp, np.zeros((1, 4), dtype=np.float32)),
            _task(image, kp, np.zeros((1, 5), dtype=np.float32)),
        ]
        with pytest.raises(ValidationError, match="Inconsistent"):
            merge_sample_outputs(tasks)

    def test_dtype_mismatch_raises(self, image):
        kp = [cv2.KeyPoint(1.0, 1.0, 1.0)]
        tasks = [
            _task(image, kp, np.zeros((1, 4), dtype=np.float32)),
            _task(image, kp, np.zeros((1, 4), dtype=np.uint8)),
        ]
        with pytest.raises(ValidationError):
            merge_sample_outputs(tasks)


# ---------------------------------------------------------------------------
# AffineInvariantDetector
# ---------------------------------------------------------------------------

class TestAffineInvariantDetector:
    """Test the affine invariant backend."""

    def test_one_row_per_sample_in_plan_order(self, image):
        detector = AffineInvariantDetector(ShapeBackend())
        keypoints, descriptors = detector.detect_and_compute(image)

        plan = affine_sample_plan()
        assert len(keypoints) == len(plan) == descriptors.shape[0]
        expected = []
        for sample in plan:
            warped = apply_to_image(image, build_forward_map(sample, image.shape))
            expected.append([warped.shape[1], warped.shape[0]])
        np.testing.assert_array_equal(descriptors, expected)

    def test_worker_count_does_not_change_output(self, image):
        serial = AffineInvariantDetector(ShapeBackend(), max_workers=1)
        threaded = AffineInvariantDetector(ShapeBackend(), max_workers=4, nstripes=5)
        kps_a, desc_a = serial.detect_and_compute(image)
        kps_b, desc_b = threaded.detect_and_compute(image)
        np.testing.assert_array_equal(desc_a, desc_b)
        assert [kp.pt for kp in kps_a] == [kp.pt for kp in kps_b]

    def test_samples_without_keypoints_contribute_nothing(self, image):
        detector = AffineInvariantDetector(SourceOnlyBackend(image.shape))
        keypoints, descriptors = detector.detect_and_compute(image)
        assert [kp.pt for kp in keypoints] == [(10.0, 20.0), (30.0, 40.0)]
        assert descriptors.shape == (2, 8)
        assert descriptors.dtype == np.uint8

    def test_nothing_detected(self, image):
        keypoints, descriptors = AffineInvariantDetector(
            EmptyBackend()
        ).detect_and_compute(image)
        assert keypoints == []
        assert descriptors.shape == (0, 0)

    def test_every_sample_gets_matching_mask(self, image):
        recorder = MaskRecorder()
        mask = np.full(image.shape, 255, dtype=np.uint8)
        AffineInvariantDetector(recorder).detect_and_compute(image, mask)
        assert len(recorder.calls) == len(affine_sample_plan())
        assert all(img == msk for img, msk, _ in recorder.calls)

    def test_inputs_not_modified(self, image):
        mask = np.zeros(image.shape, dtype=np.uint8)
        mask[10:50, 10:70] = 255
        image_copy, mask_copy = image.copy(), mask.copy()
        AffineInvariantDetector(ShapeBackend()).detect_and_compute(image, mask)
        np.testing.assert_array_equal(image, image_copy)
        np.testing.assert_array_equal(mask, mask_copy)

    def test_reports_backend_metric_and_size(self):
        detector = AffineInvariantDetector(ShapeBackend())
        assert detector.distance_metric is DistanceMetric.L2
        assert detector.descriptor_size == 2
        assert detector.default_name == "AffineInvariantFeature"

    def test_missing_backend_raises_on_use(self, image):
        detector = AffineInvariantDetector(None)
        assert detector.backend is None
        with pytest.raises(ConfigurationError):
            detector.detect_and_compute(image)
        with pytest.raises(ConfigurationError):
            detector.distance_metric

    def test_invalid_max_workers(self):
        with pytest.raises(ValidationError, match="max_workers"):
            AffineInvariantDetector(ShapeBackend(), max_workers=0)

    def test_invalid_image_raises(self):
        with pytest.raises(ValidationError, match="2D or 3D"):
            AffineInvariantDetector(ShapeBackend()).detect_and_compute(
                np.zeros(10, dtype=np.uint8)
            )

    def test_mask_shape_mismatch_raises(self, image):
        with pytest.raises(ValidationError, match="Mask shape"):
            AffineInvariantDetector(ShapeBackend()).detect_and_compute(
                image, np.zeros((5, 5), dtype=np.uint8)
            )

    def test_provided_keypoints_flag_warns(self, image, caplog):
        detector = AffineInvariantDetector(EmptyBackend())
        with caplog.at_level(logging.WARNING, logger="aif.affine.detector"):
            detector.detect_and_compute(image, use_provided_keypoints=True)
        assert "use_provided_keypoints" in caplog.text

    def test_backend_exception_propagates(self, image):
        class Broken(EmptyBackend):
            def detect_and_compute(self, image, mask=None, use_provided_keypoints=False):
                raise RuntimeError("backend failed")

        with pytest.raises(RuntimeError, match="backend failed"):
            AffineInvariantDetector(Broken()).detect_and_compute(image)


class TestAffineInvariantSIFT:
    """End-to-end detection with a real OpenCV backend."""

    def test_more_features_than_plain_sift(self, textured_image):
        backend = OpenCVBackend(cv2.SIFT_create())
        plain, _ = backend.detect_and_compute(textured_image)
        keypoints, descriptors = AffineInvariantDetector(
            backend
        ).detect_and_compute(textured_image)

        assert len(keypoints) > len(plain)
        assert descriptors.shape == (len(keypoints), 128)
        assert descriptors.dtype == np.float32

    def test_keypoints_inside_source(self, textured_image):
        backend = OpenCVBackend(cv2.SIFT_create())
        keypoints, _ = AffineInvariantDetector(backend).detect_and_compute(
            textured_image
        )
        points = np.array([kp.pt for kp in keypoints])
        margin = 8.0
        assert points[:, 0].min() >= -margin
        assert points[:, 1].min() >= -margin
        assert points[:, 0].max() <= 160 + margin
        assert points[:, 1].max() <= 160 + margin
