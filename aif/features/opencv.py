# -*- coding: utf-8 -*-
"""
OpenCV Feature Backends - Adapters and parameter records for cv2.Feature2D.

Wraps any ``cv2.Feature2D`` (SIFT, ORB, AKAZE, BRISK, SURF, ...) as a
``FeatureBackend`` and declares configuration records for the algorithms
the library supports out of the box. The distance metric of each backend
is read from the algorithm's own ``defaultNorm()``.

Dependencies
------------
opencv-python-headless
opencv-contrib-python-headless (optional, for SURF)

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
2026-10-16
"""

# Standard library
from typing import Annotated, List, Optional, Tuple

# Third-party
import numpy as np

try:
    import cv2
except ImportError:
    raise ImportError(
        "aif.features.opencv requires opencv-python-headless. "
        "Install with: pip install opencv-python-headless>=4.5"
    )

# AIF internal
from aif.exceptions import ConfigurationError, DependencyError
from aif.features.base import FeatureBackend, as_descriptor_matrix
from aif.features.params import Desc, FeatureParameters, Options, Range
from aif.vocabulary import DistanceMetric


class OpenCVBackend(FeatureBackend):
    """Feature backend backed by an OpenCV ``Feature2D`` instance.

    Parameters
    ----------
    feature : cv2.Feature2D
        Configured OpenCV detector/extractor.

    Raises
    ------
    ConfigurationError
        If the algorithm's default norm is neither L2 nor Hamming.

    Examples
    --------
    >>> backend = OpenCVBackend(cv2.SIFT_create())
    >>> keypoints, descriptors = backend.detect_and_compute(gray)
    """

    def __init__(self, feature: cv2.Feature2D) -> None:
        try:
            metric = DistanceMetric.from_cv_norm(feature.defaultNorm())
        except ValueError as e:
            raise ConfigurationError(
                f"{feature.getDefaultName()} uses an unsupported descriptor "
                f"norm: {e}"
            ) from e
        self._feature = feature
        self._metric = metric

    @property
    def feature(self) -> cv2.Feature2D:
        """The wrapped OpenCV algorithm."""
        return self._feature

    @property
    def distance_metric(self) -> DistanceMetric:
        return self._metric

    @property
    def descriptor_size(self) -> int:
        return self._feature.descriptorSize()

    @property
    def default_name(self) -> str:
        return self._feature.getDefaultName()

    def detect_and_compute(
        self,
        image: np.ndarray,
        mask: Optional[np.ndarray] = None,
        use_provided_keypoints: bool = False,
    ) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
        keypoints, descriptors = self._feature.detectAndCompute(
            image, mask, useProvidedKeypoints=use_provided_keypoints
        )
        keypoints = list(keypoints)
        return keypoints, as_descriptor_matrix(descriptors, len(keypoints))

    def __repr__(self) -> str:
        return f"OpenCVBackend({self.default_name}, {self._metric.value})"


# ---------------------------------------------------------------------
# Parameter records
# ---------------------------------------------------------------------

class AKAZEParameters(FeatureParameters):
    """AKAZE configuration. Defaults are the OpenCV library defaults."""

    descriptor_type: Annotated[int, Options(
        cv2.AKAZE_DESCRIPTOR_KAZE_UPRIGHT, cv2.AKAZE_DESCRIPTOR_KAZE,
        cv2.AKAZE_DESCRIPTOR_MLDB_UPRIGHT, cv2.AKAZE_DESCRIPTOR_MLDB,
    ), Desc('Descriptor type')] = cv2.AKAZE_DESCRIPTOR_MLDB
    descriptor_size: Annotated[int, Range(min=0), Desc('Descriptor size in bits, 0 for full')] = 0
    descriptor_channels: Annotated[int, Options(1, 2, 3), Desc('Descriptor channels')] = 3
    threshold: Annotated[float, Range(min=0.0), Desc('Detector response threshold')] = 0.001
    n_octaves: Annotated[int, Range(min=1), Desc('Maximum octave evolution')] = 4
    n_octave_layers: Annotated[int, Range(min=1), Desc('Sublevels per octave')] = 4
    diffusivity: Annotated[int, Options(
        cv2.KAZE_DIFF_PM_G1, cv2.KAZE_DIFF_PM_G2,
        cv2.KAZE_DIFF_WEICKERT, cv2.KAZE_DIFF_CHARBONNIER,
    ), Desc('Diffusivity type')] = cv2.KAZE_DIFF_PM_G2

    def create_backend(self) -> OpenCVBackend:
        return OpenCVBackend(cv2.AKAZE_create(
            self.descriptor_type, self.descriptor_size,
            self.descriptor_channels, self.threshold,
            self.n_octaves, self.n_octave_layers, self.diffusivity,
        ))


class BRISKParameters(FeatureParameters):
    """BRISK configuration."""

    threshold: Annotated[int, Range(min=0), Desc('AGAST detection threshold')] = 30
    n_octaves: Annotated[int, Range(min=0), Desc('Detection octaves')] = 3
    pattern_scale: Annotated[float, Range(min=0.0), Desc('Sampling pattern scale')] = 1.0

    def create_backend(self) -> OpenCVBackend:
        return OpenCVBackend(cv2.BRISK_create(
            self.threshold, self.n_octaves, self.pattern_scale
        ))


class ORBParameters(FeatureParameters):
    """ORB configuration."""

    nfeatures: Annotated[int, Range(min=1), Desc('Maximum number of features')] = 500
    scale_factor: Annotated[float, Range(min=1.0), Desc('Pyramid decimation ratio')] = 1.2
    nlevels: Annotated[int, Range(min=1), Desc('Pyramid levels')] = 8
    edge_threshold: Annotated[int, Range(min=0), Desc('Border without features')] = 31
    first_level: Annotated[int, Range(min=0), Desc('Level of the source image')] = 0
    wta_k: Annotated[int, Options(2, 3, 4), Desc('Points per BRIEF element')] = 2
    score_type: Annotated[int, Options(
        cv2.ORB_HARRIS_SCORE, cv2.ORB_FAST_SCORE,
    ), Desc('Keypoint ranking score')] = cv2.ORB_HARRIS_SCORE
    patch_size: Annotated[int, Range(min=2), Desc('BRIEF patch size')] = 31
    fast_threshold: Annotated[int, Range(min=0), Desc('FAST threshold')] = 20

    def create_backend(self) -> OpenCVBackend:
        return OpenCVBackend(cv2.ORB_create(
            self.nfeatures, self.scale_factor, self.nlevels,
            self.edge_threshold, self.first_level, self.wta_k,
            self.score_type, self.patch_size, self.fast_threshold,
        ))


class SIFTParameters(FeatureParameters):
    """SIFT configuration."""

    nfeatures: Annotated[int, Range(min=0), Desc('Features to retain, 0 for all')] = 0
    n_octave_layers: Annotated[int, Range(min=1), Desc('Layers per octave')] = 3
    contrast_threshold: Annotated[float, Range(min=0.0), Desc('Contrast threshold')] = 0.04
    edge_threshold: Annotated[float, Range(min=0.0), Desc('Edge response threshold')] = 10.0
    sigma: Annotated[float, Range(min=0.0), Desc('Gaussian sigma at octave 0')] = 1.6

    def create_backend(self) -> OpenCVBackend:
        return OpenCVBackend(cv2.SIFT_create(
            self.nfeatures, self.n_octave_layers, self.contrast_threshold,
            self.edge_threshold, self.sigma,
        ))


class SURFParameters(FeatureParameters):
    """SURF configuration. Needs OpenCV built with non-free contrib modules."""

    hessian_threshold: Annotated[float, Range(min=0.0), Desc('Hessian detector threshold')] = 100.0
    n_octaves: Annotated[int, Range(min=1), Desc('Pyramid octaves')] = 4
    n_octave_layers: Annotated[int, Range(min=1), Desc('Layers per octave')] = 3
    extended: Annotated[bool, Desc('Use 128-element descriptors')] = False
    upright: Annotated[bool, Desc('Skip orientation estimation')] = False

    def create_backend(self) -> OpenCVBackend:
        xfeatures2d = getattr(cv2, 'xfeatures2d', None)
        if xfeatures2d is None:
            raise DependencyError(
                "SURF requires opencv-contrib-python-headless built with "
                "non-free modules."
            )
        try:
            surf = xfeatures2d.SURF_create(
                self.hessian_threshold, self.n_octaves,
                self.n_octave_layers, self.extended, self.upright,
            )
        except cv2.error as e:
            raise DependencyError(
                f"SURF is not available in this OpenCV build: {e}"
            ) from e
        return OpenCVBackend(surf)
