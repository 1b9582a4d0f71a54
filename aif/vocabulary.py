# -*- coding: utf-8 -*-
"""
Vocabulary - Canonical enums for the AIF framework.

Defines the controlled vocabulary for descriptor distance metrics. Feature
backends declare one of these tags and the matcher uses it to pick its
nearest-neighbor index structure.

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
2026-10-12
"""

# Standard library
from enum import Enum

# Third-party
import cv2


class DistanceMetric(Enum):
    """Descriptor distance metric declared by a feature backend.

    ``L2`` is used by continuous (floating point) descriptors such as SIFT
    and SURF. ``HAMMING`` is used by bit-packed binary descriptors such as
    ORB, BRISK and the default AKAZE descriptor.
    """

    L2 = "L2"
    HAMMING = "HAMMING"

    @classmethod
    def from_cv_norm(cls, norm_type: int) -> 'DistanceMetric':
        """Map an OpenCV norm constant to a distance metric.

        Parameters
        ----------
        norm_type : int
            OpenCV norm constant, as returned by
            ``cv2.Feature2D.defaultNorm()``.

        Returns
        -------
        DistanceMetric

        Raises
        ------
        ValueError
            If the norm has no corresponding metric (e.g. ``NORM_L1``).
        """
        if norm_type == cv2.NORM_L2:
            return cls.L2
        if norm_type in (cv2.NORM_HAMMING, cv2.NORM_HAMMING2):
            return cls.HAMMING
        raise ValueError(f"Unrecognized OpenCV norm type: {norm_type}")

    @property
    def cv_norm(self) -> int:
        """OpenCV norm constant for this metric."""
        if self is DistanceMetric.L2:
            return cv2.NORM_L2
        return cv2.NORM_HAMMING
