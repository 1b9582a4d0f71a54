# -*- coding: utf-8 -*-
"""
Combined Feature Backend - Several backends presented as one.

Runs every child backend on the same image and mask, concatenates their
keypoints child by child, and lays their descriptors out block-diagonally:
rows from child ``k`` occupy child ``k``'s column band and are zero in the
others. The combined row width is the sum of the child widths, so every
row is comparable with every other under the shared metric. A child that
finds nothing in an image still reserves its declared ``descriptor_size``
columns, so the width is stable across images.

Children must agree on the distance metric and on the descriptor element
type; mixed L2/Hamming combinations are rejected.

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
2026-10-16
"""

# Standard library
import logging
from typing import List, Optional, Sequence, Tuple

# Third-party
import cv2
import numpy as np

# AIF internal
from aif.exceptions import ConfigurationError
from aif.features.base import FeatureBackend, as_descriptor_matrix, empty_descriptors
from aif.vocabulary import DistanceMetric

logger = logging.getLogger(__name__)


class CombinedBackend(FeatureBackend):
    """Composite of one or more feature backends sharing a distance metric.

    Parameters
    ----------
    backends : Sequence[FeatureBackend]
        Child backends, in output order.

    Raises
    ------
    ConfigurationError
        If no backend is given, a child is None, or the children declare
        different distance metrics.
    """

    def __init__(self, backends: Sequence[FeatureBackend]) -> None:
        backends = list(backends)
        if not backends:
            raise ConfigurationError("CombinedBackend requires at least one backend")
        if any(b is None for b in backends):
            raise ConfigurationError("CombinedBackend received an unconfigured backend")
        metrics = {b.distance_metric for b in backends}
        if len(metrics) != 1:
            raise ConfigurationError(
                f"Combined backends must share one distance metric, got "
                f"{sorted(m.value for m in metrics)}"
            )
        self._backends = backends
        self._metric = metrics.pop()

    @property
    def backends(self) -> List[FeatureBackend]:
        """Shallow copy of the child backend list."""
        return list(self._backends)

    @property
    def distance_metric(self) -> DistanceMetric:
        return self._metric

    @property
    def descriptor_size(self) -> Optional[int]:
        sizes = [b.descriptor_size for b in self._backends]
        if any(s is None for s in sizes):
            return None
        return sum(sizes)

    @property
    def default_name(self) -> str:
        return '+'.join(b.default_name for b in self._backends)

    def detect_and_compute(
        self,
        image: np.ndarray,
        mask: Optional[np.ndarray] = None,
        use_provided_keypoints: bool = False,
    ) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
        outputs = []
        for backend in self._backends:
            kps, desc = backend.detect_and_compute(image, mask, use_provided_keypoints)
            outputs.append((list(kps), as_descriptor_matrix(desc, len(kps))))

        keypoints: List[cv2.KeyPoint] = []
        for kps, _ in outputs:
            keypoints.extend(kps)
        if not keypoints:
            return [], empty_descriptors()

        widths = [
            desc.shape[1] if desc.shape[0] else (backend.descriptor_size or 0)
            for backend, (_, desc) in zip(self._backends, outputs)
        ]
        dtypes = {desc.dtype for _, desc in outputs if desc.shape[0]}
        if len(dtypes) != 1:
            raise ConfigurationError(
                f"Combined backends produced mixed descriptor types: "
                f"{sorted(str(d) for d in dtypes)}"
            )

        descriptors = np.zeros((len(keypoints), sum(widths)), dtype=dtypes.pop())
        row = col = 0
        for (_, desc), width in zip(outputs, widths):
            rows = desc.shape[0]
            if rows:
                descriptors[row:row + rows, col:col + width] = desc
            row += rows
            col += width
        logger.debug("Combined %d backends: %d keypoints, width %d",
                     len(self._backends), len(keypoints), descriptors.shape[1])
        return keypoints, descriptors

    def __repr__(self) -> str:
        return f"CombinedBackend({self.default_name})"
