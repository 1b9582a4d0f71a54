# -*- coding: utf-8 -*-
"""
Affine Module - Viewpoint simulation and affine invariant detection.

Key Classes
-----------
- AffineSample: One (tilt, rotation) viewpoint
- AffineMap: Forward map of a viewpoint for a given image size
- AffineInvariantDetector: Parallel per-viewpoint detection and merge
- AIFParameters: Factory record for the detector

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
2026-10-17
"""

from aif.affine.sampling import AffineSample, IDENTITY_SAMPLE, affine_sample_plan
from aif.affine.warp import (
    AffineMap,
    apply_to_image,
    apply_to_mask,
    build_forward_map,
    invert_keypoints,
)
from aif.affine.detector import AffineInvariantDetector, detect_sample
from aif.affine.parameters import AIFParameters

__all__ = [
    'AffineSample',
    'IDENTITY_SAMPLE',
    'affine_sample_plan',
    'AffineMap',
    'apply_to_image',
    'apply_to_mask',
    'build_forward_map',
    'invert_keypoints',
    'AffineInvariantDetector',
    'detect_sample',
    'AIFParameters',
]
