# -*- coding: utf-8 -*-
"""
AIF - Affine Invariant Features.

Detects point features that survive broad affine viewpoint changes by
running an ordinary feature detector over a grid of simulated viewpoints,
and matches feature sets with a ratio test followed by RANSAC homography
verification, against one reference or many in parallel.

Dependencies
------------
numpy
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
2026-10-17
"""

__version__ = "0.1.0"
__author__ = "Duane Smalley"

from aif.exceptions import (
    AifError,
    ValidationError,
    ConfigurationError,
    DependencyError,
)
from aif.vocabulary import DistanceMetric
from aif.features import (
    FeatureBackend,
    Results,
    extract_results,
    OpenCVBackend,
    CombinedBackend,
    FeatureParameters,
    create_feature_parameters,
    default_parameters,
    load_parameters,
)
from aif.affine import (
    AffineSample,
    affine_sample_plan,
    AffineInvariantDetector,
    AIFParameters,
)
from aif.matching import ResultMatcher, parallel_match

__all__ = [
    'AifError',
    'ValidationError',
    'ConfigurationError',
    'DependencyError',
    'DistanceMetric',
    'FeatureBackend',
    'Results',
    'extract_results',
    'OpenCVBackend',
    'CombinedBackend',
    'FeatureParameters',
    'create_feature_parameters',
    'default_parameters',
    'load_parameters',
    'AffineSample',
    'affine_sample_plan',
    'AffineInvariantDetector',
    'AIFParameters',
    'ResultMatcher',
    'parallel_match',
]
