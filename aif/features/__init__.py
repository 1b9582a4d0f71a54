# -*- coding: utf-8 -*-
"""
Features Module - Point-feature backends and their configuration.

Key Classes
-----------
- FeatureBackend: Abstract detector/descriptor contract
- Results: Immutable keypoints + descriptors + distance metric bundle
- OpenCVBackend: Adapter over any ``cv2.Feature2D``
- CombinedBackend: Several backends presented as one
- FeatureParameters: Base of the declarative configuration records
- AKAZEParameters, BRISKParameters, ORBParameters, SIFTParameters,
  SURFParameters: Records for the built-in OpenCV algorithms

Usage
-----
    >>> from aif.features import SIFTParameters, extract_results
    >>> backend = SIFTParameters(nfeatures=2000).create_backend()
    >>> results = extract_results(backend, gray)

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

from aif.features.base import (
    FeatureBackend,
    Results,
    empty_descriptors,
    extract_results,
)
from aif.features.params import (
    FeatureParameters,
    ParamSpec,
    Range,
    Options,
    Desc,
    create_feature_parameters,
    default_parameters,
    load_parameters,
    registered_parameter_types,
)
from aif.features.opencv import (
    OpenCVBackend,
    AKAZEParameters,
    BRISKParameters,
    ORBParameters,
    SIFTParameters,
    SURFParameters,
)
from aif.features.combined import CombinedBackend

__all__ = [
    'FeatureBackend',
    'Results',
    'empty_descriptors',
    'extract_results',
    'FeatureParameters',
    'ParamSpec',
    'Range',
    'Options',
    'Desc',
    'create_feature_parameters',
    'default_parameters',
    'load_parameters',
    'registered_parameter_types',
    'OpenCVBackend',
    'AKAZEParameters',
    'BRISKParameters',
    'ORBParameters',
    'SIFTParameters',
    'SURFParameters',
    'CombinedBackend',
]
