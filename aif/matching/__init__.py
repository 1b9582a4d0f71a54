# -*- coding: utf-8 -*-
"""
Matching Module - Ratio-tested, RANSAC-verified feature matching.

Key Classes
-----------
- ResultMatcher: FLANN index over one reference, match + verify
- parallel_match: One query against many references concurrently

Usage
-----
    >>> from aif.matching import ResultMatcher, parallel_match
    >>> matchers = [ResultMatcher(ref) for ref in references]
    >>> transforms, matches = parallel_match(matchers, query)

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
2026-10-14
"""

from aif.matching.matcher import ResultMatcher, identity_transform, ratio_filter
from aif.matching.parallel import parallel_match

__all__ = [
    'ResultMatcher',
    'identity_transform',
    'ratio_filter',
    'parallel_match',
]
