# -*- coding: utf-8 -*-
"""
AIF Exception Hierarchy - Domain-specific exceptions for AIF operations.

Provides a small exception hierarchy that lets callers catch AIF-specific
errors distinctly from Python built-in exceptions. All AIF exceptions
subclass both ``AifError`` and the appropriate built-in exception so that
existing ``except ValueError`` style handlers keep working.

Homography estimation failures are deliberately absent from this module:
they are an expected outcome of matching and resolve to an identity
transform with no matches rather than an exception.

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


class AifError(Exception):
    """Base exception for all AIF errors."""


class ValidationError(AifError, ValueError):
    """Invalid input data or parameters.

    Raised for shape mismatches, out-of-range parameter values, empty
    reference descriptor sets, and non-invertible affine maps.
    """


class ConfigurationError(AifError, RuntimeError):
    """Missing or unusable feature configuration.

    Raised when no feature backend is configured, when a backend reports a
    distance metric the matcher does not recognize, when a nearest-neighbor
    index cannot be built, or when combined backends are incompatible.
    Configuration errors are fatal and never retried.
    """


class DependencyError(AifError, ImportError):
    """An OpenCV algorithm is unavailable in the installed build.

    Raised, for example, when SURF is requested but OpenCV was built
    without the non-free contrib modules.
    """
