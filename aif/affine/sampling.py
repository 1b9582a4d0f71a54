# -*- coding: utf-8 -*-
"""
Affine Sample Plan - Simulated viewpoints for affine invariant detection.

An affine viewpoint change is approximated by a rotation followed by a
one-dimensional compression (tilt). The plan samples tilts geometrically,
``2 ** (0.5 * i)`` for ``i = 1..5``, plus the identity, and at each tilt
steps the rotation angle by ``72 / tilt`` degrees over ``[0, 180)``. The
higher the tilt the finer the angular step, which keeps neighboring
samples equally far apart on the affine group while bounding the plan to
a few dozen viewpoints.

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
2026-10-12
"""

# Standard library
from typing import NamedTuple, Tuple

#: Number of tilt levels above the identity.
NUM_TILT_LEVELS = 5

#: Angular step at tilt 1, in degrees. The step at tilt ``t`` is this / t.
BASE_ANGLE_STEP = 72.0


class AffineSample(NamedTuple):
    """One simulated viewpoint.

    Attributes
    ----------
    tilt : float
        Horizontal compression factor, ``>= 1``.
    phi : float
        Rotation angle in degrees, counter-clockwise, in ``[0, 180)``.
    """

    tilt: float
    phi: float

    @property
    def is_identity(self) -> bool:
        """Whether this sample leaves the image untouched."""
        return self.tilt == 1.0 and self.phi == 0.0


#: The untransformed viewpoint; always the first entry of the plan.
IDENTITY_SAMPLE = AffineSample(1.0, 0.0)


def affine_sample_plan() -> Tuple[AffineSample, ...]:
    """Ordered sample grid over tilt and rotation.

    The result is identical on every call. The identity comes first,
    followed by each tilt level in increasing order with its angles in
    increasing order.

    Returns
    -------
    Tuple[AffineSample, ...]
        The 43 samples of the plan.
    """
    samples = [IDENTITY_SAMPLE]
    for i in range(1, NUM_TILT_LEVELS + 1):
        tilt = 2.0 ** (0.5 * i)
        step = BASE_ANGLE_STEP / tilt
        phi = 0.0
        while phi < 180.0:
            samples.append(AffineSample(tilt, phi))
            phi += step
    return tuple(samples)
