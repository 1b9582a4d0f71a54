# -*- coding: utf-8 -*-
"""
Affine Warp - Simulate one viewpoint and map keypoints back.

Builds the forward affine map of an ``AffineSample`` for a given image
size, warps an image and its validity mask into the simulated view, and
maps keypoints detected in that view back to source coordinates.

Pixel order and map order differ. In pixels the source is rotated first
(linear interpolation, replicated borders, canvas sized to the rotated
bounding box) and the rotated result is then anti-aliased and shrunk
horizontally by ``1 / tilt`` (nearest neighbor). The map is the
composition of the same two steps, which is what keypoints are inverted
through.

Dependencies
------------
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
2026-10-15
"""

# Standard library
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

# Third-party
import cv2
import numpy as np

# AIF internal
from aif.affine.sampling import AffineSample
from aif.exceptions import ValidationError

#: Anti-aliasing blur is ``ANTIALIAS_SIGMA * sqrt(tilt**2 - 1)``.
ANTIALIAS_SIGMA = 0.8

#: Vertical blur sigma; the shrink is horizontal only.
VERTICAL_SIGMA = 0.01


@dataclass(frozen=True)
class AffineMap:
    """Forward affine map of one simulated viewpoint.

    Attributes
    ----------
    sample : AffineSample
        The viewpoint this map simulates.
    matrix : np.ndarray
        Full forward map, source (x, y) -> warped (x, y). Shape (2, 3).
    rotation : np.ndarray
        Rotation part only, including the offset that keeps the rotated
        bounding box at non-negative coordinates. Shape (2, 3).
    source_size : Tuple[int, int]
        Source image (width, height).
    rotated_size : Tuple[int, int]
        Canvas (width, height) after rotation, before the shrink.
    """

    sample: AffineSample
    matrix: np.ndarray
    rotation: np.ndarray
    source_size: Tuple[int, int]
    rotated_size: Tuple[int, int]

    @property
    def warped_size(self) -> Tuple[int, int]:
        """(width, height) of the warped image, as produced by ``cv2.resize``."""
        width, height = self.rotated_size
        if self.sample.tilt != 1.0:
            width = int(round(width / self.sample.tilt))
        return width, height


def _image_size(shape: Sequence[int]) -> Tuple[int, int]:
    if len(shape) not in (2, 3):
        raise ValidationError(
            f"Image must be 2D (rows, cols) or 3D (rows, cols, channels), "
            f"got shape {tuple(shape)}"
        )
    rows, cols = int(shape[0]), int(shape[1])
    if rows < 1 or cols < 1:
        raise ValidationError(f"Image must be non-empty, got shape {tuple(shape)}")
    return cols, rows


def build_forward_map(sample: AffineSample, image_shape: Sequence[int]) -> AffineMap:
    """Build the forward affine map of *sample* for an image shape.

    Rotation is about the origin by ``sample.phi`` degrees, translated so
    the rotated image's bounding box starts at (0, 0). A tilt other than 1
    then divides the first row of the map by the tilt.

    Parameters
    ----------
    sample : AffineSample
        Viewpoint to simulate.
    image_shape : Sequence[int]
        Source ``image.shape``.

    Returns
    -------
    AffineMap

    Raises
    ------
    ValidationError
        If the shape is not a non-empty 2D or 3D image shape, or the tilt
        is below 1.
    """
    if sample.tilt < 1.0:
        raise ValidationError(f"Tilt must be >= 1, got {sample.tilt}")
    width, height = _image_size(image_shape)

    rotation = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    rotated_size = (width, height)
    if sample.phi != 0.0:
        rotation = cv2.getRotationMatrix2D((0.0, 0.0), sample.phi, 1.0)
        corners = np.array(
            [[0, 0], [width, 0], [width, height], [0, height]],
            dtype=np.float64,
        )
        rotated = corners @ rotation[:, :2].T + rotation[:, 2]
        rotated = rotated.astype(np.float32).reshape(-1, 1, 2)
        x, y, w, h = cv2.boundingRect(rotated)
        rotation[0, 2] = -x
        rotation[1, 2] = -y
        rotated_size = (w, h)

    matrix = rotation.copy()
    if sample.tilt != 1.0:
        matrix[0, :] /= sample.tilt

    return AffineMap(
        sample=sample,
        matrix=matrix,
        rotation=rotation,
        source_size=(width, height),
        rotated_size=rotated_size,
    )


def apply_to_image(image: np.ndarray, affine_map: AffineMap) -> np.ndarray:
    """Render the simulated view of *image*.

    Parameters
    ----------
    image : np.ndarray
        Source image. Not modified.
    affine_map : AffineMap
        Map built for this image's shape.

    Returns
    -------
    np.ndarray
        Warped image of size ``affine_map.warped_size``.
    """
    sample = affine_map.sample
    warped = image.copy()
    if sample.phi != 0.0:
        warped = cv2.warpAffine(
            warped, affine_map.rotation, affine_map.rotated_size,
            flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE,
        )
    if sample.tilt != 1.0:
        # Band-limit before decimating the columns
        sigma = ANTIALIAS_SIGMA * math.sqrt(sample.tilt ** 2 - 1.0)
        warped = cv2.GaussianBlur(warped, (0, 0), sigma, sigmaY=VERTICAL_SIGMA)
        warped = cv2.resize(warped, (0, 0), fx=1.0 / sample.tilt, fy=1.0,
                            interpolation=cv2.INTER_NEAREST)
    return warped


def apply_to_mask(
    mask: Optional[np.ndarray],
    affine_map: AffineMap,
    size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """Warp a validity mask into the simulated view.

    Parameters
    ----------
    mask : Optional[np.ndarray]
        uint8 source mask. None means every source pixel is valid.
    affine_map : AffineMap
        Map built for the source image's shape.
    size : Optional[Tuple[int, int]]
        Output (width, height). Defaults to ``affine_map.warped_size``;
        pass the warped image's size to guarantee agreement with it.

    Returns
    -------
    np.ndarray
        uint8 mask. Pixels outside the warped source are 0.

    Raises
    ------
    ValidationError
        If *mask* does not match the source size.
    """
    if mask is None:
        width, height = affine_map.source_size
        mask = np.full((height, width), 255, dtype=np.uint8)
    elif _image_size(mask.shape) != affine_map.source_size:
        raise ValidationError(
            f"Mask shape {mask.shape[:2]} does not match image size "
            f"{affine_map.source_size[::-1]}"
        )
    if affine_map.sample.is_identity:
        return mask.copy()
    if size is None:
        size = affine_map.warped_size
    return cv2.warpAffine(mask, affine_map.matrix, size, flags=cv2.INTER_NEAREST)


def invert_keypoints(
    keypoints: List[cv2.KeyPoint],
    affine_map: AffineMap,
) -> List[cv2.KeyPoint]:
    """Map keypoint locations from the simulated view back to the source.

    Locations are rewritten in place; the list is returned for chaining.

    Parameters
    ----------
    keypoints : List[cv2.KeyPoint]
        Keypoints detected in the warped image.
    affine_map : AffineMap
        Map the image was warped with.

    Returns
    -------
    List[cv2.KeyPoint]
        The same keypoint objects, in source coordinates.

    Raises
    ------
    ValidationError
        If the map is not invertible.
    """
    linear = affine_map.matrix[:, :2]
    if abs(np.linalg.det(linear)) < 1e-12:
        raise ValidationError("Affine map is not invertible")
    if not keypoints:
        return keypoints

    inverse = cv2.invertAffineTransform(affine_map.matrix)
    points = np.array([kp.pt for kp in keypoints], dtype=np.float64)
    restored = points @ inverse[:, :2].T + inverse[:, 2]
    for kp, (x, y) in zip(keypoints, restored):
        kp.pt = (float(x), float(y))
    return keypoints
