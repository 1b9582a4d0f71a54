# -*- coding: utf-8 -*-
"""
AIF Parameters - Backend factory for the affine invariant detector.

``AIFParameters`` is an ordered list of child parameter records. Creating
its backend yields an ``AffineInvariantDetector`` around the first child's
backend, or around a ``CombinedBackend`` of the first two children when
more than one is configured.

Records round-trip through plain Python structures::

    >>> params = load_parameters({'AIFParameters': [
    ...     {'SIFTParameters': {'nfeatures': 1000}},
    ... ]})
    >>> detector = params.create_backend()

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
2026-10-14

Modified
--------
2026-10-17
"""

# Standard library
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

# AIF internal
from aif.affine.detector import AffineInvariantDetector
from aif.exceptions import ValidationError
from aif.features.combined import CombinedBackend
from aif.features.params import FeatureParameters, load_parameters

logger = logging.getLogger(__name__)

#: Children beyond this count are ignored by ``create_backend``.
MAX_COMBINED_CHILDREN = 2


class AIFParameters(FeatureParameters):
    """Configuration of an affine invariant detector.

    Parameters
    ----------
    children : Iterable[Optional[FeatureParameters]], optional
        Child records in order. A None child configures no backend.
    """

    def __init__(
        self,
        children: Optional[Iterable[Optional[FeatureParameters]]] = None,
    ) -> None:
        self.children: List[Optional[FeatureParameters]] = list(children or [])

    def create_backend(self) -> Optional[AffineInvariantDetector]:
        """Instantiate the configured detector.

        Returns
        -------
        Optional[AffineInvariantDetector]
            None when no child is configured. A None child produces a
            detector without a backend, which fails when used.
        """
        if not self.children:
            return None
        if len(self.children) > MAX_COMBINED_CHILDREN:
            logger.warning(
                "AIFParameters has %d children; only the first %d are used",
                len(self.children), MAX_COMBINED_CHILDREN,
            )

        backends = [child.create_backend() if child is not None else None
                    for child in self.children[:MAX_COMBINED_CHILDREN]]
        if len(backends) == 1:
            return AffineInvariantDetector(backends[0])
        if any(b is None for b in backends):
            return AffineInvariantDetector(None)
        return AffineInvariantDetector(CombinedBackend(backends))

    def to_dict(self) -> List[Dict[str, Any]]:
        """Children as a list of ``{type_name: fields}`` entries."""
        return [{child.default_name: child.to_dict()}
                for child in self.children if child is not None]

    def read(self, fields: Iterable[Mapping[str, Any]]) -> None:
        """Replace the children from ``{type_name: fields}`` entries.

        Entries naming an unknown type are skipped.
        """
        if isinstance(fields, Mapping):
            raise ValidationError(
                "AIFParameters expects a list of {type_name: fields} entries"
            )
        self.children = []
        for entry in fields:
            child = load_parameters(entry)
            if child is not None:
                self.children.append(child)

    def __repr__(self) -> str:
        return f"AIFParameters({self.children!r})"
