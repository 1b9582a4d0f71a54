# -*- coding: utf-8 -*-
"""
Feature Parameters - Declarative backend configuration records.

Provides constraint marker types (``Range``, ``Options``, ``Desc``) for use
inside ``typing.Annotated`` annotations, the ``ParamSpec`` introspection
class, and the ``FeatureParameters`` base from which every backend
configuration record derives.

Declaring a record::

    from typing import Annotated
    from aif.features.params import FeatureParameters, Range, Desc

    class MyParameters(FeatureParameters):
        threshold: Annotated[int, Range(min=0), Desc('Detection threshold')] = 30

        def create_backend(self):
            ...

Subclasses are registered by class name at definition time so that a
record can be rebuilt from its name alone (``create_feature_parameters``)
or from a ``{name: fields}`` mapping (``load_parameters``). Defaults live
on the class as plain constants; there is no shared default instance.

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
2026-10-16
"""

# Standard library
import inspect
import logging
from abc import ABC, abstractmethod
from typing import (
    Annotated,
    Any,
    Dict,
    Mapping,
    Optional,
    Tuple,
    Type,
    Union,
    get_origin,
    get_type_hints,
    TYPE_CHECKING,
)

# AIF internal
from aif.exceptions import ValidationError

if TYPE_CHECKING:
    from aif.features.base import FeatureBackend

logger = logging.getLogger(__name__)


# =====================================================================
# Constraint marker types  (used inside Annotated[...])
# =====================================================================

class ParamMeta:
    """Base marker for parameter metadata in ``Annotated`` types."""


class Range(ParamMeta):
    """Inclusive numeric range constraint.

    Parameters
    ----------
    min : int or float, optional
        Minimum allowed value (inclusive).
    max : int or float, optional
        Maximum allowed value (inclusive).
    """

    __slots__ = ('min', 'max')

    def __init__(
        self,
        min: Optional[Union[int, float]] = None,
        max: Optional[Union[int, float]] = None,
    ) -> None:
        self.min = min
        self.max = max

    def __repr__(self) -> str:
        return f"Range(min={self.min!r}, max={self.max!r})"


class Options(ParamMeta):
    """Discrete choice constraint."""

    __slots__ = ('choices',)

    def __init__(self, *choices: Any) -> None:
        if not choices:
            raise ValueError("Options requires at least one choice")
        self.choices = choices

    def __repr__(self) -> str:
        return f"Options{self.choices!r}"


class Desc(ParamMeta):
    """Human-readable parameter description."""

    __slots__ = ('text',)

    def __init__(self, text: str) -> None:
        self.text = text

    def __repr__(self) -> str:
        return f"Desc({self.text!r})"


# =====================================================================
# ParamSpec
# =====================================================================

class ParamSpec:
    """Resolved specification for a single backend parameter.

    Attributes
    ----------
    name : str
        Field name, also the key used by ``to_dict``.
    param_type : type
        Expected Python type.
    default : Any
        Class-level default value.
    description : str
        Human-readable description.
    min_value, max_value : int, float, or None
        Inclusive bounds (from ``Range``).
    choices : tuple or None
        Allowed values (from ``Options``).
    """

    __slots__ = (
        'name', 'param_type', 'default', 'description',
        'min_value', 'max_value', 'choices',
    )

    def __init__(
        self,
        name: str,
        param_type: type,
        default: Any,
        description: str = '',
        min_value: Optional[Union[int, float]] = None,
        max_value: Optional[Union[int, float]] = None,
        choices: Optional[Tuple] = None,
    ) -> None:
        self.name = name
        self.param_type = param_type
        self.default = default
        self.description = description
        self.min_value = min_value
        self.max_value = max_value
        self.choices = choices

    def validate(self, value: Any) -> None:
        """Validate *value* against this spec's type and constraints.

        ``int`` is accepted where ``float`` is declared; ``bool`` is never
        accepted for numeric fields.

        Raises
        ------
        TypeError
            If *value* has the wrong type.
        ValidationError
            If *value* violates range or choices constraints.
        """
        if self.param_type in (int, float) and isinstance(value, bool):
            raise TypeError(
                f"Parameter '{self.name}' must be "
                f"{self.param_type.__name__}, got bool"
            )
        accepted = (int, float) if self.param_type is float else self.param_type
        if not isinstance(value, accepted):
            raise TypeError(
                f"Parameter '{self.name}' must be "
                f"{self.param_type.__name__}, got {type(value).__name__}"
            )
        if self.min_value is not None and value < self.min_value:
            raise ValidationError(
                f"Parameter '{self.name}' value {value!r} "
                f"is below minimum {self.min_value!r}"
            )
        if self.max_value is not None and value > self.max_value:
            raise ValidationError(
                f"Parameter '{self.name}' value {value!r} "
                f"is above maximum {self.max_value!r}"
            )
        if self.choices is not None and value not in self.choices:
            raise ValidationError(
                f"Parameter '{self.name}' value {value!r} "
                f"is not in allowed choices {self.choices!r}"
            )

    def __repr__(self) -> str:
        return (
            f"ParamSpec(name={self.name!r}, "
            f"param_type={self.param_type.__name__}, "
            f"default={self.default!r})"
        )


def collect_param_specs(cls: type) -> Tuple[ParamSpec, ...]:
    """Parse ``Annotated`` class fields of *cls* into ``ParamSpec`` records.

    Only fields carrying at least one ``ParamMeta`` marker and a class-level
    default are collected, parent classes first.

    Raises
    ------
    TypeError
        If a field combines ``Range`` and ``Options``, or has no default.
    """
    hints = get_type_hints(cls, include_extras=True)

    ordered_names: list = []
    for klass in reversed(cls.__mro__):
        for name in getattr(klass, '__annotations__', {}):
            if name not in ordered_names and name in hints:
                ordered_names.append(name)

    specs: list = []
    for name in ordered_names:
        hint = hints[name]
        if get_origin(hint) is not Annotated:
            continue
        metas = [m for m in hint.__metadata__ if isinstance(m, ParamMeta)]
        if not metas:
            continue

        range_meta = next((m for m in metas if isinstance(m, Range)), None)
        options_meta = next((m for m in metas if isinstance(m, Options)), None)
        desc_meta = next((m for m in metas if isinstance(m, Desc)), None)
        if range_meta and options_meta:
            raise TypeError(
                f"Parameter '{name}' on {cls.__qualname__}: "
                f"Range and Options are mutually exclusive."
            )
        if not hasattr(cls, name):
            raise TypeError(
                f"Parameter '{name}' on {cls.__qualname__} has no default"
            )

        specs.append(ParamSpec(
            name=name,
            param_type=hint.__args__[0],
            default=getattr(cls, name),
            description=desc_meta.text if desc_meta else '',
            min_value=range_meta.min if range_meta else None,
            max_value=range_meta.max if range_meta else None,
            choices=options_meta.choices if options_meta else None,
        ))
    return tuple(specs)


def _make_init(param_specs: Tuple[ParamSpec, ...]):
    """Build a keyword-only, validating ``__init__`` from *param_specs*."""
    _specs = param_specs

    def __init__(self, **kwargs):
        expected = {s.name for s in _specs}
        unexpected = set(kwargs) - expected
        if unexpected:
            raise TypeError(
                f"{type(self).__name__}() got unexpected "
                f"keyword arguments: {', '.join(sorted(unexpected))}"
            )
        for spec in _specs:
            value = kwargs.get(spec.name, spec.default)
            spec.validate(value)
            setattr(self, spec.name, value)

    params = [inspect.Parameter('self', inspect.Parameter.POSITIONAL_OR_KEYWORD)]
    params.extend(
        inspect.Parameter(s.name, inspect.Parameter.KEYWORD_ONLY, default=s.default)
        for s in _specs
    )
    __init__.__signature__ = inspect.Signature(params)
    __init__.__qualname__ = '__init__'
    return __init__


# =====================================================================
# FeatureParameters base and registry
# =====================================================================

_REGISTRY: Dict[str, Type['FeatureParameters']] = {}


class FeatureParameters(ABC):
    """Base class for backend configuration records.

    Subclasses declare their fields as ``Annotated`` class attributes and
    implement ``create_backend``. Every concrete subclass is registered
    under its class name.
    """

    __param_specs__: Tuple[ParamSpec, ...] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.__param_specs__ = collect_param_specs(cls)
        if '__init__' not in cls.__dict__:
            cls.__init__ = _make_init(cls.__param_specs__)
        if not inspect.isabstract(cls):
            _REGISTRY[cls.__name__] = cls

    @abstractmethod
    def create_backend(self) -> Optional['FeatureBackend']:
        """Instantiate the configured feature backend.

        Returns
        -------
        Optional[FeatureBackend]
            The backend, or None when the record configures nothing.
        """
        ...

    @property
    def default_name(self) -> str:
        """Registry key of this record type."""
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Field values keyed by parameter name."""
        return {s.name: getattr(self, s.name) for s in type(self).__param_specs__}

    def read(self, fields: Mapping[str, Any]) -> None:
        """Overwrite fields from a mapping, validating each value.

        Keys absent from *fields* keep their current values.
        """
        for spec in type(self).__param_specs__:
            if spec.name in fields:
                value = fields[spec.name]
                spec.validate(value)
                setattr(self, spec.name, value)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        fields = ', '.join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"{type(self).__name__}({fields})"


def registered_parameter_types() -> Tuple[str, ...]:
    """Names of every registered ``FeatureParameters`` type."""
    return tuple(sorted(_REGISTRY))


def create_feature_parameters(type_name: str) -> Optional[FeatureParameters]:
    """Create a default-valued record for a registered type name.

    Parameters
    ----------
    type_name : str
        Class name of the record, e.g. ``'SIFTParameters'``.

    Returns
    -------
    Optional[FeatureParameters]
        A fresh record, or None if the name is not registered.
    """
    cls = _REGISTRY.get(type_name)
    if cls is None:
        return None
    return cls()


def default_parameters(type_name: str) -> FeatureParameters:
    """Default configuration for a registered type name.

    Raises
    ------
    ValidationError
        If the name is not registered.
    """
    params = create_feature_parameters(type_name)
    if params is None:
        raise ValidationError(
            f"Unknown feature parameters '{type_name}'. "
            f"Choose from: {registered_parameter_types()}"
        )
    return params


def load_parameters(mapping: Mapping[str, Any]) -> Optional[FeatureParameters]:
    """Build a record from a single-entry ``{type_name: fields}`` mapping.

    Unknown type names yield None.

    Parameters
    ----------
    mapping : Mapping[str, Any]
        Mapping with exactly one entry.

    Returns
    -------
    Optional[FeatureParameters]

    Raises
    ------
    ValidationError
        If *mapping* does not have exactly one entry.
    """
    if len(mapping) != 1:
        raise ValidationError(
            f"Expected a single {{type_name: fields}} entry, got {len(mapping)}"
        )
    (type_name, fields), = mapping.items()
    params = create_feature_parameters(type_name)
    if params is None:
        logger.debug("Ignoring unknown feature parameters '%s'", type_name)
        return None
    params.read(fields)
    return params
