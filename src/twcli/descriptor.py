"""
Descriptor models.

A descriptor is an ordered mapping of field name to field spec. Applying it to a
raw record (decoded JSON from the API or from the config file) validates the
required fields and coerces every present value into its declared type:

    class Company(Model):
        descriptor = {
            "id": (int, REQUIRED),
            "name": str,
        }

A field spec is one of:

    str                      constructor-style, optional
    (int, REQUIRED)          constructor-style, required
    (parse, CALLABLE)        plain function, optional
    (parse, REQUIRED | CALLABLE)
    FieldSpec(int, required=True)

Constructor-style fields must name a class. Values that are already instances
of that class are kept as they are, so nested models rebuilt from the config
store are not constructed twice.
"""

from enum import IntFlag
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional

from .recovery import TWError, ValidationError


class FieldFlag(IntFlag):
    NONE = 0
    REQUIRED = 1
    CALLABLE = 2


REQUIRED = FieldFlag.REQUIRED
CALLABLE = FieldFlag.CALLABLE


class FieldSpec(NamedTuple):
    """A single field of a descriptor."""

    type: Callable[[Any], Any]
    required: bool = False
    callable: bool = False

    @classmethod
    def parse(cls, spec: Any) -> 'FieldSpec':
        """Normalize a bare type, a ``(type, flags)`` pair or a FieldSpec."""
        if isinstance(spec, FieldSpec):
            field = spec
        elif isinstance(spec, (tuple, list)):
            if len(spec) != 2:
                raise TypeError(f"Field spec pairs must be (type, flags), got {spec!r}")
            field_type, flags = spec
            flags = FieldFlag(flags)
            field = cls(field_type, bool(flags & REQUIRED), bool(flags & CALLABLE))
        else:
            field = cls(spec)

        if not callable(field.type):
            raise TypeError(f"Field type {field.type!r} is not callable")
        if not field.callable and not isinstance(field.type, type):
            raise TypeError(f"Field type {field.type!r} is not a class; flag the field CALLABLE")
        return field

    def coerce(self, raw: Any) -> Any:
        """Coerce one raw value."""
        if not self.callable and isinstance(raw, self.type):
            return raw
        return self.type(raw)


def parse_descriptor(descriptor: Mapping[str, Any]) -> Dict[str, FieldSpec]:
    fields = {}
    for name, spec in descriptor.items():
        if name.startswith("_") or hasattr(Model, name):
            raise TypeError(f"Field name \"{name}\" is reserved by Model")
        fields[name] = FieldSpec.parse(spec)
    return fields


def _coerce_field(name: str, field: FieldSpec, raw: Any) -> Any:
    # Empty lists and nulls have nothing to coerce
    if raw is None:
        return None
    try:
        if isinstance(raw, (list, tuple)):
            if not raw:
                return raw
            return [field.coerce(item) for item in raw]
        return field.coerce(raw)
    except ValidationError:
        raise
    except (TypeError, ValueError, TWError) as e:
        raise ValidationError(f"Invalid value for field \"{name}\": {e}", field=name) from e


class Model:
    """Base class for objects built from a field descriptor."""

    descriptor: Dict[str, Any] = {}

    def __init__(self, data: Optional[Mapping[str, Any]] = None,
                 descriptor: Optional[Mapping[str, Any]] = None):
        if data is None:
            data = {}
        self._fields = parse_descriptor(type(self).descriptor if descriptor is None else descriptor)

        for name, field in self._fields.items():
            if name not in data:
                if field.required:
                    raise ValidationError(f"Required field \"{name}\" not found.", field=name)
                setattr(self, name, None)
                continue

            setattr(self, name, _coerce_field(name, field, data[name]))

    def to_json(self) -> Dict[str, Any]:
        """Shallow record of the descriptor's fields, in declaration order."""
        return {name: getattr(self, name, None) for name in self._fields}

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.to_json() == other.to_json()

    __hash__ = None

    def __repr__(self):
        fields = ", ".join(f"{name}={value!r}" for name, value in self.to_json().items())
        return f"{type(self).__name__}({fields})"


def construct(descriptor: Mapping[str, Any], data: Optional[Mapping[str, Any]] = None) -> Model:
    """Build a generic Model instance from an ad-hoc descriptor."""
    return Model(data, descriptor=descriptor)


def to_json(instance: Model) -> Dict[str, Any]:
    return instance.to_json()
