"""
Properties: named, typed units of object state.

A class's property table is an ordered dict of name -> Property, made of the
parent's table followed by the class's own declarations.
"""

import copy
import inspect
from typing import Any, Callable, Dict, List, Mapping, Optional

from scion.scion_classes import (
    class_any, class_type, class_desc, class_construct, class_inherits,
    obj_desc, as_class, scion_object,
)
from scion.scion_errors import DuplicatePropertyError, PropertyTypeError
from scion.scion_host import MISSING


class Property:
    """A property specification.

    - `type`: class spec the value must satisfy (untyped when None).
    - `getter(obj)`: makes the property dynamic; nothing is stored.
    - `setter(obj, value) -> obj`: custom write; a getter without a setter
      makes the property read-only.
    - `default()`: zero-argument factory for the construction-time value.
    """
    def __init__(self, type: Any = None, getter: Optional[Callable] = None,
                 setter: Optional[Callable] = None, default: Optional[Callable] = None,
                 name: Optional[str] = None):
        self.type = class_any if type is None else as_class(type, arg="type")
        if getter is not None and not callable(getter):
            raise TypeError("`getter` must be a function of one argument (the object).")
        if setter is not None and not callable(setter):
            raise TypeError("`setter` must be a function of two arguments (the object and the value).")
        if default is not None and not callable(default):
            raise TypeError("`default` must be a zero-argument function producing the default value.")
        self.getter = getter
        self.setter = setter
        self.default = default
        self.name = None
        if name is not None:
            self.name = _check_prop_name(name)

    @property
    def dynamic(self) -> bool:
        return self.getter is not None

    @property
    def read_only(self) -> bool:
        return self.getter is not None and self.setter is None

    def named(self, name: str) -> 'Property':
        prop = copy.copy(self)
        prop.name = _check_prop_name(name)
        return prop

    def __repr__(self) -> str:
        flags = []
        if self.getter is not None:
            flags.append("getter")
        if self.setter is not None:
            flags.append("setter")
        if self.default is not None:
            flags.append("default")
        extra = f" [{', '.join(flags)}]" if flags else ""
        return f"<Property {self.name}: {class_desc(self.type)}{extra}>"


def _check_prop_name(name) -> str:
    if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
        raise ValueError(
            f"Property name must be an identifier that does not start with '_', not {name!r}."
        )
    return name


def new_property(type: Any = None, getter: Optional[Callable] = None,
                 setter: Optional[Callable] = None, default: Optional[Callable] = None,
                 name: Optional[str] = None) -> Property:
    return Property(type=type, getter=getter, setter=setter, default=default, name=name)


def as_properties(spec: Any) -> Dict[str, Property]:
    """Normalizes a property declaration into an ordered name -> Property dict.

    Accepts a mapping of name to Property or class spec, or a sequence of
    named Properties.
    """
    if spec is None:
        return {}
    if isinstance(spec, Mapping):
        items = list(spec.items())
    elif isinstance(spec, (list, tuple)):
        items = []
        for p in spec:
            if not isinstance(p, Property) or p.name is None:
                raise ValueError("Properties given as a sequence must be named Property objects.")
            items.append((p.name, p))
    else:
        raise TypeError(f"`properties` must be a mapping or a list of properties, not {type(spec).__name__}.")

    out: Dict[str, Property] = {}
    for name, value in items:
        if name in out:
            raise DuplicatePropertyError(name)
        if isinstance(value, Property):
            out[name] = value.named(name)
        else:
            out[name] = Property(type=value, name=name)
    return out


def build_table(parent_table: Mapping[str, Property], own: Mapping[str, Property]) -> Dict[str, Property]:
    table = dict(parent_table)
    for name, prop in own.items():
        if name in table:
            raise DuplicatePropertyError(name, owner="a parent class")
        table[name] = prop
    return table


def prop_empty(prop: Property) -> Any:
    """Construction-time value for a stored property nobody supplied."""
    if prop.default is not None:
        return prop.default()
    if prop.type is class_any or class_type(prop.type) == 'missing':
        return None
    return class_construct(prop.type)


def prop_check(owner_desc: str, prop: Property, value: Any) -> None:
    if not class_inherits(value, prop.type):
        raise PropertyTypeError(owner_desc, prop.name, class_desc(prop.type), obj_desc(value))


# =================================================================
# Constructors
# =================================================================

def _keyword_params(fn: Callable) -> List[str]:
    kinds = (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    return [p.name for p in inspect.signature(fn).parameters.values() if p.kind in kinds]


def constructor_args(parent: Any, properties: Optional[Mapping[str, Property]] = None) -> Dict[str, List[str]]:
    """Splits the default constructor's arguments between the parent and the new class.

    `parent` holds the parent properties accepted by the parent's constructor.
    `self` holds the new class's stored properties. An abstract parent can't be
    constructed, so its stored properties move into `self`.
    """
    own = [name for name, p in (properties or {}).items() if not p.dynamic]
    if class_type(parent) != 'native':
        return {"self": own, "parent": []}
    if parent.abstract:
        inherited = [name for name, p in parent.properties.items() if not p.dynamic]
        return {"self": inherited + own, "parent": []}
    accepted = _keyword_params(parent.constructor)
    parent_args = [name for name in accepted if name in parent.properties]
    return {"self": own, "parent": parent_args}


def new_constructor(parent: Any, properties: Optional[Mapping[str, Property]] = None) -> Callable:
    """Builds the default constructor for a class with this parent and own properties."""
    from scion.scion_object import new_object

    args = constructor_args(parent, properties)
    parent_args, self_args = args["parent"], args["self"]
    kw = [inspect.Parameter(n, inspect.Parameter.KEYWORD_ONLY, default=MISSING)
          for n in parent_args + self_args]

    if class_type(parent) == 'native':
        skip_parent = parent.abstract

        def constructor(**kwargs):
            to_parent = {k: kwargs.pop(k) for k in parent_args if k in kwargs}
            parent_obj = scion_object() if skip_parent else parent(**to_parent)
            return new_object(parent_obj, **kwargs)

        constructor.__signature__ = inspect.Signature(kw)
    else:
        def constructor(data=MISSING, /, **kwargs):
            if data is MISSING:
                data = class_construct(parent)
            return new_object(data, **kwargs)

        data_param = inspect.Parameter("data", inspect.Parameter.POSITIONAL_ONLY, default=MISSING)
        constructor.__signature__ = inspect.Signature([data_param] + kw)
    return constructor


__all__ = [
    "Property",
    "new_property",
    "as_properties",
    "build_table",
    "prop_empty",
    "prop_check",
    "constructor_args",
    "new_constructor",
]
