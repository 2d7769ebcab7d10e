"""
The object model: construction, property access and validation.

Every mutation is staged on a copy of the object, validated, and only then
committed, so a failed write leaves the caller's object as it was.
"""

from contextvars import ContextVar
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from scion.scion_classes import (
    Class, class_type, class_desc, class_construct, class_inherits, class_validate,
    obj_desc, scion_object,
)
from scion.scion_errors import (
    ConstructorError, ReadOnlyPropertyError, UnknownPropertyError, ValidationError,
)
from scion.scion_host import MISSING, _dbg
from scion.scion_props import Property, prop_check, prop_empty

# Class whose constructor is currently running; read by new_object().
_constructing: ContextVar[Optional[Class]] = ContextVar("scion_constructing", default=None)
# (id(obj), property name) pairs whose custom setter is currently running.
_active_setters: ContextVar[Tuple[Tuple[int, str], ...]] = ContextVar("scion_active_setters", default=())


class Object:
    """An instance of a native class.

    Holds a back-reference to its class, display tags (the class's full
    ancestor chain, read by informal dispatch), the property store, and the
    underlying data when the class extends a base or informal class.
    Properties are also reachable as attributes: `obj.x`, `obj.x = 1`.
    """
    def __init__(self, cls: Class, data: Any = MISSING, store: Optional[Mapping[str, Any]] = None):
        object.__setattr__(self, "_class", cls)
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_store", dict(store or {}))
        object.__setattr__(self, "__class_tags__", cls.dispatch_chain)

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        return get_prop(self, name)

    def __setattr__(self, name: str, value: Any):
        if name.startswith("_"):
            raise AttributeError(f"Can't set internal attribute {name!r}")
        set_prop(self, name, value)

    def __delattr__(self, name: str):
        raise AttributeError(f"Can't delete property {obj_desc(self)}@{name}")

    def __dir__(self) -> Iterable[str]:
        return list(super().__dir__()) + list(self._class.properties)

    def __eq__(self, other):
        if not isinstance(other, Object):
            return NotImplemented
        return (
            self._class is other._class and
            self._data == other._data and
            self._store == other._store
        )

    __hash__ = None

    def __copy__(self) -> 'Object':
        return self._copy()

    def _copy(self) -> 'Object':
        return Object(self._class, self._data, self._store)

    def _commit(self, staged: 'Object') -> None:
        object.__setattr__(self, "_data", staged._data)
        object.__setattr__(self, "_store", dict(staged._store))

    def __repr__(self) -> str:
        parts = []
        if self._data is not MISSING:
            parts.append(f"data={self._data!r}")
        parts.extend(f"{k}={v!r}" for k, v in self._store.items())
        body = (" " + ", ".join(parts)) if parts else ""
        return f"<{self._class.name}{body}>"


def _check_object(obj: Any) -> Object:
    if not isinstance(obj, Object):
        raise TypeError(f"Expected a scion object, not {obj_desc(obj)}")
    return obj


def class_of(obj: Any) -> Class:
    return _check_object(obj)._class


def object_data(obj: Any) -> Any:
    """The underlying base or informal value of an object, or None."""
    data = _check_object(obj)._data
    return None if data is MISSING else data


# =================================================================
# Construction
# =================================================================

def construct(cls: Class, *args, **kwargs) -> Object:
    """Runs a class's constructor and checks it produced an instance of that class."""
    if cls.abstract:
        raise ConstructorError(f"Can't construct an object from abstract class {class_desc(cls)}.")
    token = _constructing.set(cls)
    try:
        obj = cls.constructor(*args, **kwargs)
    finally:
        _constructing.reset(token)
    if not isinstance(obj, Object) or obj._class is not cls:
        raise ConstructorError(
            f"{class_desc(cls)} constructor must return an object created by new_object(), not {obj_desc(obj)}."
        )
    return obj


def new_object(parent: Any = MISSING, /, **props) -> Object:
    """The root object initializer; every constructor ends here.

    `parent` is an instance of the class's parent (or the underlying data for
    base and informal parents). Missing stored properties get their defaults,
    then the object is validated once.
    """
    cls = _constructing.get()
    if cls is None:
        raise ConstructorError("new_object() must be called from inside a class constructor.")
    if cls.abstract:
        raise ConstructorError(f"Can't construct an object from abstract class {class_desc(cls)}.")

    if cls.parent is None:
        if parent is not MISSING:
            raise ConstructorError(f"{class_desc(cls)} has no parent to initialize from.")
        obj = Object(cls)
    elif class_type(cls.parent) == 'native':
        if parent is MISSING:
            parent = scion_object()
        root_only = isinstance(parent, Object) and parent._class is scion_object
        if not root_only and not class_inherits(parent, cls.parent):
            raise ConstructorError(f"`parent` must be {class_desc(cls.parent)}, not {obj_desc(parent)}.")
        store = {k: v for k, v in parent._store.items() if k in cls.properties}
        obj = Object(cls, parent._data, store)
    else:
        if parent is MISSING:
            parent = class_construct(cls.parent)
        if not class_inherits(parent, cls.parent):
            raise ConstructorError(f"`parent` must be {class_desc(cls.parent)}, not {obj_desc(parent)}.")
        obj = Object(cls, parent)

    owner = class_desc(cls)
    for name in props:
        if name not in cls.properties:
            raise UnknownPropertyError(owner, name)
    for name, prop in cls.properties.items():
        if prop.dynamic or name in props or name in obj._store:
            continue
        value = prop_empty(prop)
        prop_check(owner, prop, value)
        obj._store[name] = value
    for name, value in props.items():
        obj = _assign(obj, cls.properties[name], value)

    validate(obj)
    _dbg("new_object()", cls.name, "props", list(obj._store))
    return obj


# =================================================================
# Property Access
# =================================================================

def _find_prop(obj: Object, name: str) -> Property:
    prop = obj._class.properties.get(name)
    if prop is None:
        raise UnknownPropertyError(obj_desc(obj), name)
    return prop


def _in_setter(obj: Object) -> bool:
    oid = id(obj)
    return any(k[0] == oid for k in _active_setters.get())


def _assign(obj: Object, prop: Property, value: Any) -> Object:
    """Writes one property without validating; returns the object to continue with."""
    if prop.read_only:
        raise ReadOnlyPropertyError(obj_desc(obj), prop.name)
    prop_check(obj_desc(obj), prop, value)

    key = (id(obj), prop.name)
    active = _active_setters.get()
    if prop.setter is None or key in active:
        # Plain store, or a setter writing its own property.
        if prop.dynamic:
            raise ReadOnlyPropertyError(obj_desc(obj), prop.name)
        obj._store[prop.name] = value
        return obj

    token = _active_setters.set(active + (key,))
    try:
        result = prop.setter(obj, value)
    finally:
        _active_setters.reset(token)
    if not isinstance(result, Object) or result._class is not obj._class:
        raise TypeError(
            f"Setter for {obj_desc(obj)}@{prop.name} must return the object, not {obj_desc(result)}"
        )
    return result


def get_prop(obj: Any, name: str) -> Any:
    obj = _check_object(obj)
    prop = _find_prop(obj, name)
    if prop.getter is not None:
        return prop.getter(obj)
    return obj._store[name]


def set_prop(obj: Any, name: str, value: Any) -> Object:
    """Sets one property and re-validates; returns the object.

    Inside a custom setter of the same object the write is applied directly
    and validation is left to the outermost call.
    """
    obj = _check_object(obj)
    prop = _find_prop(obj, name)
    if _in_setter(obj):
        return _assign(obj, prop, value)
    staged = _assign(obj._copy(), prop, value)
    validate(staged)
    obj._commit(staged)
    return obj


def set_props(obj: Any, values: Optional[Mapping[str, Any]] = None, /, **kwargs) -> Object:
    """Sets several properties with a single validation pass at the end.

    Use this for updates whose intermediate states would be invalid.
    """
    obj = _check_object(obj)
    updates: Dict[str, Any] = dict(values or {})
    updates.update(kwargs)
    props_ = [(_find_prop(obj, name), value) for name, value in updates.items()]
    if _in_setter(obj):
        for prop, value in props_:
            obj = _assign(obj, prop, value)
        return obj
    staged = obj._copy()
    for prop, value in props_:
        staged = _assign(staged, prop, value)
    validate(staged)
    obj._commit(staged)
    return obj


def props(obj: Any, names: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """All property values (dynamic ones included), or just `names`."""
    obj = _check_object(obj)
    if names is None:
        names = list(obj._class.properties)
    return {name: get_prop(obj, name) for name in names}


# =================================================================
# Validation
# =================================================================

def _as_messages(result: Any) -> List[str]:
    if result is None:
        return []
    if isinstance(result, str):
        return [result] if result else []
    if isinstance(result, (list, tuple)):
        return [str(m) for m in result if m]
    raise TypeError(f"Validators must return None, a string, or a list of strings, not {obj_desc(result)}")


def validation_errors(obj: Any, properties: bool = True) -> List[str]:
    """Messages from the first failing check, or [] for a valid object.

    Property types are checked first, then class validators from the root
    class down to the object's own class.
    """
    obj = _check_object(obj)
    cls = obj._class
    if properties:
        errors = []
        for name, prop in cls.properties.items():
            if prop.dynamic:
                continue
            value = obj._store.get(name, MISSING)
            if not class_inherits(value, prop.type):
                errors.append(f"{obj_desc(obj)}@{name} must be {class_desc(prop.type)}, not {obj_desc(value)}")
        if errors:
            return errors
    for klass in reversed(cls.lineage()):
        messages = _as_messages(class_validate(klass, obj))
        if messages:
            _dbg("validate()", cls.name, "failed at", class_desc(klass), messages)
            return messages
    return []


def validate(obj: Any, properties: bool = True) -> None:
    errors = validation_errors(obj, properties=properties)
    if errors:
        raise ValidationError(obj_desc(obj), errors)


__all__ = [
    "Object",
    "construct",
    "new_object",
    "get_prop",
    "set_prop",
    "set_props",
    "props",
    "class_of",
    "object_data",
    "validate",
    "validation_errors",
]
