"""
Class descriptors: one canonical representation for every kind of class.

A class specification is exactly one of
  - a special marker (`class_missing`, `class_any`),
  - a BaseClass wrapping a builtin storage kind,
  - an InformalClass wrapping an informal tag stack,
  - a FormalClass wrapping an ordinary Python class,
  - a native Class created by `new_class`,
  - a Union of the above.

`class_type` is the single switch over that closed set; every other
operation here dispatches on its result.
"""

from typing import Any, Callable, Dict, List, Literal, Optional, Sequence, Tuple

from scion.scion_errors import InvalidClassSpec
from scion.scion_host import (
    MISSING, Tagged, _dbg, base_type, base_type_names, tag_stack, formal_name,
    formal_linearization, formal_validator,
)

ClassKind = Literal['missing', 'any', 'base', 'informal', 'formal', 'native', 'union']

# Every native ancestor chain ends here.
ROOT_NAME = "scion_object"
RESERVED_NAMES = ("MISSING", "ANY")


# =================================================================
# Descriptor Types
# =================================================================

class _SpecialClass:
    """Internal helper class for the stateless special markers."""
    def __init__(self, name):
        self._name = name

    def __repr__(self):
        return f"class_{self._name}"


class_missing = _SpecialClass("missing")
class_any = _SpecialClass("any")


class BaseClass:
    """A builtin storage kind such as 'int' or 'str'.

    `empty` builds the kind's empty value; it backs both the constructor and
    the filling of untyped-default properties.
    """
    def __init__(self, name: str, empty: Callable[[], Any]):
        self.name = name
        self.empty = empty

    def constructor(self, value: Any = MISSING) -> Any:
        if value is MISSING:
            return self.empty()
        return value

    def validator(self, obj) -> Optional[str]:
        from scion.scion_object import object_data
        data = object_data(obj)
        if base_type(data) != self.name:
            return f"Underlying data must be <{self.name}> not {obj_desc(data)}"
        return None

    def __repr__(self) -> str:
        return f"class_{self.name}"


def _noop(*args, **kwargs):
    return None


class_none = BaseClass("None", lambda: None)
class_bool = BaseClass("bool", bool)
class_int = BaseClass("int", int)
class_float = BaseClass("float", float)
class_complex = BaseClass("complex", complex)
class_str = BaseClass("str", str)
class_bytes = BaseClass("bytes", bytes)
class_list = BaseClass("list", list)
class_tuple = BaseClass("tuple", tuple)
class_dict = BaseClass("dict", dict)
class_function = BaseClass("function", lambda: _noop)

_PY_TYPE_TO_BASE = {
    type(None): class_none,
    bool: class_bool,
    int: class_int,
    float: class_float,
    complex: class_complex,
    str: class_str,
    bytes: class_bytes,
    list: class_list,
    tuple: class_tuple,
    dict: class_dict,
    type(_noop): class_function,
}


class InformalClass:
    """An informal class identified by its ordered tag stack."""
    def __init__(self, tags: Sequence[str], constructor: Optional[Callable] = None,
                 validator: Optional[Callable] = None):
        if isinstance(tags, str):
            tags = (tags,)
        tags = tuple(tags)
        if not tags or not all(isinstance(t, str) and t for t in tags):
            raise InvalidClassSpec("Informal class tags must be a non-empty sequence of strings.", tags)
        self.tags: Tuple[str, ...] = tags
        self.constructor = constructor if constructor is not None else self._default_constructor
        self.validator = validator

    def _default_constructor(self, data: Any = None) -> Tagged:
        return Tagged(data, self.tags)

    def __eq__(self, other):
        if not isinstance(other, InformalClass):
            return NotImplemented
        return self.tags == other.tags

    def __hash__(self):
        return hash(("informal", self.tags))

    def __repr__(self) -> str:
        return f"<informal class: {'/'.join(self.tags)}>"


def new_informal_class(tags: Sequence[str], constructor: Optional[Callable] = None,
                       validator: Optional[Callable] = None) -> InformalClass:
    """Declares an informal class so it can be used in signatures and properties."""
    return InformalClass(tags, constructor=constructor, validator=validator)


class FormalClass:
    """An ordinary Python class, linearized by its own MRO."""
    def __init__(self, handle: type):
        if not isinstance(handle, type):
            raise InvalidClassSpec(f"FormalClass needs a Python class, not {handle!r}.", handle)
        self.handle = handle

    @property
    def name(self) -> str:
        return formal_name(self.handle)

    def __eq__(self, other):
        if not isinstance(other, FormalClass):
            return NotImplemented
        return self.handle is other.handle

    def __hash__(self):
        return hash(("formal", self.handle))

    def __repr__(self) -> str:
        return f"<formal class: {self.name}>"


class Union:
    """An ordered set of classes treated as one disjunctive type.

    Used for property types and method signatures only; it never appears in
    an ancestor chain.
    """
    def __init__(self, classes: Sequence[Any]):
        if len(classes) < 2:
            raise InvalidClassSpec("A union needs at least two distinct classes.", classes)
        self.classes = tuple(classes)

    def __eq__(self, other):
        if not isinstance(other, Union):
            return NotImplemented
        return self.classes == other.classes

    def __hash__(self):
        return hash(("union",) + self.classes)

    def __repr__(self) -> str:
        return f"<union: {class_desc(self)}>"


def new_union(*classes) -> Any:
    """Builds a union, flattening nested unions and dropping duplicates.

    A single distinct class is returned as is.
    """
    flat: List[Any] = []
    for i, c in enumerate(classes):
        c = as_class(c, arg=f"classes[{i}]")
        members = c.classes if isinstance(c, Union) else (c,)
        for m in members:
            if not any(_same_class(m, seen) for seen in flat):
                flat.append(m)
    if not flat:
        raise InvalidClassSpec("A union needs at least one class.")
    if len(flat) == 1:
        return flat[0]
    return Union(flat)


def _same_class(a, b) -> bool:
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    return a == b


class Class:
    """A native SCION class.

    Single inheritance only. The ancestor chain is computed once here and is
    immutable afterwards; dispatch reads `dispatch_chain` directly.
    """
    def __init__(self, name: str, parent: Optional[Any], properties: Dict[str, Any],
                 abstract: bool = False, constructor: Optional[Callable] = None,
                 validator: Optional[Callable] = None):
        self.name = name
        self.parent = parent
        self.properties = properties
        self.abstract = abstract
        self.constructor = constructor
        self.validator = validator
        if parent is None:
            chain = [name]
        else:
            chain = [name] + class_dispatch(parent)
            if chain[-1] != ROOT_NAME:
                chain.append(ROOT_NAME)
        self.dispatch_chain: Tuple[str, ...] = tuple(chain)

    def __call__(self, *args, **kwargs):
        from scion.scion_object import construct
        return construct(self, *args, **kwargs)

    def lineage(self) -> List[Any]:
        """This class and its ancestors, most specific first, as descriptors."""
        out = []
        cur = self
        while cur is not None:
            out.append(cur)
            cur = cur.parent if isinstance(cur, Class) else None
        return out

    def __repr__(self) -> str:
        flags = " (abstract)" if self.abstract else ""
        return f"<scion class: {self.name}{flags}>"


def _root_constructor():
    from scion.scion_object import new_object
    return new_object()


scion_object = Class(ROOT_NAME, parent=None, properties={}, constructor=_root_constructor)

# Latest native class created under each name; read when loading serialized objects.
_classes_by_name: Dict[str, Class] = {ROOT_NAME: scion_object}


def find_class(name: str) -> Optional[Class]:
    """The most recently created native class called `name`, or None."""
    return _classes_by_name.get(name)


# =================================================================
# Classification
# =================================================================

def is_foundation_class(x) -> bool:
    return (
        x is class_missing or
        x is class_any or
        isinstance(x, (BaseClass, InformalClass, FormalClass, Class, Union))
    )


def class_type(x) -> ClassKind:
    if x is class_missing:
        return 'missing'
    if x is class_any:
        return 'any'
    if isinstance(x, BaseClass):
        return 'base'
    if isinstance(x, Class):
        return 'native'
    if isinstance(x, Union):
        return 'union'
    if isinstance(x, InformalClass):
        return 'informal'
    if isinstance(x, FormalClass):
        return 'formal'
    raise InvalidClassSpec(f"{x!r} is not a standard class specification.", x)


def as_class(x, arg: str = "x") -> Any:
    """Normalizes anything accepted as a class specification.

    Python builtin types map to their base class, None to `class_none`, and
    any other Python class to a FormalClass.
    """
    if is_foundation_class(x):
        return x
    if x is None:
        return class_none
    if isinstance(x, type):
        base = _PY_TYPE_TO_BASE.get(x)
        if base is not None:
            return base
        from scion.scion_object import Object
        if issubclass(x, Object):
            raise InvalidClassSpec(
                f"Can't convert `{arg}` to a valid class. Use the scion class itself, not {x.__name__}.", x
            )
        return FormalClass(x)
    raise InvalidClassSpec(
        f"Can't convert `{arg}` to a valid class. Class specification must be a scion class, "
        f"a union, an informal class, a Python class, or a base class, not {obj_desc(x)}.",
        x,
    )


def class_friendly(x) -> str:
    return {
        'missing': "a missing argument",
        'any': "any type",
        'base': "a base type",
        'informal': "an informal class",
        'formal': "a formal class",
        'native': "a scion class",
        'union': "a scion union",
    }[class_type(x)]


def _oxford_or(items: List[str]) -> str:
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} or {items[1]}"
    return ", ".join(items[:-1]) + f", or {items[-1]}"


def class_desc(x) -> str:
    match class_type(x):
        case 'missing':
            return "<MISSING>"
        case 'any':
            return "<ANY>"
        case 'base' | 'native':
            return f"<{x.name}>"
        case 'informal':
            return f"informal<{'/'.join(x.tags)}>"
        case 'formal':
            return f"formal<{x.name}>"
        case 'union':
            return _oxford_or([class_desc(c) for c in x.classes])


def class_dispatch(x) -> List[str]:
    """Ancestor chain of a class, most specific first."""
    match class_type(x):
        case 'missing':
            return ["MISSING"]
        case 'any':
            return []
        case 'base':
            return [x.name]
        case 'informal':
            return list(x.tags)
        case 'formal':
            return formal_linearization(x.handle)
        case 'native':
            return list(x.dispatch_chain)
        case 'union':
            raise InvalidClassSpec("A union has no ancestor chain of its own.", x)


def class_register(x) -> str:
    """Key a class is registered under in a method table.

    Informal classes are keyed by their first tag alone, so `("ordered",)` and
    `("ordered", "factor")` share a key, and a tag may equal a base or native
    class name.
    """
    match class_type(x):
        case 'missing':
            return "MISSING"
        case 'any':
            return "ANY"
        case 'base' | 'native':
            return x.name
        case 'informal':
            return x.tags[0]
        case 'formal':
            return x.name
        case 'union':
            raise InvalidClassSpec("A union must be expanded before registration.", x)


def class_construct(x, *args, **kwargs) -> Any:
    match class_type(x):
        case 'missing' | 'any':
            raise InvalidClassSpec(f"Can't construct {class_friendly(x)}.", x)
        case 'base' | 'informal':
            return x.constructor(*args, **kwargs)
        case 'native':
            return x(*args, **kwargs)
        case 'formal':
            return x.handle(*args, **kwargs)
        case 'union':
            return class_construct(x.classes[0], *args, **kwargs)


def class_validate(x, obj) -> Any:
    """Runs the class's own validator (not its ancestors') on obj."""
    match class_type(x):
        case 'native' | 'base' | 'informal':
            validator = x.validator
        case 'formal':
            validator = formal_validator(x.handle)
        case _:
            validator = None
    if validator is None:
        return None
    return validator(obj)


def class_inherits(x, what) -> bool:
    """Is value x an instance of class `what`?"""
    kind = class_type(what)
    if kind == 'any':
        return True
    if kind == 'missing':
        return x is MISSING
    if kind == 'union':
        return any(class_inherits(x, c) for c in what.classes)
    if x is MISSING:
        return False
    xt = obj_type(x)
    if kind == 'base':
        if xt == 'native':
            return what.name in obj_dispatch(x)
        return base_type(x) == what.name
    if kind == 'native':
        return xt == 'native' and what.name in obj_dispatch(x)
    if kind == 'informal':
        # Containment only, not contiguous order.
        if xt not in ('informal', 'native'):
            return False
        stack = obj_dispatch(x)
        return all(t in stack for t in what.tags)
    # formal
    return xt == 'formal' and isinstance(x, what.handle)


# =================================================================
# Values
# =================================================================

def obj_type(x) -> str:
    from scion.scion_object import Object
    from scion.scion_dispatch import Upcast
    if x is MISSING:
        return 'missing'
    if isinstance(x, Upcast):
        return 'upcast'
    if isinstance(x, Object):
        return 'native'
    if tag_stack(x) is not None:
        return 'informal'
    if base_type(x) is not None:
        return 'base'
    return 'formal'


def obj_desc(x) -> str:
    match obj_type(x):
        case 'missing':
            return "<MISSING>"
        case 'upcast':
            return f"upcast({obj_desc(x.obj)}, {class_desc(x.to)})"
        case 'native':
            return f"<{obj_dispatch(x)[0]}>"
        case 'informal':
            return f"informal<{'/'.join(tag_stack(x))}>"
        case 'base':
            return f"<{base_type(x)}>"
        case 'formal':
            return f"formal<{formal_name(type(x))}>"


def obj_dispatch(x) -> List[str]:
    """Ancestor chain of a value, most specific first."""
    match obj_type(x):
        case 'missing':
            return ["MISSING"]
        case 'upcast':
            return class_dispatch(x.to)
        case 'native' | 'informal':
            return list(tag_stack(x))
        case 'base':
            return [base_type(x)]
        case 'formal':
            return formal_linearization(type(x))


# =================================================================
# Native Class Creation
# =================================================================

def _check_class_name(name) -> None:
    if not isinstance(name, str) or not name:
        raise InvalidClassSpec(f"Class name must be a non-empty string, not {name!r}.", name)
    if "::" in name:
        raise InvalidClassSpec(f"Class name {name!r} may not contain '::'.", name)
    if name in RESERVED_NAMES or name == ROOT_NAME or name in base_type_names():
        raise InvalidClassSpec(f"Class name {name!r} is reserved.", name)


def new_class(name: str, parent: Any = None, properties: Any = None, abstract: bool = False,
              constructor: Optional[Callable] = None, validator: Optional[Callable] = None) -> Class:
    """Creates a native class.

    `parent` defaults to `scion_object` and may also be a base or informal
    class, in which case instances wrap an underlying data value.
    `properties` is a mapping of name to class spec or Property, or a list of
    named Properties. `validator(obj)` returns None, a message, or a list of
    messages. A custom `constructor` must finish by calling `new_object()`.
    """
    from scion.scion_props import as_properties, build_table, new_constructor

    _check_class_name(name)
    parent = scion_object if parent is None else as_class(parent, arg="parent")
    kind = class_type(parent)
    if kind not in ('native', 'base', 'informal'):
        raise InvalidClassSpec(
            f"`parent` must be a scion class, a base class, or an informal class, not {class_friendly(parent)}.",
            parent,
        )
    if abstract and not (kind == 'native' and (parent.abstract or parent is scion_object)):
        raise InvalidClassSpec("Abstract classes must have abstract parents.", parent)
    if validator is not None and not callable(validator):
        raise TypeError("`validator` must be callable.")
    if constructor is not None and not callable(constructor):
        raise TypeError("`constructor` must be callable.")

    own = as_properties(properties)
    inherited = parent.properties if kind == 'native' else {}
    table = build_table(inherited, own)

    cls = Class(name, parent=parent, properties=table, abstract=abstract, validator=validator)
    cls.constructor = constructor if constructor is not None else new_constructor(parent, own)
    if name in _classes_by_name:
        _dbg("new_class()", name, "replaces an earlier class of that name")
    _classes_by_name[name] = cls
    _dbg("new_class()", name, "parent", class_desc(parent), "props", list(table))
    return cls


# Stock unions
class_numeric = new_union(class_int, class_float)
class_atomic = new_union(class_bool, class_int, class_float, class_complex, class_str, class_bytes)


__all__ = [
    "ROOT_NAME",
    "class_missing", "class_any",
    "BaseClass", "InformalClass", "FormalClass", "Union", "Class",
    "class_none", "class_bool", "class_int", "class_float", "class_complex",
    "class_str", "class_bytes", "class_list", "class_tuple", "class_dict",
    "class_function", "class_numeric", "class_atomic",
    "scion_object",
    "new_class", "new_union", "new_informal_class", "find_class",
    "as_class", "class_type", "class_friendly", "class_desc", "class_dispatch",
    "class_register", "class_construct", "class_validate", "class_inherits",
    "obj_type", "obj_desc", "obj_dispatch",
]
