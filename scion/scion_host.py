"""
Read-only view of the host object systems.

SCION sits on top of three representations that Python already has:
  - builtin storage kinds (int, str, list, ...), reported by `base_type`,
  - informal tag stacks: any value exposing `__class_tags__`,
  - formal classes: ordinary Python classes, linearized by their MRO.

Nothing in this module mutates host values.
"""

import functools
import os
import sys
import types
from typing import Any, List, Optional, Sequence, Tuple

TAGS_ATTR = "__class_tags__"
FORMAL_VALIDATOR_ATTR = "__validate__"


def _dbg(*parts):
    """Trace to stderr when SCION_DEBUG is set."""
    if os.environ.get("SCION_DEBUG"):
        print("[DBG]", *parts, file=sys.stderr)


class _MissingType:
    """Marks an argument the caller did not supply (distinct from None)."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING = _MissingType()


# =================================================================
# Builtin storage kinds
# =================================================================

_BASE_NAMES = {
    type(None): "None",
    bool: "bool",
    int: "int",
    float: "float",
    complex: "complex",
    str: "str",
    bytes: "bytes",
    list: "list",
    tuple: "tuple",
    dict: "dict",
    types.FunctionType: "function",
    types.BuiltinFunctionType: "function",
    types.MethodType: "function",
    functools.partial: "function",
}


def base_type(value: Any) -> Optional[str]:
    """Returns the storage-kind name of a builtin value, or None.

    Only exact builtin types count: an instance of a user subclass of `str`
    belongs to the formal system, not to the base one.
    """
    return _BASE_NAMES.get(type(value))


def base_type_names() -> List[str]:
    seen = []
    for name in _BASE_NAMES.values():
        if name not in seen:
            seen.append(name)
    return seen


# =================================================================
# Informal tag stacks
# =================================================================

def tag_stack(value: Any) -> Optional[Tuple[str, ...]]:
    """Returns the ordered tag stack of an informally classed value, or None."""
    if value is MISSING:
        return None
    tags = getattr(value, TAGS_ATTR, None)
    if isinstance(tags, (tuple, list)) and tags and all(isinstance(t, str) for t in tags):
        return tuple(tags)
    return None


class Tagged:
    """A plain value labelled with an informal tag stack, most specific tag first."""
    def __init__(self, data: Any, tags: Sequence[str]):
        if isinstance(tags, str):
            tags = (tags,)
        if not tags:
            raise ValueError("Tagged values need at least one tag.")
        self.data = data
        self.__class_tags__ = tuple(tags)

    def __eq__(self, other):
        if not isinstance(other, Tagged):
            return NotImplemented
        return self.__class_tags__ == other.__class_tags__ and self.data == other.data

    def __repr__(self) -> str:
        return f"<Tagged {'/'.join(self.__class_tags__)} data={self.data!r}>"


# =================================================================
# Formal classes
# =================================================================

def formal_name(cls: type) -> str:
    """Namespaced name of a formal class, e.g. 'collections::OrderedDict'."""
    return f"{cls.__module__}::{cls.__qualname__}"


def formal_linearization(cls: type) -> List[str]:
    return [formal_name(k) for k in cls.__mro__]


def formal_validator(cls: type):
    """The class's own validation hook, called as hook(obj), or None."""
    return getattr(cls, FORMAL_VALIDATOR_ATTR, None)


__all__ = [
    "MISSING",
    "Tagged",
    "base_type",
    "base_type_names",
    "tag_stack",
    "formal_name",
    "formal_linearization",
    "formal_validator",
]
