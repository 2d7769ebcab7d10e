from __future__ import annotations

import json
from typing import Any, Optional
import collections.abc

import yaml

from scion.scion_classes import Class, Union, class_type, class_desc, class_inherits, find_class
from scion.scion_props import prop_empty
from scion.scion_host import MISSING, Tagged, tag_stack


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode(encoding or 'utf-8', errors='replace')
    return str(data)


def to_builtin(value: Any) -> Any:
    """Convert objects and tagged values into plain dict/list trees.

    Objects keep their stored properties only; dynamic properties are
    recomputed on the way back in.
    """
    from scion.scion_object import Object
    if isinstance(value, Object):
        cls = value._class
        out: dict = {'class': cls.name}
        if value._data is not MISSING:
            out['data'] = to_builtin(value._data)
        out['props'] = {
            name: to_builtin(value._store[name])
            for name, prop in cls.properties.items()
            if not prop.dynamic and name in value._store
        }
        return out
    if isinstance(value, Tagged):
        return {'tags': list(tag_stack(value)), 'data': to_builtin(value.data)}
    if isinstance(value, (list, tuple)):
        return [to_builtin(x) for x in value]
    if isinstance(value, collections.abc.Mapping):
        return {k: to_builtin(v) for k, v in value.items()}
    return value


def detect_format(data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json' or 'yaml' from simple data sniffing.
    YAML is a superset of JSON, so anything that doesn't look like JSON is
    handed to the YAML loader.
    """
    if data_hint is None:
        return None
    s = data_hint.lstrip()
    if s.startswith('{') or s.startswith('['):
        return 'json'
    return 'yaml'


def _load(text: str, fmt: Optional[str]) -> Any:
    f = (fmt or detect_format(text) or '').lower()
    if f == 'json':
        return json.loads(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def _is_object_tree(raw: Any) -> bool:
    return isinstance(raw, collections.abc.Mapping) and 'props' in raw


def _is_tagged_tree(raw: Any) -> bool:
    return isinstance(raw, collections.abc.Mapping) and set(raw) == {'tags', 'data'}


def _subclass_named(name: Optional[str], cls: Class) -> Optional[Class]:
    """`cls` itself, or the native class called `name` when it descends from `cls`."""
    if name is None or name == cls.name:
        return cls
    found = find_class(name)
    if found is None or cls not in found.lineage():
        return None
    return found


def from_builtin(tree: Any, cls: Class) -> Any:
    """Rebuild an instance of `cls` (or of the subclass named in the tree)."""
    from scion.scion_object import Object, validate

    if not _is_object_tree(tree):
        raise ValueError(f"Expected a serialized {class_desc(cls)} object, got {type(tree).__name__}.")
    target = _subclass_named(tree.get('class'), cls)
    if target is None:
        raise ValueError(f"Serialized object is a <{tree.get('class')}>, not {class_desc(cls)}.")

    obj = Object(target, tree['data'] if 'data' in tree else MISSING)
    for name, raw in tree['props'].items():
        prop = target.properties.get(name)
        if prop is None or prop.dynamic:
            raise ValueError(f"{class_desc(target)} has no stored property {name!r}.")
        obj._store[name] = _rebuild(raw, prop.type)
    for name, prop in target.properties.items():
        if not prop.dynamic and name not in obj._store:
            obj._store[name] = prop_empty(prop)
    validate(obj)
    return obj


def _rebuild_union(raw: Any, target: Union) -> Any:
    for member in target.classes:
        kind = class_type(member)
        if kind == 'native' and _is_object_tree(raw) and _subclass_named(raw.get('class'), member):
            return from_builtin(raw, member)
        if kind == 'informal' and _is_tagged_tree(raw) and all(t in raw['tags'] for t in member.tags):
            return Tagged(raw['data'], raw['tags'])
    if any(class_inherits(raw, member) for member in target.classes):
        return raw
    for member in target.classes:
        if class_type(member) == 'base' and member.name == 'tuple' and isinstance(raw, list):
            return tuple(raw)
    return raw


def _rebuild(raw: Any, target: Any) -> Any:
    match class_type(target):
        case 'union':
            return _rebuild_union(raw, target)
        case 'native':
            if _is_object_tree(raw):
                return from_builtin(raw, target)
        case 'any':
            if _is_object_tree(raw) and find_class(raw.get('class')) is not None:
                return from_builtin(raw, find_class(raw['class']))
            if _is_tagged_tree(raw):
                return Tagged(raw['data'], raw['tags'])
        case 'informal':
            if _is_tagged_tree(raw):
                return Tagged(raw['data'], raw['tags'])
        case 'base':
            if target.name == 'tuple' and isinstance(raw, list):
                return tuple(raw)
    return raw


# --------------------------
# Public API
# --------------------------

def serialize(value: Any, *, fmt: str = 'json', pretty: bool = True) -> str:
    """
    Convert a value (objects included) into a textual representation.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def deserialize(data: bytes | bytearray | str, cls: Class, *, fmt: Optional[str] = None,
                encoding: Optional[str] = None) -> Any:
    """
    Parse text produced by serialize() back into an instance of `cls`.
    If fmt is None, the format is sniffed from the data.
    """
    text = _norm_text(data, encoding=encoding)
    return from_builtin(_load(text, fmt), cls)


__all__ = [
    "to_builtin",
    "from_builtin",
    "detect_format",
    "serialize",
    "deserialize",
]
