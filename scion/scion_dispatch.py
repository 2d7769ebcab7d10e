"""
The dispatch engine.

Dispatch is nested, not simultaneous: the first dispatch argument decides,
and later arguments only choose among methods that already matched every
earlier position. Within a position the argument's ancestor chain is walked
from most specific to least, with `ANY` tried last. When a more specific
class at an earlier position leads nowhere, the walk backtracks to that
position's next ancestor.

Nothing is cached; each call reads the generic's current table once.
"""

import itertools
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from scion.scion_classes import (
    as_class, class_desc, class_dispatch, class_inherits, class_type,
    obj_desc, obj_dispatch,
)
from scion.scion_errors import InvalidClassSpec, MethodNotFoundError
from scion.scion_generics import Generic, lookup_exact, normalize_signature
from scion.scion_host import MISSING, _dbg

ANY_KEY = "ANY"


class Upcast:
    """Dispatches `obj` as though it were an instance of its ancestor `to`."""
    def __init__(self, obj: Any, to: Any):
        self.obj = obj
        self.to = to

    def __repr__(self) -> str:
        return f"<upcast {obj_desc(self.obj)} to {class_desc(self.to)}>"


def upcast(obj: Any, to: Any) -> Upcast:
    """Selects the parent's method for obj; the method still receives obj itself."""
    if isinstance(obj, Upcast):
        obj = obj.obj
    to = as_class(to, arg="to")
    if class_type(to) not in ('native', 'base', 'informal'):
        raise InvalidClassSpec(f"`to` must be a scion, base, or informal class, not {class_desc(to)}.", to)
    if not class_inherits(obj, to):
        raise InvalidClassSpec(f"{obj_desc(obj)} doesn't inherit from {class_desc(to)}.", to)
    return Upcast(obj, to)


def search_chain(chain: Sequence[str]) -> List[str]:
    """The keys tried at one position, most specific first."""
    return list(chain) + [ANY_KEY]


def find_method(table: Dict[str, Any], chains: Sequence[Sequence[str]],
                pos: int = 0) -> Optional[Tuple[Callable, Tuple[str, ...]]]:
    """Nested search; returns (impl, matched keys) or None."""
    for name in chains[pos]:
        entry = table.get(name)
        if entry is None:
            continue
        if pos == len(chains) - 1:
            return entry, (name,)
        found = find_method(entry, chains, pos + 1)
        if found is not None:
            return found[0], (name,) + found[1]
    return None


def _dispatch_values(generic: Generic, args: tuple, kwargs: dict) -> List[Any]:
    bound = generic.signature.bind_partial(*args, **kwargs)
    return [bound.arguments.get(name, MISSING) for name in generic.dispatch_args]


def _unwrap(value: Any) -> Any:
    return value.obj if isinstance(value, Upcast) else value


def dispatch(generic: Generic, *args, **kwargs) -> Any:
    """Finds the most specific method for the call and invokes it with the call's arguments."""
    values = _dispatch_values(generic, args, kwargs)
    chains = [search_chain(obj_dispatch(v)) for v in values]
    table = generic.methods_table
    found = find_method(table, chains)
    if found is None:
        _dbg("dispatch()", generic.name, "no method for", chains)
        raise MethodNotFoundError(
            generic.name, [(name, obj_desc(v)) for name, v in zip(generic.dispatch_args, values)]
        )
    impl, keys = found
    _dbg("dispatch()", generic.name, "->", keys)
    if any(isinstance(v, Upcast) for v in values):
        args = tuple(_unwrap(a) for a in args)
        kwargs = {k: _unwrap(v) for k, v in kwargs.items()}
    return impl(*args, **kwargs)


def lookup_method(generic: Generic, signature: Any) -> Optional[Callable]:
    """The method a call with these classes would reach, or None.

    Inheritance-aware: a signature of subclasses finds a parent's method.
    """
    signature = normalize_signature(generic, signature)
    chains = [search_chain(class_dispatch(c)) for c in signature]
    found = find_method(generic.methods_table, chains)
    return None if found is None else found[0]


def method_explain(generic: Generic, *args, **kwargs) -> List[str]:
    """Every key combination in search order.

    `=>` marks the method that would run, `*` other registered methods that
    match the call.
    """
    values = _dispatch_values(generic, args, kwargs)
    chains = [search_chain(obj_dispatch(v)) for v in values]
    table = generic.methods_table
    found = find_method(table, chains)
    chosen = None if found is None else found[1]
    lines = []
    for combo in itertools.product(*chains):
        if combo == chosen:
            marker = "=> "
        elif lookup_exact(table, combo) is not None:
            marker = "*  "
        else:
            marker = "   "
        lines.append(f"{marker}{generic.name}({', '.join(combo)})")
    return lines


__all__ = [
    "Upcast",
    "upcast",
    "search_chain",
    "find_method",
    "dispatch",
    "lookup_method",
    "method_explain",
]
