"""
Generic functions and their method registries.

A generic's methods live in a nested mapping keyed by registration key, one
level per dispatch argument:

    {"Circle": {"Square": impl, "ANY": impl2}, "scion_object": {...}}

Writers build a new mapping and swap it in under the generic's lock. Readers
take `generic.methods_table` once and never see a half-written entry.
"""

import inspect
import itertools
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from scion.scion_classes import Union, as_class, class_desc, class_register
from scion.scion_errors import (
    IncompatibleMethodError, InvalidSignatureError, MethodNotFoundError,
    SignatureArityError,
)
from scion.scion_host import MISSING, _dbg

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
_VAR = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def _positional_names(sig: inspect.Signature) -> List[str]:
    return [p.name for p in sig.parameters.values() if p.kind in _POSITIONAL]


def _named_params(sig: inspect.Signature) -> List[str]:
    return [p.name for p in sig.parameters.values() if p.kind not in _VAR]


def _has_var_tail(sig: inspect.Signature) -> bool:
    return any(p.kind in _VAR for p in sig.parameters.values())


class Generic:
    """A generic function: a name, its dispatch arguments and a parameter contract.

    `fun` only contributes its signature. Without it the contract is
    `(<dispatch args>, *args, **kwargs)`. Calling the generic dispatches.
    """
    def __init__(self, name: str, dispatch_args: Sequence[str], fun: Optional[Callable] = None):
        if not isinstance(name, str) or not name:
            raise InvalidSignatureError(f"Generic name must be a non-empty string, not {name!r}.")
        if isinstance(dispatch_args, str):
            dispatch_args = (dispatch_args,)
        dispatch_args = tuple(dispatch_args or ())
        if not dispatch_args:
            raise InvalidSignatureError(f"Generic `{name}` needs at least one dispatch argument.")
        if len(set(dispatch_args)) != len(dispatch_args):
            raise InvalidSignatureError(f"Generic `{name}` repeats a dispatch argument: {dispatch_args}.")

        if fun is None:
            params = [inspect.Parameter(n, inspect.Parameter.POSITIONAL_OR_KEYWORD, default=MISSING)
                      for n in dispatch_args]
            params.append(inspect.Parameter("args", inspect.Parameter.VAR_POSITIONAL))
            params.append(inspect.Parameter("kwargs", inspect.Parameter.VAR_KEYWORD))
            signature = inspect.Signature(params)
        else:
            signature = inspect.signature(fun)

        remaining = iter(_named_params(signature))
        if not all(d in remaining for d in dispatch_args):
            raise InvalidSignatureError(
                f"Dispatch arguments {list(dispatch_args)} of `{name}` must appear, in order, "
                f"among its parameters {_named_params(signature)}."
            )

        self.name = name
        self.dispatch_args: Tuple[str, ...] = dispatch_args
        self.signature = signature
        self.params: Tuple[str, ...] = tuple(_positional_names(signature))
        self.variadic = _has_var_tail(signature)
        self.methods_table: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def __call__(self, *args, **kwargs):
        from scion.scion_dispatch import dispatch
        return dispatch(self, *args, **kwargs)

    def __repr__(self) -> str:
        n = len(methods(self))
        return f"<scion generic {self.name}({', '.join(self.dispatch_args)}) with {n} method(s)>"


def new_generic(name: str, dispatch_args: Sequence[str], fun: Optional[Callable] = None) -> Generic:
    return Generic(name, dispatch_args, fun=fun)


# =================================================================
# Signatures
# =================================================================

def normalize_signature(generic: Generic, signature: Any) -> Tuple[Any, ...]:
    """Turns a class spec or sequence of class specs into a descriptor tuple of the right length."""
    if not isinstance(signature, (list, tuple)):
        signature = (signature,)
    if len(signature) != len(generic.dispatch_args):
        raise SignatureArityError(generic.name, len(generic.dispatch_args), len(signature))
    return tuple(as_class(c, arg=f"signature[{i}]") for i, c in enumerate(signature))


def check_method(generic: Generic, impl: Callable) -> None:
    """Checks that impl's parameters line up with the generic's contract."""
    if not callable(impl):
        raise IncompatibleMethodError(generic.name, "method must be callable")
    try:
        sig = inspect.signature(impl)
    except (TypeError, ValueError):
        raise IncompatibleMethodError(generic.name, "can't read the method's signature")

    have = _positional_names(sig)
    want = list(generic.params)
    if generic.variadic:
        n = min(len(have), len(want))
        ok = have[:n] == want[:n]
    else:
        ok = have == want
    if not ok:
        raise IncompatibleMethodError(
            generic.name,
            f"arguments must be ({', '.join(want)}) in that order, not ({', '.join(have)})",
        )
    if not _has_var_tail(sig):
        accepted = _named_params(sig)
        missing = [d for d in generic.dispatch_args if d not in accepted]
        if missing:
            raise IncompatibleMethodError(
                generic.name, f"method does not accept dispatch argument(s) {', '.join(missing)}"
            )


def _expand(signature: Tuple[Any, ...]) -> List[Tuple[str, ...]]:
    """Registration keys for a signature; unions contribute one key per member."""
    options = []
    for c in signature:
        members = c.classes if isinstance(c, Union) else (c,)
        options.append([class_register(m) for m in members])
    return list(itertools.product(*options))


# =================================================================
# Tables
# =================================================================

def lookup_exact(table: Dict[str, Any], keys: Sequence[str]) -> Optional[Callable]:
    node: Any = table
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def _insert(table: Dict[str, Any], keys: Sequence[str], impl: Callable) -> Dict[str, Any]:
    new = dict(table)
    if len(keys) == 1:
        new[keys[0]] = impl
    else:
        new[keys[0]] = _insert(table.get(keys[0], {}), keys[1:], impl)
    return new


def _remove(table: Dict[str, Any], keys: Sequence[str]) -> Dict[str, Any]:
    new = dict(table)
    if len(keys) == 1:
        del new[keys[0]]
    else:
        child = _remove(table[keys[0]], keys[1:])
        if child:
            new[keys[0]] = child
        else:
            del new[keys[0]]
    return new


def register_method(generic: Generic, signature: Any, impl: Callable) -> Callable:
    """Registers impl for a signature; an existing registration is replaced."""
    if not isinstance(generic, Generic):
        raise TypeError(f"`generic` must be a scion generic, not {type(generic).__name__}")
    signature = normalize_signature(generic, signature)
    check_method(generic, impl)
    with generic._lock:
        table = generic.methods_table
        for keys in _expand(signature):
            if lookup_exact(table, keys) is not None:
                _dbg("register_method()", generic.name, "replacing", keys)
            table = _insert(table, keys, impl)
        generic.methods_table = table
    _dbg("register_method()", generic.name, [class_desc(c) for c in signature])
    return impl


def method(generic: Generic, signature: Any) -> Callable[[Callable], Callable]:
    """Decorator form of register_method."""
    def decorator(impl: Callable) -> Callable:
        register_method(generic, signature, impl)
        return impl
    return decorator


def remove_method(generic: Generic, signature: Any) -> None:
    signature = normalize_signature(generic, signature)
    with generic._lock:
        table = generic.methods_table
        for keys in _expand(signature):
            if lookup_exact(table, keys) is None:
                raise MethodNotFoundError(
                    generic.name, list(zip(generic.dispatch_args, [class_desc(c) for c in signature]))
                )
            table = _remove(table, keys)
        generic.methods_table = table
    _dbg("remove_method()", generic.name, [class_desc(c) for c in signature])


def methods(generic: Generic) -> List[Tuple[Tuple[str, ...], Callable]]:
    """Every registration as (keys, impl), in registration-table order."""
    out = []

    def walk(node, prefix):
        for key, value in node.items():
            if len(prefix) + 1 == len(generic.dispatch_args):
                out.append((prefix + (key,), value))
            else:
                walk(value, prefix + (key,))

    walk(generic.methods_table, ())
    return out


__all__ = [
    "Generic",
    "new_generic",
    "normalize_signature",
    "check_method",
    "register_method",
    "method",
    "remove_method",
    "methods",
    "lookup_exact",
]
