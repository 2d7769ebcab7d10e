"""
Error types raised by the SCION runtime.

Every error derives from ScionError so callers can catch the whole family.
Errors carry the structured details used to build their message.
"""

from typing import List, Optional, Sequence


class ScionError(Exception):
    """Base class for all SCION runtime errors."""
    pass


class InvalidClassSpec(ScionError):
    """A value could not be interpreted as a class specification."""
    def __init__(self, message: str, value=None):
        super().__init__(message)
        self.value = value


class DuplicatePropertyError(ScionError):
    def __init__(self, name: str, owner: Optional[str] = None):
        where = f" (already defined by {owner})" if owner else ""
        super().__init__(f"Property '{name}' is declared more than once{where}.")
        self.name = name
        self.owner = owner


class UnknownPropertyError(ScionError, AttributeError):
    """Raised for reads and writes of names missing from the class's property table.

    Also an AttributeError so that `getattr(obj, name, default)` keeps working.
    """
    def __init__(self, obj_desc: str, name: str):
        super().__init__(f"Can't find property {obj_desc}@{name}")
        self.obj_desc = obj_desc
        self.name = name


class ReadOnlyPropertyError(ScionError):
    def __init__(self, obj_desc: str, name: str):
        super().__init__(f"Can't set read-only property {obj_desc}@{name}")
        self.obj_desc = obj_desc
        self.name = name


class PropertyTypeError(ScionError, TypeError):
    def __init__(self, obj_desc: str, name: str, expected: str, actual: str):
        super().__init__(f"{obj_desc}@{name} must be {expected}, not {actual}")
        self.obj_desc = obj_desc
        self.name = name
        self.expected = expected
        self.actual = actual


class ValidationError(ScionError):
    """An object failed its validation chain.

    `messages` holds the messages reported by the first failing validator.
    """
    def __init__(self, obj_desc: str, messages: Sequence[str]):
        self.obj_desc = obj_desc
        self.messages: List[str] = list(messages)
        if len(self.messages) == 1:
            body = self.messages[0]
        else:
            body = "\n" + "\n".join(f"- {m}" for m in self.messages)
        super().__init__(f"{obj_desc} object is invalid: {body}")


class ConstructorError(ScionError):
    """A class constructor broke the construction protocol."""
    pass


class InvalidSignatureError(ScionError):
    pass


class SignatureArityError(ScionError):
    def __init__(self, generic: str, expected: int, actual: int):
        super().__init__(
            f"Signature for generic `{generic}` must have {expected} class(es), not {actual}"
        )
        self.generic = generic
        self.expected = expected
        self.actual = actual


class IncompatibleMethodError(ScionError):
    def __init__(self, generic: str, detail: str):
        super().__init__(f"Method is not compatible with generic `{generic}`: {detail}")
        self.generic = generic
        self.detail = detail


class MethodNotFoundError(ScionError, LookupError):
    """No registered method applies to the given classes.

    `classes` pairs each dispatch argument name with the description of the
    class actually supplied.
    """
    def __init__(self, generic: str, classes: Sequence[tuple]):
        self.generic = generic
        self.classes = list(classes)
        arg_names = ", ".join(name for name, _ in self.classes)
        lines = "\n".join(f"- {name}: {desc}" for name, desc in self.classes)
        super().__init__(
            f"Can't find method for generic `{generic}({arg_names})` with classes:\n{lines}"
        )


__all__ = [
    "ScionError",
    "InvalidClassSpec",
    "DuplicatePropertyError",
    "UnknownPropertyError",
    "ReadOnlyPropertyError",
    "PropertyTypeError",
    "ValidationError",
    "ConstructorError",
    "InvalidSignatureError",
    "SignatureArityError",
    "IncompatibleMethodError",
    "MethodNotFoundError",
]
