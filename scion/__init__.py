"""
SCION: classes, validated properties, and multiple dispatch that work the
same across native objects, builtin values, informally tagged values and
ordinary Python classes.
"""

from scion.scion_errors import (
    ScionError, InvalidClassSpec, DuplicatePropertyError, UnknownPropertyError,
    ReadOnlyPropertyError, PropertyTypeError, ValidationError, ConstructorError,
    InvalidSignatureError, SignatureArityError, IncompatibleMethodError,
    MethodNotFoundError,
)
from scion.scion_host import MISSING, Tagged
from scion.scion_classes import (
    ROOT_NAME, class_missing, class_any, BaseClass, InformalClass, FormalClass,
    Union, Class, class_none, class_bool, class_int, class_float, class_complex,
    class_str, class_bytes, class_list, class_tuple, class_dict, class_function,
    class_numeric, class_atomic, scion_object, new_class, new_union,
    new_informal_class, find_class, as_class, class_type, class_desc, class_dispatch,
    class_register, class_inherits, obj_desc, obj_dispatch,
)
from scion.scion_props import Property, new_property, constructor_args
from scion.scion_object import (
    Object, construct, new_object, get_prop, set_prop, set_props, props, class_of,
    object_data, validate, validation_errors,
)
from scion.scion_generics import (
    Generic, new_generic, register_method, method, remove_method, methods,
)
from scion.scion_dispatch import (
    Upcast, upcast, dispatch, lookup_method, method_explain,
)
from scion.scion_serialize import serialize, deserialize

__version__ = "0.1.0"

# Importing the `scion.scion_object` submodule binds the package attribute
# `scion_object` to that module; restore the root class exported above.
from scion.scion_classes import scion_object  # noqa: E402,F811
