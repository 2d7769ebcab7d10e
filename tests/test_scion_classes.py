import collections

import pytest

from scion import (
    MISSING, Tagged, InvalidClassSpec, FormalClass, Union,
    class_any, class_missing, class_int, class_float, class_str, class_none,
    class_bool, class_function, class_numeric, scion_object, ROOT_NAME,
    new_class, new_union, new_informal_class, as_class, class_type, class_desc,
    class_dispatch, class_register, class_inherits, obj_desc, obj_dispatch, find_class,
)
from scion.scion_classes import class_construct, class_validate, class_friendly, obj_type


class Shape:
    pass


class Square(Shape):
    def __init__(self, side=1):
        self.side = side

    def __validate__(self):
        if self.side < 0:
            return "side must be non-negative"
        return None


# --- Classification ---

def test_class_type_covers_every_kind():
    foo = new_class("Foo")
    assert class_type(class_missing) == 'missing'
    assert class_type(class_any) == 'any'
    assert class_type(class_int) == 'base'
    assert class_type(foo) == 'native'
    assert class_type(class_numeric) == 'union'
    assert class_type(new_informal_class("factor")) == 'informal'
    assert class_type(FormalClass(Shape)) == 'formal'


def test_class_type_rejects_other_values():
    with pytest.raises(InvalidClassSpec):
        class_type(42)


def test_as_class_maps_python_types():
    assert as_class(int) is class_int
    assert as_class(str) is class_str
    assert as_class(bool) is class_bool
    assert as_class(None) is class_none
    assert as_class(type(lambda: 0)) is class_function
    formal = as_class(Shape)
    assert isinstance(formal, FormalClass)
    assert formal.handle is Shape
    assert as_class(Shape) == formal


def test_as_class_error_names_argument():
    with pytest.raises(InvalidClassSpec) as e:
        as_class("int", arg="type")
    assert "`type`" in str(e.value)
    assert "<str>" in str(e.value)


# --- Ancestor chains ---

def test_native_chain_is_name_plus_parent_chain():
    a = new_class("A")
    b = new_class("B", parent=a)
    c = new_class("C", parent=b)
    assert class_dispatch(a) == ["A", ROOT_NAME]
    assert class_dispatch(c) == ["C"] + class_dispatch(b)
    assert class_dispatch(c) == ["C", "B", "A", ROOT_NAME]
    assert class_dispatch(scion_object) == [ROOT_NAME]


def test_native_chain_with_base_and_informal_parents():
    text = new_class("Text", parent=str)
    assert class_dispatch(text) == ["Text", "str", ROOT_NAME]
    factor = new_informal_class(["factor", "vector"])
    labelled = new_class("Labelled", parent=factor)
    assert class_dispatch(labelled) == ["Labelled", "factor", "vector", ROOT_NAME]


def test_chain_of_specials_and_foreign_classes():
    assert class_dispatch(class_missing) == ["MISSING"]
    assert class_dispatch(class_any) == []
    assert class_dispatch(class_int) == ["int"]
    assert class_dispatch(new_informal_class(["a", "b"])) == ["a", "b"]
    assert class_dispatch(as_class(Square)) == [
        f"{__name__}::Square", f"{__name__}::Shape", "builtins::object"
    ]
    with pytest.raises(InvalidClassSpec):
        class_dispatch(class_numeric)


def test_obj_dispatch_per_value_kind():
    point = new_class("Point")
    assert obj_dispatch(1) == ["int"]
    assert obj_dispatch(True) == ["bool"]
    assert obj_dispatch(None) == ["None"]
    assert obj_dispatch(MISSING) == ["MISSING"]
    assert obj_dispatch(Tagged(1, ["ordered", "factor"])) == ["ordered", "factor"]
    assert obj_dispatch(point()) == ["Point", ROOT_NAME]
    assert obj_dispatch(collections.OrderedDict())[0] == "collections::OrderedDict"


# --- Registration keys ---

def test_register_keys():
    assert class_register(class_missing) == "MISSING"
    assert class_register(class_any) == "ANY"
    assert class_register(class_int) == "int"
    assert class_register(new_class("Widget")) == "Widget"
    assert class_register(new_informal_class(["ordered", "factor"])) == "ordered"
    assert class_register(as_class(Shape)) == f"{__name__}::Shape"


def test_native_names_cannot_collide_with_other_keys():
    for bad in ["MISSING", "ANY", ROOT_NAME, "int", "mod::Cls", ""]:
        with pytest.raises(InvalidClassSpec):
            new_class(bad)


# --- is-a ---

def test_class_inherits_native():
    a = new_class("A")
    b = new_class("B", parent=a)
    other = new_class("Other")
    assert class_inherits(b(), a)
    assert class_inherits(b(), scion_object)
    assert not class_inherits(a(), b)
    assert not class_inherits(other(), a)
    assert not class_inherits(1, a)


def test_class_inherits_base_and_specials():
    assert class_inherits(1, class_int)
    assert not class_inherits(True, class_int)
    assert not class_inherits(1.0, class_int)
    assert class_inherits(1.0, class_numeric)
    assert class_inherits("x", class_any)
    assert class_inherits(None, class_none)
    assert class_inherits(MISSING, class_missing)
    assert not class_inherits(None, class_missing)
    assert not class_inherits(MISSING, class_int)


def test_class_inherits_informal_is_containment_only():
    factor = new_informal_class(["ordered", "factor"])
    assert class_inherits(Tagged(1, ["ordered", "factor"]), factor)
    # Order and contiguity are not checked.
    assert class_inherits(Tagged(1, ["factor", "x", "ordered"]), factor)
    assert not class_inherits(Tagged(1, ["factor"]), factor)
    assert not class_inherits(1, factor)


def test_class_inherits_formal():
    assert class_inherits(Square(), as_class(Shape))
    assert not class_inherits(Shape(), as_class(Square))
    assert not class_inherits(new_class("Plain")(), as_class(Shape))


def test_native_objects_carry_informal_tags():
    a = new_class("Animal")
    dog = new_class("Dog", parent=a)
    assert class_inherits(dog(), new_informal_class("Animal"))


# --- Unions ---

def test_new_union_flattens_and_dedupes():
    u = new_union(int, new_union(float, int), str)
    assert isinstance(u, Union)
    assert u.classes == (class_int, class_float, class_str)
    assert new_union(int, int) is class_int


def test_union_membership_and_description():
    u = new_union(int, str)
    assert class_inherits("a", u)
    assert class_inherits(3, u)
    assert not class_inherits(3.0, u)
    assert class_desc(u) == "<int> or <str>"
    assert class_desc(new_union(int, str, float)) == "<int>, <str>, or <float>"


# --- Descriptions ---

def test_descriptions():
    point = new_class("Point")
    assert class_desc(point) == "<Point>"
    assert class_desc(class_missing) == "<MISSING>"
    assert class_desc(new_informal_class(["a", "b"])) == "informal<a/b>"
    assert class_desc(as_class(Shape)) == f"formal<{__name__}::Shape>"
    assert obj_desc(point()) == "<Point>"
    assert obj_desc(1.5) == "<float>"
    assert obj_desc(Tagged(None, "a")) == "informal<a>"
    assert obj_desc(Square()) == f"formal<{__name__}::Square>"
    assert class_friendly(class_numeric) == "a scion union"
    assert obj_type(Square()) == 'formal'


# --- Construction & validation hooks ---

def test_class_construct_every_kind():
    point = new_class("Point2", properties={"x": int})
    assert class_construct(class_int) == 0
    assert class_construct(class_str, "a") == "a"
    assert class_construct(class_numeric) == 0
    assert class_construct(point, x=2).x == 2
    assert class_construct(as_class(Square), 3).side == 3
    assert class_construct(new_informal_class("factor"), [1]) == Tagged([1], ["factor"])
    with pytest.raises(InvalidClassSpec):
        class_construct(class_any)
    with pytest.raises(InvalidClassSpec):
        class_construct(class_missing)


def test_class_validate_uses_formal_hook():
    assert class_validate(as_class(Square), Square(2)) is None
    assert class_validate(as_class(Square), Square(-1)) == "side must be non-negative"
    assert class_validate(as_class(Shape), Shape()) is None


def test_informal_classes_are_keyed_by_their_first_tag():
    assert class_register(new_informal_class("ordered")) == "ordered"
    assert class_register(new_informal_class(["ordered", "factor"])) == "ordered"
    assert class_register(new_informal_class("int")) == class_register(class_int)


def test_find_class_returns_latest_class_of_a_name():
    first = new_class("Findable")
    assert find_class("Findable") is first
    second = new_class("Findable")
    assert find_class("Findable") is second
    assert find_class(ROOT_NAME) is scion_object
    assert find_class("NoSuchClass") is None
