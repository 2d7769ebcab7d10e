import inspect

import pytest

from scion import (
    DuplicatePropertyError, class_any, class_int, class_float, class_str,
    class_numeric, scion_object, new_class, new_property, constructor_args,
)
from scion.scion_props import Property, as_properties, build_table, prop_empty
from scion.scion_props import new_constructor


# --- Property specs ---

def test_new_property_defaults_to_untyped():
    p = new_property(name="x")
    assert p.type is class_any
    assert not p.dynamic
    assert not p.read_only


def test_getter_without_setter_is_read_only():
    p = new_property(getter=lambda self: 1, name="one")
    assert p.dynamic
    assert p.read_only
    q = new_property(getter=lambda self: 1, setter=lambda self, v: self, name="two")
    assert q.dynamic
    assert not q.read_only


def test_property_arguments_are_checked():
    with pytest.raises(TypeError):
        new_property(default=5)
    with pytest.raises(TypeError):
        new_property(getter="nope")
    with pytest.raises(ValueError):
        new_property(name="_hidden")
    with pytest.raises(ValueError):
        new_property(name="not an identifier")


# --- Tables ---

def test_as_properties_accepts_mapping_shorthand():
    table = as_properties({"x": int, "y": new_property(float), "z": None})
    assert list(table) == ["x", "y", "z"]
    assert table["x"].type is class_int
    assert table["y"].type is class_float
    assert table["y"].name == "y"
    assert table["z"].type is class_any


def test_as_properties_accepts_named_list():
    table = as_properties([new_property(int, name="a"), new_property(str, name="b")])
    assert list(table) == ["a", "b"]
    with pytest.raises(DuplicatePropertyError):
        as_properties([new_property(int, name="a"), new_property(str, name="a")])
    with pytest.raises(ValueError):
        as_properties([new_property(int)])


def test_build_table_appends_own_after_inherited():
    parent = as_properties({"x": int})
    own = as_properties({"y": int})
    table = build_table(parent, own)
    assert list(table) == ["x", "y"]
    assert list(parent) == ["x"]


def test_child_may_not_redeclare_parent_property():
    base = new_class("Base1", properties={"x": int})
    with pytest.raises(DuplicatePropertyError) as e:
        new_class("Child1", parent=base, properties={"x": float})
    assert e.value.name == "x"


def test_class_table_merges_parent_properties():
    base = new_class("Base2", properties={"x": int})
    child = new_class("Child2", parent=base, properties={"y": str})
    assert list(child.properties) == ["x", "y"]
    assert child.properties["x"] is base.properties["x"]


# --- Empty values ---

def test_prop_empty_values():
    assert prop_empty(Property(int, name="a")) == 0
    assert prop_empty(Property(str, name="a")) == ""
    assert prop_empty(Property(list, name="a")) == []
    assert prop_empty(Property(None, name="a")) is None
    assert prop_empty(Property(class_numeric, name="a")) == 0
    assert prop_empty(Property(int, default=lambda: 7, name="a")) == 7


def test_prop_empty_constructs_native_types():
    inner = new_class("Inner", properties={"n": int})
    value = prop_empty(Property(inner, name="a"))
    assert value.n == 0


# --- Constructor arguments ---

def test_constructor_args_no_properties():
    args = constructor_args(scion_object)
    assert args == {"self": [], "parent": []}


def test_constructor_args_own_properties():
    args = constructor_args(scion_object, as_properties({"x": class_numeric}))
    assert args["self"] == ["x"]
    assert args["parent"] == []


def test_constructor_args_skip_dynamic_properties():
    args = constructor_args(scion_object, as_properties({"x": new_property(getter=lambda self: 10)}))
    assert args["self"] == []
    assert args["parent"] == []


def test_constructor_args_include_parent_properties():
    foo = new_class("Foo1", properties={"x": class_numeric})
    args = constructor_args(foo, as_properties({"y": class_numeric}))
    assert args["self"] == ["y"]
    assert args["parent"] == ["x"]


def test_constructor_args_only_parent_constructor_arguments():
    from scion import new_object
    foo = new_class("Foo2", properties={"x": class_numeric},
                    constructor=lambda: new_object(scion_object(), x=1))
    args = constructor_args(foo, as_properties({"y": class_numeric}))
    assert args["self"] == ["y"]
    assert args["parent"] == []


def test_constructor_args_abstract_parent_moves_properties_to_self():
    foo = new_class("Foo3", abstract=True, properties={"x": float})
    args = constructor_args(foo, as_properties({"y": float}))
    assert args["self"] == ["x", "y"]
    assert args["parent"] == []


def test_default_constructor_signatures():
    foo = new_class("Foo4", properties={"x": int})
    ctor = new_constructor(foo, as_properties({"y": int}))
    assert list(inspect.signature(ctor).parameters) == ["x", "y"]
    text = new_class("Text1", parent=class_str)
    assert list(inspect.signature(text.constructor).parameters) == ["data"]
