# test_variables.py
from expression import literal
from variables import (Binding, Variable, default_value, format_value, lookup, make_bindings,
                       with_binding)


def test_array_normalisation():
    v = Variable("v1", "array", "arr")
    assert v.array_subtype == "integer"
    assert v.array_size == 1
    assert Variable("v1", "array", "arr", array_size=0).array_size == 1
    assert Variable("v1", "array", "arr", array_subtype="string", array_size=4).array_size == 4


def test_scalar_drops_array_fields():
    v = Variable("v1", "integer", "x", array_subtype="float", array_size=3, index_expression=[literal("1")])
    assert v.array_subtype is None
    assert v.array_size is None
    assert v.index_expression == ()
    assert not v.is_array and not v.is_indexed


def test_indexed_view():
    arr = Variable("v1", "array", "arr", array_subtype="boolean", array_size=2)
    view = arr.indexed([literal("0")])
    assert view.is_indexed
    assert view.element_type == "boolean"
    assert arr.element_type == "array"
    assert view.base() == arr
    assert view.same_as(arr)


def test_update_normalises():
    x = Variable("v1", "integer", "x")
    arr = x.update(type="array")
    assert arr.array_subtype == "integer" and arr.array_size == 1
    arr = x.update(type="array", array_subtype="float", array_size=-2)
    assert arr.array_subtype == "float" and arr.array_size == 1
    assert arr.update(type="string").array_size is None
    assert x.update(name="y").name == "y"


def test_declaration():
    assert Variable("v1", "array", "arr", array_subtype="integer", array_size=5).declaration() == "integer[5] arr"
    assert Variable("v2", "boolean", "flag").declaration() == "boolean flag"


def test_defaults():
    assert default_value(Variable("v", "string", "s")) == ""
    assert default_value(Variable("v", "integer", "n")) == 0
    assert default_value(Variable("v", "float", "r")) == 0.0
    assert default_value(Variable("v", "boolean", "b")) is False
    assert default_value(Variable("v", "array", "a", array_subtype="boolean", array_size=3)) == (False,) * 3


def test_format_value():
    assert format_value(True) == "true"
    assert format_value(2.0) == "2"
    assert format_value(2.5) == "2.5"
    assert format_value((1, 2.0, False)) == "[1, 2, false]"
    assert format_value("hola") == "hola"


def test_binding_from_variable():
    arr = Variable("v1", "array", "arr", array_subtype="integer", array_size=2)
    b = Binding.from_variable(arr.indexed([literal("0")]))
    assert b.variable == arr
    assert b.value == (0, 0)
    assert b.text() == "arr: [0, 0]"
    assert Binding.from_variable(Variable("v2", "integer", "n"), 7).text() == "n: 7"


def test_binding_never_holds_a_list():
    b = Binding(Variable("v1", "array", "arr", array_size=2), [1, 2])
    assert b.value == (1, 2)
    assert b.with_value([3, 4]).value == (3, 4)


def test_bindings_copy_on_write():
    x = Variable("v1", "integer", "x")
    first = make_bindings(Binding(x, 1))
    second = with_binding(first, Binding(x, 2))
    assert lookup(first, x).value == 1
    assert lookup(second, x).value == 2
    assert lookup(first, Variable("v9", "integer", "z")) is None


def test_round_trip():
    arr = Variable("v1", "array", "arr", node_id="n1", array_subtype="float", array_size=3)
    for v in (arr, arr.indexed([literal("2", "e1")]), Variable("v2", "string", "s", node_id="n2")):
        assert Variable.from_object(v.to_object()) == v

    obj = Variable("v2", "string", "s").to_object()
    assert set(obj) == {"id", "type", "name", "nodeId"}
    assert arr.to_object()["arraySubtype"] == "float"

    b = Binding(arr, (1.0, 2.5, 0.0))
    assert b.to_object()["value"] == [1.0, 2.5, 0.0]
    assert Binding.from_object(b.to_object()) == b
