import pytest

from flume.flume_datatypes import (
    Scope, Variable, Lambda, Literal, Name, Group, BinaryOp, Token, Location,
    FlumeError, LexError, ParseError, EvalError, type_name,
)


@pytest.fixture
def parent():
    scope = Scope()
    scope.add('a', Variable([1.0]))
    return scope


def test_child_scope_copies_bindings(parent):
    child = Scope(parent)
    assert 'a' in child
    assert child.get('a') is parent.get('a')


def test_new_names_do_not_leak_between_scopes(parent):
    child = Scope(parent)
    child.add('b', Variable([2.0]))
    parent.add('c', Variable([3.0]))
    assert 'b' not in parent
    assert 'c' not in child
    assert sorted(child.keys()) == ['a', 'b']


def test_in_place_replace_is_visible_through_copies(parent):
    child = Scope(parent)
    grandchild = Scope(child)
    parent.get('a').replace([9.0, 10.0])
    assert list(grandchild.get('a')) == [9.0, 10.0]


def test_rebinding_breaks_sharing(parent):
    child = Scope(parent)
    old = parent.get('a')
    child.add('a', Variable([5.0]))
    assert parent.get('a') is old
    assert list(parent.get('a')) == [1.0]


def test_unknown_variable(parent):
    assert parent.get_some('nope') is None
    with pytest.raises(EvalError) as exc:
        parent.get('nope', Location(3, 4))
    assert "unknown variable 'nope'" in str(exc.value)
    assert exc.value.loc == Location(3, 4)


def test_scope_keys_must_be_strings():
    with pytest.raises(TypeError):
        Scope().add(1, Variable())


def test_variable_is_a_mutable_sequence():
    v = Variable([1.0, 2.0])
    v.append(3.0)
    v[0] = 0.0
    del v[1]
    assert list(v) == [0.0, 3.0]
    assert len(v) == 2
    v.replace([])
    assert len(v) == 0


@pytest.mark.parametrize("value, expected", [
    (1.5, "number"),
    (3, "number"),
    (True, "boolean"),
    ("s", "string"),
    ((1.0, 2.0), "tuple"),
    (Lambda([], Scope(), Group([])), "lambda"),
])
def test_type_name(value, expected):
    assert type_name(value) == expected


def test_type_name_rejects_host_values():
    with pytest.raises(TypeError):
        type_name(None)


def test_literal_tags():
    assert Literal(1.0).tag == "number"
    assert Literal("x").tag == "string"
    assert Literal(False).tag == "boolean"
    assert Name("x").tag == "variable"
    assert Group([]).tag == "tuple"


def test_binary_op_rejects_unknown_operator():
    with pytest.raises(ValueError):
        BinaryOp('call', Group([]), Name('f'))


def test_lambda_repr_and_equality():
    body = Name("a")
    f = Lambda(["a", "b"], Scope(), body)
    assert repr(f) == "<lambda(a, b)>"
    assert f == Lambda(["a", "b"], Scope(), Name("a"))
    assert f != Lambda(["a"], Scope(), body)


def test_token_repr_and_location_str():
    assert str(Location(2, 3)) == "2:3"
    assert repr(Token('identifier', Location(1, 1), 'x')) == "<identifier 'x' at 1:1>"
    assert repr(Token('comma', Location(1, 4))) == "<comma at 1:4>"


def test_error_kinds():
    assert issubclass(LexError, FlumeError)
    assert LexError("x").kind == "LexError"
    assert ParseError("x").kind == "ParseError"
    assert EvalError("x").kind == "RuntimeError"
    assert EvalError("boom").loc is None
