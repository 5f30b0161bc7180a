import pytest

from flume.flume_parser import parse
from flume.flume_datatypes import (
    Literal, Name, Group, LambdaDef, BinaryOp, Location, ParseError,
)


def test_one_parameter_lambda():
    ast = parse("(x) => x")
    assert ast == LambdaDef([Name("x")], Name("x"))
    assert ast.param_names == ["x"]


def test_parenthesised_name_is_a_group():
    assert parse("(x)") == Group([Name("x")])


def test_empty_group_and_nullary_lambda():
    assert parse("()") == Group([])
    assert parse("() => 1") == LambdaDef([], Literal(1.0))


def test_multi_parameter_lambda():
    assert parse("(a, b) => (b, a)") == LambdaDef(
        [Name("a"), Name("b")], Group([Name("b"), Name("a")])
    )


def test_lambda_body_extends_over_binary_operators():
    ast = parse("(x) => x |> show")
    assert ast == LambdaDef([Name("x")], BinaryOp('pipeline', Name("x"), Name("show")))


def test_lambda_nested_in_tuple():
    ast = parse("((a) => a, 1)")
    assert ast == Group([LambdaDef([Name("a")], Name("a")), Literal(1.0)])


def test_tuple_containing_lambda_is_not_lambda_shaped():
    # The outer parens are followed by `->`, not `=>`.
    ast = parse("((r) => r) -> f")
    assert isinstance(ast, BinaryOp) and ast.op == 'assign'
    assert ast.lhs == Group([LambdaDef([Name("r")], Name("r"))])


def test_binary_operators_fold_left():
    ast = parse("(1) |> a -> b ->> c")
    assert ast == BinaryOp(
        'mutate',
        BinaryOp('assign', BinaryOp('pipeline', Group([Literal(1.0)]), Name("a")), Name("b")),
        Name("c"),
    )


def test_pipeline_rhs_may_be_any_value():
    assert parse("(1) |> (2, 3)").rhs == Group([Literal(2.0), Literal(3.0)])
    assert parse('(1) |> "s"').rhs == Literal("s")
    assert parse("(1) |> (x) => x").rhs == LambdaDef([Name("x")], Name("x"))


def test_literals():
    assert parse("true") == Literal(True)
    assert parse('"hi"') == Literal("hi")
    assert parse("2.5") == Literal(2.5)
    assert parse("true") != Literal(1.0)


def test_node_locations():
    ast = parse("(1) |> show")
    assert ast.loc == Location(1, 5)
    assert ast.lhs.loc == Location(1, 1)
    assert ast.lhs.items[0].loc == Location(1, 2)
    assert ast.rhs.loc == Location(1, 8)
    assert parse("\n  (x) => x").loc == Location(2, 3)


@pytest.mark.parametrize("source, message", [
    ("(1) -> 2", "expected token identifier, got number"),
    ("(1) ->> (x)", "expected token identifier, got lparen"),
    ("(1))", "unexpected token rparen"),
    ("(1) 2", "invalid expression"),
    ("_", "expected a value, got shorthand"),
    ("(1, 2", "finished token stream"),
    ("", "finished token stream"),
    ("((1, 2)) => x", "expected token identifier, got lparen"),
    ("(x) =>", "finished token stream"),
    ("(1) |>", "finished token stream"),
])
def test_parse_errors(source, message):
    with pytest.raises(ParseError) as exc:
        parse(source)
    assert message in str(exc.value)


def test_parse_error_carries_location():
    with pytest.raises(ParseError) as exc:
        parse("(1)\n  -> 2")
    assert exc.value.loc == Location(2, 6)
