import math

import pytest

from flume.flume_printer import Printer, to_text, format_number, format_tokens, format_ast
from flume.flume_lexer import tokenize
from flume.flume_parser import parse
from flume.flume_datatypes import Lambda, Scope, Group


@pytest.fixture
def printer():
    return Printer()


# Test cases: (id, value, to_text, pformat)
FORMAT_TEST_CASES = [
    ("int_like", 3.0, "3", "3"),
    ("negative", -2.0, "-2", "-2"),
    ("fraction", 0.5, "0.5", "0.5"),
    ("pi", 3.1415926535, "3.1415926535", "3.1415926535"),
    ("true", True, "true", "true"),
    ("false", False, "false", "false"),
    ("string", "hi", "hi", '"hi"'),
    ("escaped_string", 'a"b\n\x01', 'a"b\n\x01', '"a\\"b\\n\\x01"'),
    ("tuple", (1.0, "x", (2.0,)), "(1, x, (2))", '(1, "x", (2))'),
    ("empty_tuple", (), "()", "()"),
    ("lambda", Lambda(["a", "b"], Scope(), Group([])), "<lambda(a, b)>", "<lambda(a, b)>"),
]


@pytest.mark.parametrize("value, text, formatted", [c[1:] for c in FORMAT_TEST_CASES],
                         ids=[c[0] for c in FORMAT_TEST_CASES])
def test_value_rendering(printer, value, text, formatted):
    assert to_text(value) == text
    assert printer.pformat(value) == formatted


def test_value_list(printer):
    assert printer.pformat([1.0, "x"]) == '1, "x"'
    assert printer.pformat([]) == ""


@pytest.mark.parametrize("x, expected", [
    (math.inf, "Infinity"),
    (-math.inf, "-Infinity"),
    (math.nan, "NaN"),
    (-0.0, "0"),
    (1e21, "1e+21"),
    (12.0, "12"),
    (1e-7, "1e-7"),
    (1.5e-7, "1.5e-7"),
    (5e-324, "5e-324"),
    (-2.5e-10, "-2.5e-10"),
    (1.5e300, "1.5e+300"),
])
def test_format_number(x, expected):
    assert format_number(x) == expected


def test_to_text_rejects_host_values():
    with pytest.raises(TypeError):
        to_text(None)


# --- Tokens ---

def test_format_tokens():
    text = format_tokens(tokenize('(x) -> "s"\n3.5 false'))
    assert text.splitlines() == [
        "1:1:lparen",
        "1:2:identifier: x",
        "1:3:rparen",
        "1:5:assign",
        "1:8:string: s",
        "2:1:number: 3.5",
        "2:5:boolean: false",
    ]


def test_format_tokens_empty():
    assert format_tokens([]) == ""


# --- AST ---

def test_format_ast_pipeline():
    assert format_ast(parse("(1) |> show"), color=False).splitlines() == [
        "1:5:pipeline:",
        "│ 1:1:tuple: (",
        "│ ╰ 1:2:number: 1",
        "│   )",
        "╰ 1:8:variable: show",
    ]


def test_format_ast_lambda():
    assert format_ast(parse("(x, y) => x"), color=False).splitlines() == [
        "1:1:lambda (x, y):",
        "╰ 1:11:variable: x",
    ]


def test_format_ast_tuple_children():
    assert format_ast(parse('(true, "s")'), color=False).splitlines() == [
        "1:1:tuple: (",
        "│ 1:2:boolean: true",
        '╰ 1:8:string: s',
        "  )",
    ]


def test_format_ast_color_uses_gray_connectors():
    text = format_ast(parse("(1) |> show"))
    assert "\x1b[90m╰\x1b[0m" in text
    assert "\x1b[2D)" in text
