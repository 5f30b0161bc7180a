"""
Renders Flume values, token streams and ASTs as text.
"""
import math
import re
from typing import Iterable, List

import pystache

from flume.flume_datatypes import (
    Expr, Literal, Name, Group, LambdaDef, BinaryOp, Lambda, Token,
)
from flume.flume_lexer import ESCAPES

_REVERSE_ESCAPES = {v: k for k, v in ESCAPES.items()}

GRAY = "\x1b[90m"
RESET = "\x1b[0m"
# Moves the cursor back under the tuple label before drawing its closing paren.
CURSOR_BACK_2 = "\x1b[2D"

_EXPONENT_RE = re.compile(r"e([+-])0*(\d)")

TOKEN_TEMPLATE = "{{line}}:{{col}}:{{tag}}{{#has_value}}: {{value}}{{/has_value}}"


def format_number(x) -> str:
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x == int(x) and abs(x) < 1e21:
        return str(int(x))
    # Exponents print without zero padding: 1e-7, not 1e-07.
    return _EXPONENT_RE.sub(r"e\1\2", repr(float(x)))


def to_text(value) -> str:
    """The unquoted rendering used by `to_string` and `show`."""
    match value:
        case str():
            return value
        case bool():
            return "true" if value else "false"
        case float() | int():
            return format_number(value)
        case Lambda():
            return f"<lambda({', '.join(value.params)})>"
        case tuple():
            return "(" + ", ".join(to_text(v) for v in value) + ")"
    raise TypeError(f"not a Flume value: {value!r}")


def escape_string(text: str) -> str:
    out = []
    for c in text:
        if c in _REVERSE_ESCAPES:
            out.append("\\" + _REVERSE_ESCAPES[c])
        elif ord(c) < 0x20 or ord(c) == 0x7f:
            out.append(f"\\x{ord(c):02x}")
        else:
            out.append(c)
    return "".join(out)


class Printer:
    """Formats Flume values as they would be written in source."""

    def pformat(self, obj) -> str:
        match obj:
            case list():
                return ", ".join(self.pformat(v) for v in obj)
            case str():
                return f'"{escape_string(obj)}"'
            case tuple():
                return "(" + ", ".join(self.pformat(v) for v in obj) + ")"
        return to_text(obj)


# =================================================================
# Debug presentation
# =================================================================

def _token_value_text(token: Token) -> str:
    match token.tag:
        case 'number':
            return format_number(token.value)
        case 'boolean':
            return "true" if token.value else "false"
    return str(token.value)


def format_tokens(tokens: Iterable[Token]) -> str:
    """One `line:col:tag[: value]` line per token."""
    renderer = pystache.Renderer(escape=lambda u: u)
    lines = []
    for t in tokens:
        has_value = t.value is not None
        lines.append(renderer.render(TOKEN_TEMPLATE, {
            'line': t.loc.line,
            'col': t.loc.col,
            'tag': t.tag,
            'has_value': has_value,
            'value': _token_value_text(t) if has_value else "",
        }))
    return "\n".join(lines)


def _leaf_text(node: Expr) -> str:
    match node:
        case Name():
            return f"variable: {node.text}"
        case Literal():
            value = node.value
            if isinstance(value, str):
                return f"string: {value}"
            return f"{node.tag}: {to_text(value)}"
    raise TypeError(f"not a Flume expression: {node!r}")


def format_ast(expr: Expr, color: bool = True) -> str:
    """Renders an AST as an indented tree with box-drawing connectors."""
    pipe = f"{GRAY}│{RESET} " if color else "│ "
    corner = f"{GRAY}╰{RESET} " if color else "╰ "
    close = f"{CURSOR_BACK_2})" if color else ")"

    def fmt(e: Expr) -> List[str]:
        last_index = 0
        match e:
            case BinaryOp():
                lines = [f"{e.op}:"]
                lines.extend(fmt(e.lhs))
                last_index = len(lines)
                lines.extend(fmt(e.rhs))
            case Group():
                lines = ["tuple: ("]
                for item in e.items:
                    last_index = len(lines)
                    lines.extend(fmt(item))
                lines.append(close)
            case LambdaDef():
                lines = [f"lambda ({', '.join(e.param_names)}):"]
                last_index = 1
                lines.extend(fmt(e.body))
            case _:
                lines = [_leaf_text(e)]

        out = []
        for idx, line in enumerate(lines):
            if idx == 0:
                out.append(f"{e.loc.line}:{e.loc.col}:{line}")
            elif idx < last_index:
                out.append(pipe + line)
            elif idx == last_index:
                out.append(corner + line)
            else:
                out.append("  " + line)
        return out

    return "\n".join(fmt(expr))
