"""
Defines the core data types for the Flume language runtime.

This module provides the located tokens and AST nodes produced by the
front-end, the runtime values the evaluator works with, and the
Variable/Scope binding model.
"""

from abc import ABC
from dataclasses import dataclass
from typing import List, Dict, Any, Optional
import collections.abc


# =================================================================
# Locations and Errors
# =================================================================

@dataclass(frozen=True)
class Location:
    """A 1-based source position."""
    line: int = 1
    col: int = 1

    def __str__(self) -> str:
        return f"{self.line}:{self.col}"


class FlumeError(Exception):
    """Base class for every error the Flume pipeline reports."""
    kind = "Error"

    def __init__(self, message: str, loc: Optional[Location] = None):
        super().__init__(message)
        self.message = message
        self.loc = loc


class LexError(FlumeError):
    kind = "LexError"


class ParseError(FlumeError):
    kind = "ParseError"


class EvalError(FlumeError):
    """A failure while evaluating a well-formed program."""
    kind = "RuntimeError"


# =================================================================
# Tokens
# =================================================================

# Tags of the tokens that carry no payload.
PUNCTUATION_TAGS = (
    'lparen', 'rparen', 'comma', 'shorthand',
    'arrow', 'pipeline', 'assign', 'mutate',
)
VALUE_TAGS = ('identifier', 'number', 'string', 'boolean')


@dataclass(frozen=True)
class Token:
    tag: str
    loc: Location
    value: Any = None

    def __repr__(self) -> str:
        if self.tag in VALUE_TAGS:
            return f"<{self.tag} {self.value!r} at {self.loc}>"
        return f"<{self.tag} at {self.loc}>"


# =================================================================
# AST Nodes
# =================================================================

class Expr(ABC):
    """Abstract base class for all located AST nodes."""
    tag = "expr"

    def __init__(self, loc: Optional[Location] = None):
        self.loc = loc or Location()


class Literal(Expr):
    """A number, string or boolean literal."""
    def __init__(self, value: Any, loc: Optional[Location] = None):
        super().__init__(loc)
        self.value = value

    @property
    def tag(self) -> str:
        return type_name(self.value)

    def __repr__(self):
        return f"Literal({self.value!r})"

    def __eq__(self, other):
        if not isinstance(other, Literal):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value


class Name(Expr):
    """A variable reference."""
    tag = "variable"

    def __init__(self, text: str, loc: Optional[Location] = None):
        super().__init__(loc)
        self.text = text

    def __repr__(self):
        return f"Name({self.text!r})"

    def __eq__(self, other):
        return isinstance(other, Name) and self.text == other.text


class Group(Expr):
    """A parenthesised, comma-separated tuple of expressions."""
    tag = "tuple"

    def __init__(self, items: List[Expr], loc: Optional[Location] = None):
        super().__init__(loc)
        self.items = list(items)

    def __repr__(self):
        return f"Group({self.items!r})"

    def __eq__(self, other):
        return isinstance(other, Group) and self.items == other.items


class LambdaDef(Expr):
    """A lambda literal: `(a, b) => body`."""
    tag = "lambda"

    def __init__(self, params: List[Name], body: Expr, loc: Optional[Location] = None):
        super().__init__(loc)
        self.params = list(params)
        self.body = body

    @property
    def param_names(self) -> List[str]:
        return [p.text for p in self.params]

    def __repr__(self):
        return f"LambdaDef({self.param_names!r}, {self.body!r})"

    def __eq__(self, other):
        return isinstance(other, LambdaDef) and self.params == other.params and self.body == other.body


# Binary operators, keyed by the token tag that introduces them.
BINARY_OPS = ('pipeline', 'assign', 'mutate')


class BinaryOp(Expr):
    """`lhs |> rhs`, `lhs -> name` or `lhs ->> name`."""
    tag = "binary"

    def __init__(self, op: str, lhs: Expr, rhs: Expr, loc: Optional[Location] = None):
        if op not in BINARY_OPS:
            raise ValueError(f"unknown binary operator {op!r}")
        super().__init__(loc)
        self.op = op
        self.lhs = lhs
        self.rhs = rhs

    def __repr__(self):
        return f"BinaryOp({self.op!r}, {self.lhs!r}, {self.rhs!r})"

    def __eq__(self, other):
        return (
            isinstance(other, BinaryOp)
            and self.op == other.op
            and self.lhs == other.lhs
            and self.rhs == other.rhs
        )


# =================================================================
# Runtime Values
# =================================================================

class FlumeCallable(ABC):
    """Abstract base class for all objects callable within Flume."""
    pass


class Lambda(FlumeCallable):
    """A closure: parameter names, the body, and the scope it was defined in."""
    def __init__(self, params: List[str], scope: 'Scope', body: Expr):
        self.params = list(params)
        self.scope = scope
        self.body = body

    def __repr__(self) -> str:
        return f"<lambda({', '.join(self.params)})>"

    def __eq__(self, other):
        if not isinstance(other, Lambda):
            return NotImplemented
        # NOTE: captured scope comparison is intentionally omitted.
        return self.params == other.params and self.body == other.body


def type_name(value: Any) -> str:
    """Returns the Flume tag name of a runtime value."""
    match value:
        case bool():
            return "boolean"
        case float() | int():
            return "number"
        case str():
            return "string"
        case tuple():
            return "tuple"
        case Lambda():
            return "lambda"
    raise TypeError(f"not a Flume value: {value!r}")


# =================================================================
# Bindings
# =================================================================

class Variable(collections.abc.MutableSequence):
    """
    The shared, mutable cell bound to a name.

    Scopes copy their name -> Variable mapping, never the Variable itself,
    so an in-place `replace` is observed by every scope holding the cell.
    """
    def __init__(self, values=()):
        self.values = list(values)

    def __getitem__(self, index):
        return self.values[index]

    def __setitem__(self, index, value):
        self.values[index] = value

    def __delitem__(self, index):
        del self.values[index]

    def __len__(self) -> int:
        return len(self.values)

    def insert(self, index, value):
        self.values.insert(index, value)

    def replace(self, values):
        """Swaps the cell's contents in place, keeping its identity."""
        self.values[:] = list(values)

    def __repr__(self) -> str:
        return f"Variable({self.values!r})"


class Scope:
    """Maps binding names to Variable cells.

    A child scope starts as a copy of its parent's mapping at creation
    time; it is not a lookup chain. Adding or removing names in one scope
    never affects another, while the cells themselves stay shared.
    """
    def __init__(self, parent: Optional['Scope'] = None):
        self.bindings: Dict[str, Variable] = dict(parent.bindings) if parent is not None else {}

    def add(self, name: str, variable: Variable):
        if not isinstance(name, str):
            raise TypeError(f"Scope key must be a str, not {type(name)}")
        self.bindings[name] = variable

    def get_some(self, name: str) -> Optional[Variable]:
        return self.bindings.get(name)

    def get(self, name: str, loc: Optional[Location] = None) -> Variable:
        variable = self.bindings.get(name)
        if variable is None:
            raise EvalError(f"unknown variable '{name}'", loc)
        return variable

    def __contains__(self, name: Any) -> bool:
        return name in self.bindings

    def keys(self) -> collections.abc.KeysView[str]:
        return self.bindings.keys()

    def __len__(self) -> int:
        return len(self.bindings)

    def __repr__(self) -> str:
        return f"<Scope names={sorted(self.bindings)!r}>"
