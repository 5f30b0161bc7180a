"""
Recursive-descent parser producing the located Flume AST.

    expr     := value { ('|>' value) | ('->' variable) | ('->>' variable) }
    value    := tuple | lambda | variable | number | string | boolean
    tuple    := '(' [ expr { ',' expr } ] ')'
    lambda   := '(' [ variable { ',' variable } ] ')' '=>' expr
"""
from typing import Union

from flume.flume_datatypes import (
    Expr, Literal, Name, Group, LambdaDef, BinaryOp, ParseError,
)
from flume.flume_lexer import Lexer

# Tokens that end an expression without being consumed by it.
EXPR_TERMINATORS = ('rparen', 'comma')


class FlumeParser:
    def __init__(self, lexer: Lexer):
        self.lexer = lexer

    def parse(self) -> Expr:
        """Parses exactly one expression spanning the whole token stream."""
        expr = self.parse_expr()
        t = self.lexer.try_peek()
        if t is not None:
            raise ParseError(f"unexpected token {t.tag}", t.loc)
        return expr

    def parse_variable(self) -> Name:
        t = self.lexer.expect('identifier')
        return Name(t.value, t.loc)

    def parse_tuple(self) -> Group:
        loc = self.lexer.expect('lparen').loc
        items = []
        if self.lexer.peek().tag != 'rparen':
            items.append(self.parse_expr())
            while self.lexer.peek().tag == 'comma':
                self.lexer.next()
                items.append(self.parse_expr())
        self.lexer.expect('rparen')
        return Group(items, loc)

    def is_lambda(self) -> bool:
        """Scans past the balanced parens ahead and checks for a following `=>`."""
        n = 1
        if self.lexer.peek(n).tag != 'lparen':
            return False
        n += 1
        depth = 1
        while depth > 0:
            t = self.lexer.peek(n)
            n += 1
            if t.tag == 'lparen':
                depth += 1
            elif t.tag == 'rparen':
                depth -= 1
        following = self.lexer.try_peek(n)
        return following is not None and following.tag == 'arrow'

    def parse_lambda(self) -> LambdaDef:
        loc = self.lexer.expect('lparen').loc
        params = []
        if self.lexer.peek().tag != 'rparen':
            params.append(self.parse_variable())
            while self.lexer.peek().tag == 'comma':
                self.lexer.next()
                params.append(self.parse_variable())
        self.lexer.expect('rparen')
        self.lexer.expect('arrow')
        body = self.parse_expr()
        return LambdaDef(params, body, loc)

    def parse_tuple_or_lambda(self) -> Union[Group, LambdaDef]:
        if self.is_lambda():
            return self.parse_lambda()
        return self.parse_tuple()

    def parse_value(self) -> Expr:
        t = self.lexer.peek()
        match t.tag:
            case 'lparen':
                return self.parse_tuple_or_lambda()
            case 'identifier':
                return self.parse_variable()
            case 'number' | 'string' | 'boolean':
                self.lexer.next()
                return Literal(t.value, t.loc)
            case _:
                raise ParseError(f"expected a value, got {t.tag}", t.loc)

    def parse_expr(self) -> Expr:
        expr = self.parse_value()
        t = self.lexer.try_peek()
        while t is not None and t.tag not in EXPR_TERMINATORS:
            match t.tag:
                case 'pipeline':
                    self.lexer.next()
                    expr = BinaryOp('pipeline', expr, self.parse_value(), t.loc)
                case 'assign' | 'mutate':
                    self.lexer.next()
                    expr = BinaryOp(t.tag, expr, self.parse_variable(), t.loc)
                case _:
                    raise ParseError("invalid expression", t.loc)
            t = self.lexer.try_peek()
        return expr


def parse(source: str) -> Expr:
    """Lexes and parses a complete Flume program."""
    return FlumeParser(Lexer(source)).parse()
