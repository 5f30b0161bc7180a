"""
Turns Flume source text into a stream of located tokens.
"""
import re
from typing import List, Optional

from flume.flume_datatypes import Location, Token, LexError, ParseError

WHITESPACE = (" ", "\t", "\n", "\r")

SINGLE_CHAR_TOKENS = {
    "(": "lparen",
    ")": "rparen",
    ",": "comma",
}

ESCAPES = {
    "a": "\a",
    "b": "\b",
    "e": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
}

_NUMBER_RE = re.compile(r"\d+(\.\d+)?")
_HEX_DIGITS = "0123456789abcdefABCDEF"


class _Source:
    """Character cursor that tracks the location of the next character."""
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.col = 1

    def location(self) -> Location:
        return Location(self.line, self.col)

    def peek(self, n: int = 1) -> Optional[str]:
        i = self.pos + n - 1
        return self.text[i] if i < len(self.text) else None

    def next(self) -> Optional[str]:
        if self.pos >= len(self.text):
            return None
        c = self.text[self.pos]
        self.pos += 1
        if c == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return c


class Lexer:
    """Tokenizes the whole input eagerly.

    Tokens are read back with `peek`, `next` and `expect`; the parser
    uses `try_peek`/`try_next` where running out of input is not an error.
    """
    def __init__(self, source: str):
        self.tokens: List[Token] = []
        self._src = _Source(source)
        self._ident = ""
        self._ident_loc: Optional[Location] = None
        self._tokenize()
        self._all = list(self.tokens)
        # Stored back to front so consuming a token is a pop.
        self.tokens.reverse()

    # --- Tokenizing ---

    def _flush_ident(self):
        if not self._ident:
            return
        text, loc = self._ident, self._ident_loc
        self._ident, self._ident_loc = "", None
        if text[0].isdigit():
            if not _NUMBER_RE.fullmatch(text):
                raise LexError(f"identifier cannot start with a digit: '{text}'", loc)
            self.tokens.append(Token("number", loc, float(text)))
        elif text in ("true", "false"):
            self.tokens.append(Token("boolean", loc, text == "true"))
        else:
            self.tokens.append(Token("identifier", loc, text))

    def _push(self, tag: str, loc: Location, value=None):
        self._flush_ident()
        self.tokens.append(Token(tag, loc, value))

    def _tokenize(self):
        src = self._src
        while True:
            loc = src.location()
            c = src.next()
            if c is None:
                break
            if c in WHITESPACE:
                self._flush_ident()
            elif c in SINGLE_CHAR_TOKENS:
                self._push(SINGLE_CHAR_TOKENS[c], loc)
            elif c == "_" and not self._ident:
                self._push("shorthand", loc)
            elif c == '"':
                self._flush_ident()
                self._push("string", loc, self._read_string(loc))
            elif c == "=" and src.peek() == ">":
                src.next()
                self._push("arrow", loc)
            elif c == "|" and src.peek() == ">":
                src.next()
                self._push("pipeline", loc)
            elif c == "-" and src.peek() == ">" and src.peek(2) == ">":
                src.next()
                src.next()
                self._push("mutate", loc)
            elif c == "-" and src.peek() == ">":
                src.next()
                self._push("assign", loc)
            elif c == "-" and src.peek() == "-":
                self._flush_ident()
                n = src.next()
                while n is not None and n != "\n":
                    n = src.next()
            else:
                if not self._ident:
                    self._ident_loc = loc
                self._ident += c
        self._flush_ident()

    def _read_string(self, start: Location) -> str:
        src = self._src
        out = []
        while True:
            c = src.next()
            if c is None:
                raise LexError("unterminated string literal", start)
            if c == '"':
                return "".join(out)
            if c != "\\":
                out.append(c)
                continue
            esc_loc = src.location()
            e = src.next()
            if e is None:
                raise LexError("unterminated escape sequence in string literal", start)
            if e == "x":
                digits = ""
                for _ in range(2):
                    h = src.next()
                    if h is None:
                        raise LexError("unterminated escape sequence in string literal", start)
                    if h not in _HEX_DIGITS:
                        raise LexError(f"invalid hex digit '{h}' in \\x escape", esc_loc)
                    digits += h
                out.append(chr(int(digits, 16)))
            elif e in ESCAPES:
                out.append(ESCAPES[e])
            else:
                raise LexError(f"unknown escape character '\\{e}'", esc_loc)

    # --- Token stream ---

    def all_tokens(self) -> List[Token]:
        """Every token of the input in source order, regardless of consumption."""
        return list(self._all)

    def __len__(self) -> int:
        return len(self.tokens)

    def try_next(self) -> Optional[Token]:
        return self.tokens.pop() if self.tokens else None

    def next(self) -> Token:
        t = self.try_next()
        if t is None:
            raise ParseError("finished token stream when expected more", self._end_location())
        return t

    def try_peek(self, n: int = 1) -> Optional[Token]:
        """Looks `n` tokens ahead (1 is the next token)."""
        if n < 1 or n > len(self.tokens):
            return None
        return self.tokens[-n]

    def peek(self, n: int = 1) -> Token:
        t = self.try_peek(n)
        if t is None:
            raise ParseError("finished token stream when expected more", self._end_location())
        return t

    def expect(self, tag: str) -> Token:
        t = self.try_next()
        if t is None:
            raise ParseError(f"expected token {tag}, got end of input", self._end_location())
        if t.tag != tag:
            raise ParseError(f"expected token {tag}, got {t.tag}", t.loc)
        return t

    def _end_location(self) -> Location:
        return self._src.location()


def tokenize(source: str) -> List[Token]:
    """Returns all tokens of `source` in order."""
    return Lexer(source).all_tokens()
