# flume_runtime.py

import inspect
import math
import operator
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, TextIO

from flume.flume_config import FlumeConfig
from flume.flume_datatypes import (
    Scope, Location, FlumeError, EvalError, type_name,
)
from flume.flume_interpreter import Evaluator
from flume.flume_lexer import Lexer
from flume.flume_parser import FlumeParser
from flume.flume_printer import Printer, to_text, format_tokens, format_ast


# ===================================================================
# 1. Type and arithmetic helpers
# ===================================================================

def expect_type(value: Any, tag: str) -> Any:
    got = type_name(value)
    if got != tag:
        raise EvalError(f"expected value of type {tag}, got {got}")
    return value


def ieee_div(a: float, b: float) -> float:
    """Float division that yields ±Infinity or NaN instead of raising."""
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def compare_chain(args: List[Any], relation: Callable[[float, float], bool]) -> List[Any]:
    """True when `relation` holds for every consecutive pair of numbers."""
    if len(args) < 2:
        raise EvalError("expected at least 2 elements in comparison")
    for a, b in zip(args, args[1:]):
        if not relation(expect_type(a, 'number'), expect_type(b, 'number')):
            return [False]
    return [True]


def left_fold(args: List[Any], step: Callable[[float, float], float], name: str) -> List[Any]:
    if not args:
        raise EvalError(f"expected at least 1 element in {name}")
    result = float(expect_type(args[0], 'number'))
    for x in args[1:]:
        result = step(result, expect_type(x, 'number'))
    return [result]


# ===================================================================
# 2. The Standard Library
# ===================================================================

# Methods whose Flume name is an operator symbol rather than the method name.
OPERATORS = {
    'add': '+', 'sub': '-', 'mul': '*', 'div': '/',
    'gt': '>', 'gte': '>=', 'lt': '<', 'lte': '<=',
    'eq': '==', 'neq': '!=',
}


class StdLib:
    """Contains Python implementations for all Flume built-ins.

    Every builtin takes the list of argument values and returns a list of
    result values. `loop` and `if` call back into the evaluator to run
    interpreted lambdas.
    """
    def __init__(self, evaluator: Evaluator):
        self.evaluator = evaluator

    def table(self) -> Dict[str, Callable[[List[Any]], List[Any]]]:
        """Maps each Flume builtin name to its implementation."""
        out = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                key = name[1:]
                out[OPERATORS.get(key, key)] = member
        return out

    # --- Values ---
    def _identity(self, args):
        return args

    def _to_string(self, args):
        return [to_text(x) for x in args]

    def _show(self, args):
        self.evaluator.emit('stdout', ", ".join(to_text(x) for x in args))
        return []

    # --- Math ---
    def _add(self, args):
        result = 0.0
        for x in args:
            result += expect_type(x, 'number')
        return [result]

    def _mul(self, args):
        result = 1.0
        for x in args:
            result *= expect_type(x, 'number')
        return [result]

    def _sub(self, args):
        return left_fold(args, operator.sub, "subtraction")

    def _div(self, args):
        return left_fold(args, ieee_div, "division")

    # --- Comparison ---
    def _gt(self, args): return compare_chain(args, operator.gt)
    def _gte(self, args): return compare_chain(args, operator.ge)
    def _lt(self, args): return compare_chain(args, operator.lt)
    def _lte(self, args): return compare_chain(args, operator.le)
    def _eq(self, args): return compare_chain(args, operator.eq)
    def _neq(self, args): return compare_chain(args, operator.ne)

    # --- Control flow ---
    def _loop(self, args):
        if len(args) != 2:
            raise EvalError(f"loop expects 2 arguments (condition, body), got {len(args)}")
        condition, body = (expect_type(a, 'lambda') for a in args)
        limit = self.evaluator.config.max_loop_iterations

        last: List[Any] = []
        iter_count = 0
        while True:
            cond = self.evaluator.call_lambda(condition, [], name="loop condition")
            if len(cond) != 1:
                raise EvalError(f"loop condition must return exactly one boolean, got {len(cond)} values")
            if not expect_type(cond[0], 'boolean'):
                break
            if limit is not None and iter_count >= limit:
                raise EvalError("loop: iteration limit exceeded")
            last = self.evaluator.call_lambda(body, [], name="loop body")
            iter_count += 1
        return last

    def _if(self, args):
        if len(args) != 2:
            raise EvalError(f"if expects 2 arguments (condition, body), got {len(args)}")
        cond = expect_type(args[0], 'boolean')
        body = expect_type(args[1], 'lambda')
        if cond:
            self.evaluator.call_lambda(body, [], name="if body")
        return []


# ===================================================================
# 3. Script Execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: List[Any] = field(default_factory=list)
    error_message: Optional[str] = None
    error_loc: Optional[Location] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        # Messages from handle_script already carry their location.
        if self.error_loc is not None and "(line " not in msg:
            return f"Error on line {self.error_loc.line}, col {self.error_loc.col}: {msg}"
        return msg


class ScriptRunner:
    """Lexes, parses, and evaluates Flume source."""

    def __init__(self, config: Optional[FlumeConfig] = None, stdout: Optional[TextIO] = None,
                 keep_scope: bool = False):
        self.config = config or FlumeConfig()
        self.evaluator = Evaluator(self.config, stdout=stdout)
        # With keep_scope, bindings survive between handle_script calls (REPL sessions).
        self.keep_scope = keep_scope
        self.root_scope = Scope()

    def _source_context(self, source: str, loc: Location) -> str:
        """The offending source line with a caret under `loc`."""
        lines = source.splitlines()
        if not 1 <= loc.line <= len(lines):
            return ""
        gutter = " " * len(str(loc.line))
        return (
            f"> {loc.line} | {lines[loc.line - 1]}\n"
            f"  {gutter} | {' ' * (loc.col - 1)}^"
        )

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        pf = Printer().pformat
        frames = []
        for frame in stack:
            args_s = " ".join(pf(a) for a in frame.get('args') or [])
            frames.append(f"({frame['name']} {args_s})" if args_s else f"({frame['name']})")
        return "Flume stacktrace: " + " ".join(frames)

    def _error_location(self, e: Exception) -> Optional[Location]:
        loc = getattr(e, 'loc', None)
        if loc is None and self.evaluator.call_stack:
            loc = self.evaluator.call_stack[-1].get('call_site')
        if loc is None and self.evaluator.current_node is not None:
            loc = self.evaluator.current_node.loc
        return loc

    def _format_error(self, e: Exception, source: str) -> tuple[str, Optional[Location]]:
        match e:
            case FlumeError():
                msg = f"{e.kind}: {e.message}"
            case RecursionError():
                msg = "InternalError: maximum recursion depth exceeded"
            case _:
                msg = f"InternalError: {e}"

        loc = self._error_location(e)
        if loc is not None:
            msg = f"{msg}\n(line {loc.line}, col {loc.col})"
            context = self._source_context(source, loc)
            if context:
                msg = f"{msg}\n{context}"

        st = self._format_stacktrace()
        if st:
            msg += "\n" + st
        return msg, loc

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        ev = self.evaluator
        ev.side_effects.clear()
        ev.call_stack.clear()
        ev.current_node = None
        try:
            # 1. Lex
            lexer = Lexer(source_code)
            if self.config.show_tokens:
                ev.emit('debug', format_tokens(lexer.all_tokens()))

            # 2. Parse
            ast = FlumeParser(lexer).parse()
            if self.config.show_ast:
                ev.emit('debug', format_ast(ast, color=self.config.color))

            # 3. Evaluate
            scope = self.root_scope if self.keep_scope else Scope()
            result = ev.eval(ast, scope)
            return ExecutionResult(status='success', value=result, side_effects=ev.side_effects)

        except Exception as e:
            err_msg, err_loc = self._format_error(e, source_code)
            ev.side_effects.append({'topics': ['stderr'], 'message': err_msg})
            return ExecutionResult(
                status='error',
                error_message=err_msg,
                error_loc=err_loc,
                side_effects=ev.side_effects,
            )


def run_source(source: str, scope: Optional[Scope] = None, config: Optional[FlumeConfig] = None,
               stdout: Optional[TextIO] = None) -> List[Any]:
    """Evaluates `source` and returns its values; errors propagate as FlumeError.

    `show` output goes to `stdout`, or to sys.stdout when none is given.
    """
    evaluator = Evaluator(config, stdout=stdout if stdout is not None else sys.stdout)
    ast = FlumeParser(Lexer(source)).parse()
    return evaluator.eval(ast, scope if scope is not None else Scope())
