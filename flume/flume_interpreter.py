"""
The core Flume interpreter: a tree-walking Evaluator over the located AST.
"""
import sys
from typing import Any, Callable, Dict, List, Optional, TextIO

from flume.flume_config import FlumeConfig
from flume.flume_datatypes import (
    Expr, Literal, Name, Group, LambdaDef, BinaryOp,
    Lambda, Variable, Scope, EvalError, Location, type_name,
)

Builtin = Callable[[List[Any]], List[Any]]


class Evaluator:
    """The Flume execution engine."""
    def __init__(self, config: Optional[FlumeConfig] = None, stdout: Optional[TextIO] = None,
                 builtins: Optional[Dict[str, Builtin]] = None):
        self.config = config or FlumeConfig()
        # Where `show` writes as it runs; None only records side effects.
        self.stdout = stdout
        self.side_effects: List[Dict[str, Any]] = []
        self.call_stack: List[Dict[str, Any]] = []
        self.current_node: Optional[Expr] = None
        if builtins is None:
            from flume.flume_runtime import StdLib
            builtins = StdLib(self).table()
        self.builtins: Dict[str, Builtin] = builtins

    def _push_frame(self, name, func, args, loc):
        self.call_stack.append({
            'name': name,
            'func': func,
            'args': args,
            'call_site': loc,
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if self.config.debug:
            print("[DBG]", *parts, file=sys.stderr)

    def emit(self, topic: str, message: str):
        """Writes stdout/debug text through immediately and records the side effect.

        Program output that went to a stream is not kept, so a long-running
        `loop` that shows values does not grow `side_effects`.
        """
        streamed = topic in ('stdout', 'debug') and self.stdout is not None
        if streamed:
            self.stdout.write(message + "\n")
            self.stdout.flush()
        if not (streamed and topic == 'stdout'):
            self.side_effects.append({'topics': [topic], 'message': message})

    # --- Evaluation ---

    def eval(self, node: Expr, scope: Scope) -> List[Any]:
        """Evaluates a top-level expression to its list of result values."""
        self.current_node = node
        match node:
            case Group():
                out = []
                for item in node.items:
                    out.extend(self._eval_item(item, scope))
                return out
            case Literal():
                return [node.value]
            case LambdaDef():
                return [self._define_lambda(node, scope)]
            case Name():
                raise EvalError("cannot use a variable by itself", node.loc)
            case BinaryOp():
                return self._eval_binary(node, scope)
        raise TypeError(f"not a Flume expression: {node!r}")

    def _eval_item(self, node: Expr, scope: Scope) -> List[Any]:
        """Evaluates one element of a tuple; its results are spliced into the enclosing tuple."""
        match node:
            case Literal():
                return [node.value]
            case Group():
                inner = []
                for item in node.items:
                    inner.extend(self._eval_item(item, scope))
                return [tuple(inner)]
            case Name():
                return list(scope.get(node.text, node.loc))
            case LambdaDef():
                return [self._define_lambda(node, scope)]
            case BinaryOp():
                return self.eval(node, scope)
        raise TypeError(f"not a Flume expression: {node!r}")

    def _define_lambda(self, node: LambdaDef, scope: Scope) -> Lambda:
        # The closure sees a snapshot of the names bound now, sharing their cells.
        return Lambda(node.param_names, Scope(scope), node.body)

    def _eval_binary(self, node: BinaryOp, scope: Scope) -> List[Any]:
        lhs = self.eval(node.lhs, scope)
        self.current_node = node
        if node.op == 'pipeline':
            if isinstance(node.rhs, Name):
                return self.call(node.rhs, lhs, scope)
            return self.eval(node.rhs, scope)

        target = node.rhs
        if not isinstance(target, Name):
            raise EvalError(
                f"expected variable, got {target.tag}; cannot {node.op} to something else than a variable",
                target.loc,
            )
        if node.op == 'assign':
            self._dbg("assign", target.text, lhs)
            scope.add(target.text, Variable(lhs))
        else:
            self._dbg("mutate", target.text, lhs)
            scope.get(target.text, target.loc).replace(lhs)
        return lhs

    # --- Calls ---

    def call(self, callee: Name, args: List[Any], scope: Scope) -> List[Any]:
        """Calls the function named by `callee`: a bound lambda first, then a builtin."""
        name = callee.text
        variable = scope.get_some(name)
        if variable is not None:
            if len(variable) != 1 or not isinstance(variable[0], Lambda):
                kinds = ", ".join(type_name(v) for v in variable) or "nothing"
                raise EvalError(f"expected function for '{name}', got {kinds}", callee.loc)
            return self.call_lambda(variable[0], args, name=name, loc=callee.loc)

        builtin = self.builtins.get(name)
        if builtin is None:
            raise EvalError(f"unknown function '{name}'", callee.loc)
        self._dbg("call builtin", name, args)
        self._push_frame(name, builtin, args, callee.loc)
        result = builtin(list(args))
        self._pop_frame()
        return result

    def call_lambda(self, fn: Lambda, args: List[Any], name: str = "<lambda>",
                    loc: Optional[Location] = None) -> List[Any]:
        """Invokes a lambda value in a fresh child of its captured scope."""
        if len(fn.params) != len(args):
            raise EvalError(
                f"arity mismatch calling '{name}': expected {len(fn.params)} arguments, got {len(args)}",
                loc or fn.body.loc,
            )
        local = Scope(fn.scope)
        for param, arg in zip(fn.params, args):
            local.add(param, Variable([arg]))
        self._dbg("call", name, args)
        self._push_frame(name, fn, args, loc)
        result = self.eval(fn.body, local)
        self._pop_frame()
        return result
