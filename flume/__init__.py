from flume.flume_runtime import ScriptRunner, ExecutionResult, StdLib, run_source
from flume.flume_config import FlumeConfig, load_config
from flume.flume_datatypes import FlumeError, LexError, ParseError, EvalError
from flume.flume_parser import parse
from flume.flume_lexer import tokenize

__all__ = [
    "ScriptRunner", "ExecutionResult", "StdLib", "run_source",
    "FlumeConfig", "load_config",
    "FlumeError", "LexError", "ParseError", "EvalError",
    "parse", "tokenize",
]
