import argparse
import sys
from dataclasses import replace
from pathlib import Path

from flume.flume_config import load_config
from flume.flume_runtime import ScriptRunner
from flume.flume_printer import Printer


def print_result(result, printer: Printer) -> bool:
    """Reports one execution; returns False when it failed."""
    for effect in result.side_effects:
        if effect.get('topics') == ['stderr']:
            print(effect.get('message', ''), file=sys.stderr)
    if result.status == 'error':
        return False
    if result.value:
        print(printer.pformat(result.value))
    return True


def run_source(source: str, config) -> int:
    """Run Flume source non-interactively; returns the process exit status."""
    runner = ScriptRunner(config, stdout=sys.stdout)
    result = runner.handle_script(source)
    return 0 if print_result(result, Printer()) else 1


def run_script_file(file_path: str, config) -> int:
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    return run_source(source, config)


def repl(config):
    print("Flume REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner(config, stdout=sys.stdout, keep_scope=True)
    printer = Printer()
    while True:
        try:
            line = input(">> ").strip()
        except EOFError:
            print("\nExiting.")
            break
        if not line:
            continue
        if line == "exit":
            break
        print_result(runner.handle_script(line), printer)


def _parse_args(argv):
    parser = argparse.ArgumentParser(description="Run a Flume program, or start the REPL.")
    parser.add_argument("file", nargs="?", help="Flume source file to run.")
    parser.add_argument("-e", "--eval", dest="source", help="Run this source text instead of a file.")
    parser.add_argument("--config", help="YAML file with interpreter settings.")
    parser.add_argument("--tokens", action="store_true", help="Print the token stream before running.")
    parser.add_argument("--ast", action="store_true", help="Print the parsed AST before running.")
    parser.add_argument("--debug", action="store_true", help="Trace evaluation to stderr.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    overrides = {}
    if args.tokens:
        overrides['show_tokens'] = True
    if args.ast:
        overrides['show_ast'] = True
    if args.debug:
        overrides['debug'] = True
    if overrides:
        config = replace(config, **overrides)

    if args.source is not None:
        return run_source(args.source, config)
    if args.file:
        return run_script_file(args.file, config)
    repl(config)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nExiting.")
