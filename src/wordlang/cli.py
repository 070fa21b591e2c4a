"""WordLang CLI: run .wl files or start an interactive session."""

from __future__ import annotations

import logging
import sys
from typing import IO

from . import parse
from .emit import to_source
from .parse import ParseErrors
from .runtime import (
    DEFAULT_MAX_DEPTH,
    Runtime,
    RuntimeFault,
    StreamInput,
    StreamOutput,
)
from .tokens import tokenize
from .values import VNull


USAGE: str = """\
wordlang [OPTIONS] [FILE]

Run a WordLang program. FILE may be '-' to read the program from stdin.
Without FILE an interactive session is started.

Options:
  --strict-math      Report integer overflow instead of wrapping
  --max-depth N      Maximum nested function calls (default 1000)
  --tokens           Print the token stream and exit
  --ast              Print the parsed program in canonical form and exit
  --repl             Start an interactive session
  --verbose          Log interpreter activity to stderr
  --help             Show this help message
"""

PROMPT = ">> "
CONTINUATION = ".. "


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    strict_math = False
    max_depth = DEFAULT_MAX_DEPTH
    mode = "run"
    verbose = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--strict-math":
            strict_math = True
            i += 1
        elif arg == "--max-depth":
            if i + 1 >= len(args):
                print("wordlang: --max-depth requires a value", file=sys.stderr)
                return 2
            try:
                max_depth = int(args[i + 1])
            except ValueError:
                max_depth = 0
            if max_depth <= 0:
                print(
                    "wordlang: invalid --max-depth '" + args[i + 1] + "'",
                    file=sys.stderr,
                )
                return 2
            i += 2
        elif arg == "--tokens":
            mode = "tokens"
            i += 1
        elif arg == "--ast":
            mode = "ast"
            i += 1
        elif arg == "--repl":
            mode = "repl"
            i += 1
        elif arg == "--verbose":
            verbose = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            print("wordlang: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("wordlang: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr
        )

    rt = Runtime(
        stdin=StreamInput(sys.stdin),
        stdout=StreamOutput(sys.stdout),
        strict_math=strict_math,
        max_depth=max_depth,
    )
    if mode == "repl" or filepath == "":
        if mode != "repl" and mode != "run":
            print("wordlang: missing file argument", file=sys.stderr)
            return 2
        return repl(rt, sys.stdin, sys.stdout)

    source = _read_source(filepath)
    if source is None:
        return 1

    if mode == "tokens":
        for tok in tokenize(source):
            print(f"{tok.line}:{tok.col}\t{tok.type}\t{tok.value!r}")
        return 0

    try:
        program = parse(source)
    except ParseErrors as e:
        for err in e.errors:
            print("wordlang: parse error: " + str(err), file=sys.stderr)
        return 1

    if mode == "ast":
        sys.stdout.write(to_source(program))
        return 0

    try:
        result = rt.execute(program)
    except RuntimeFault as e:
        print("wordlang: internal error: " + str(e), file=sys.stderr)
        return 1
    sys.stdout.flush()
    if result.error is not None:
        print("wordlang: " + result.error, file=sys.stderr)
    return result.exit_code


def _read_source(filepath: str) -> str | None:
    if filepath == "-":
        return sys.stdin.read()
    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print(
            "wordlang: " + filepath + ": No such file or directory", file=sys.stderr
        )
        return None
    except OSError as e:
        print("wordlang: " + filepath + ": " + str(e), file=sys.stderr)
        return None
    try:
        return raw.decode("utf-8")
    except ValueError:
        print("wordlang: " + filepath + ": invalid utf-8", file=sys.stderr)
        return None


def _incomplete(errors: ParseErrors) -> bool:
    """True when every diagnostic is about running out of input."""
    return all(e.msg.endswith("got end of input") for e in errors.errors)


def repl(rt: Runtime, stdin: IO[str], stdout: IO[str]) -> int:
    """Read-eval-print loop sharing one global environment across entries.

    Returns the status of an `exit` statement, or 0 at end of input or `:q`.
    """
    stdout.write("WordLang interactive session. Type :q to quit.\n")
    pending: list[str] = []
    while True:
        stdout.write(CONTINUATION if pending else PROMPT)
        stdout.flush()
        line = stdin.readline()
        if line == "":
            stdout.write("\n")
            return 0
        line = line.rstrip("\n")
        if not pending:
            command = line.strip()
            if command == ":q":
                return 0
            if command == ":env":
                for name in rt.globals.names():
                    value = rt.globals.get(name)
                    if value is not None:
                        stdout.write(name + " = " + value.to_string() + "\n")
                continue
            if command == "":
                continue
        pending.append(line)
        try:
            program = parse("\n".join(pending))
        except ParseErrors as e:
            if _incomplete(e) and line.strip() != "":
                continue
            for err in e.errors:
                stdout.write("parse error: " + str(err) + "\n")
            pending = []
            continue
        pending = []
        result = rt.execute(program)
        if result.exited:
            if result.error is not None:
                stdout.write(result.error + "\n")
            return result.exit_code
        if result.error is not None:
            stdout.write(result.error + "\n")
        elif not isinstance(result.value, VNull):
            stdout.write(result.value.to_string() + "\n")


if __name__ == "__main__":
    sys.exit(main())
