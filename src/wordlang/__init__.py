"""WordLang interpreter: public API."""

from __future__ import annotations

import logging

from .ast import WProgram
from .emit import to_source
from .parse import ParseError as ParseError, ParseErrors as ParseErrors, Parser
from .runtime import RunResult as RunResult, Runtime as Runtime, run as run
from .tokens import Lexer, Token as Token, tokenize as tokenize

logging.getLogger(__name__).addHandler(logging.NullHandler())

logger = logging.getLogger(__name__)


def _extract_pragmas(source: str) -> bool:
    """Scan leading comment lines for pragmas. Returns strict_math."""
    strict_math = False
    for line in source.split("\n"):
        stripped = line.strip()
        if stripped == "":
            continue
        if not stripped.startswith("#"):
            break
        body = stripped[1:].strip()
        if body == "pragma strict-math":
            strict_math = True
    return strict_math


def parse(source: str) -> WProgram:
    """Parse WordLang source into a WProgram AST.

    Raises ParseErrors carrying every diagnostic when the source is malformed.
    """
    parser = Parser(Lexer(source))
    program = parser.parse_program()
    logger.debug(
        "parsed %d statements, %d errors", len(program.stmts), len(parser.errors)
    )
    if parser.errors:
        raise ParseErrors(parser.errors)
    program.strict_math = _extract_pragmas(source)
    return program


def emit(program: WProgram) -> str:
    """Emit a `WProgram` AST as WordLang source."""
    return to_source(program)
