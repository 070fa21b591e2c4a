"""WordLang runtime: tree-walking evaluator over the parsed AST."""

from __future__ import annotations

import logging
import math
import re
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import IO, Iterator, Protocol

from .ast import (
    Pos,
    WBlock,
    WBoolLit,
    WCall,
    WExitStmt,
    WExpr,
    WExprStmt,
    WFloatLit,
    WFnLit,
    WForEachStmt,
    WIdent,
    WIfStmt,
    WIndexOf,
    WInfixOp,
    WInput,
    WInputStmt,
    WIntLit,
    WIsDefined,
    WLetStmt,
    WListLit,
    WPrefixOp,
    WPrintStmt,
    WProgram,
    WReturnStmt,
    WStmt,
    WStringLit,
    WToNumber,
    WToString,
    WWhileStmt,
)
from .env import Environment
from .tokens import (
    TK_ADD,
    TK_AND,
    TK_DIVIDE,
    TK_EQUALS,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_MULTIPLY,
    TK_NOT,
    TK_NOTEQUALS,
    TK_OR,
    TK_SUBTRACT,
)
from .values import (
    ARITY_MISMATCH,
    CONVERSION_ERROR,
    DIVISION_BY_ZERO,
    INDEX_OUT_OF_BOUNDS,
    INTEGER_OVERFLOW,
    NULL,
    STACK_OVERFLOW,
    TYPE_MISMATCH,
    UNKNOWN_IDENTIFIER,
    UNKNOWN_OPERATOR,
    VBool,
    VError,
    VFloat,
    VFunc,
    VInt,
    VList,
    VNull,
    VReturn,
    VString,
    Value,
    is_truthy,
    native_bool,
)

logger = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

DEFAULT_MAX_DEPTH = 1000

# Python frames consumed per WordLang call, a generous upper bound
_FRAMES_PER_CALL = 16

_ARITHMETIC: set[str] = {TK_ADD, TK_SUBTRACT, TK_MULTIPLY, TK_DIVIDE}
_COMPARISON: set[str] = {TK_GREATER, TK_LESS, TK_GREATER_EQUAL, TK_LESS_EQUAL}

_INT_TEXT = re.compile(r"[+-]?[0-9]+")


class RuntimeFault(Exception):
    """Interpreter bug: a node the evaluator does not know how to handle."""

    def __init__(self, msg: str, pos: Pos | None = None):
        if pos is None:
            super().__init__(msg)
        else:
            super().__init__(f"{msg} at line {pos.line} col {pos.col}")
        self.msg = msg
        self.pos = pos


@dataclass
class _Exit(Exception):
    code: int
    error: str | None = None


# ============================================================
# Runtime I/O
# ============================================================


class LineSource(Protocol):
    def read_line(self) -> str | None: ...


class LineSink(Protocol):
    def write(self, text: str) -> None: ...

    def flush(self) -> None: ...


class BufferInput:
    """Line source over an in-memory string."""

    _pos: int

    def __init__(self, data: str):
        self._data = data
        self._pos = 0

    def read_line(self) -> str | None:
        if self._pos >= len(self._data):
            return None
        idx = self._data.find("\n", self._pos)
        if idx == -1:
            out = self._data[self._pos :]
            self._pos = len(self._data)
            return out
        out = self._data[self._pos : idx]
        self._pos = idx + 1
        return out.removesuffix("\r")


class StreamInput:
    """Line source over a text stream such as sys.stdin."""

    def __init__(self, stream: IO[str]):
        self._stream = stream

    def read_line(self) -> str | None:
        line = self._stream.readline()
        if line == "":
            return None
        return line.removesuffix("\n").removesuffix("\r")


class BufferOutput:
    def __init__(self) -> None:
        self._parts: list[str] = []

    def write(self, text: str) -> None:
        self._parts.append(text)

    def flush(self) -> None:
        pass

    def getvalue(self) -> str:
        return "".join(self._parts)


class StreamOutput:
    def __init__(self, stream: IO[str]):
        self._stream = stream

    def write(self, text: str) -> None:
        self._stream.write(text)

    def flush(self) -> None:
        self._stream.flush()


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    error: str | None = None
    value: Value = NULL
    exited: bool = False


@contextmanager
def _recursion_headroom(max_depth: int) -> Iterator[None]:
    """Raise the interpreter recursion limit enough for max_depth nested calls."""
    old = sys.getrecursionlimit()
    needed = max_depth * _FRAMES_PER_CALL + 500
    if needed > old:
        sys.setrecursionlimit(needed)
    try:
        yield
    finally:
        sys.setrecursionlimit(old)


def run(
    program: WProgram,
    *,
    stdin: str | LineSource = "",
    stdout: LineSink | None = None,
    strict_math: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> RunResult:
    """Evaluate a parsed WordLang program.

    Output goes to stdout when given; otherwise it is captured and returned in
    RunResult.stdout. A runtime error ends the run with exit code 1 and its
    rendering in RunResult.error.
    """
    source = BufferInput(stdin) if isinstance(stdin, str) else stdin
    rt = Runtime(
        stdin=source, stdout=stdout, strict_math=strict_math, max_depth=max_depth
    )
    return rt.execute(program)


# ============================================================
# Helpers
# ============================================================


def _wrap_int64(n: int) -> int:
    return ((n - _INT64_MIN) % 2**64) + _INT64_MIN


def _int_div_trunc(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return q


def _values_equal(left: Value, right: Value) -> bool:
    if isinstance(left, (VInt, VFloat)) and isinstance(right, (VInt, VFloat)):
        if isinstance(left, VInt) and isinstance(right, VInt):
            return left.value == right.value
        return float(left.value) == float(right.value)
    if isinstance(left, VString) and isinstance(right, VString):
        return left.value == right.value
    if isinstance(left, VBool) and isinstance(right, VBool):
        return left.value == right.value
    return left is right


def _compare(op: str, a: int | float, b: int | float) -> bool:
    if op == TK_GREATER:
        return a > b
    if op == TK_LESS:
        return a < b
    if op == TK_GREATER_EQUAL:
        return a >= b
    return a <= b


def _type_mismatch(op: str, left: Value, right: Value) -> VError:
    return VError(
        TYPE_MISMATCH,
        f"cannot apply '{op}' to {left.type_name()} and {right.type_name()}",
    )


def _to_number(text: str) -> Value | None:
    """Parse text as a number, narrowing to an integer when it has no '.'."""
    if text != text.strip() or "_" in text:
        return None
    if _INT_TEXT.fullmatch(text):
        n = int(text)
        if n < _INT64_MIN or n > _INT64_MAX:
            return None
        return VInt(n)
    try:
        f = float(text)
    except ValueError:
        return None
    if not math.isfinite(f):
        return None
    if "." in text:
        return VFloat(f)
    if f < _INT64_MIN or f >= 2.0**63:
        return None
    return VInt(int(f))


# ============================================================
# Evaluator
# ============================================================


class Runtime:
    """Evaluator state: I/O collaborators, global frame and call depth.

    A Runtime may execute several programs in turn against the same global
    environment, which is how the REPL keeps bindings between lines.
    """

    stdin: LineSource
    stdout: LineSink

    def __init__(
        self,
        *,
        stdin: LineSource | None = None,
        stdout: LineSink | None = None,
        strict_math: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.stdin = stdin if stdin is not None else BufferInput("")
        self.stdout = stdout if stdout is not None else BufferOutput()
        self.strict_math = strict_math
        self.max_depth = max_depth
        self.globals = Environment()
        self._strict = strict_math
        self._depth = 0

    def execute(self, program: WProgram) -> RunResult:
        """Run program in the global environment, intercepting exit."""
        self._strict = self.strict_math or program.strict_math
        self._depth = 0
        logger.debug(
            "running %d statements (strict_math=%s)", len(program.stmts), self._strict
        )
        try:
            with _recursion_headroom(self.max_depth):
                value = self.eval_program(program, self.globals)
        except _Exit as e:
            logger.debug("exit requested with status %d", e.code)
            return RunResult(e.code, self._captured(), e.error, exited=True)
        except RecursionError:
            value = VError(STACK_OVERFLOW, "maximum recursion depth exceeded")
        if isinstance(value, VError):
            logger.debug("run failed: %s", value.to_string())
            return RunResult(1, self._captured(), value.to_string(), value)
        logger.debug("run finished: %s", value.to_string())
        return RunResult(0, self._captured(), None, value)

    def _captured(self) -> str:
        if isinstance(self.stdout, BufferOutput):
            return self.stdout.getvalue()
        return ""

    def eval(self, node: WProgram | WStmt | WExpr, env: Environment) -> Value:
        if isinstance(node, WProgram):
            return self.eval_program(node, env)
        if isinstance(node, WStmt):
            return self._eval_stmt(node, env)
        return self._eval_expr(node, env)

    def eval_program(self, program: WProgram, env: Environment) -> Value:
        result: Value = NULL
        for stmt in program.stmts:
            result = self._eval_stmt(stmt, env)
            if isinstance(result, VReturn):
                return result.value
            if isinstance(result, VError):
                return result
        return result

    # ---- Statements --------------------------------------------------------

    def _eval_block(self, block: WBlock, env: Environment) -> Value:
        result: Value = NULL
        for stmt in block.stmts:
            result = self._eval_stmt(stmt, env)
            if isinstance(result, (VReturn, VError)):
                return result
        return result

    def _eval_stmt(self, stmt: WStmt, env: Environment) -> Value:
        if isinstance(stmt, WExprStmt):
            return self._eval_expr(stmt.expr, env)
        if isinstance(stmt, WLetStmt):
            value = self._eval_expr(stmt.value, env)
            if isinstance(value, VError):
                return value
            return env.set(stmt.name, value)
        if isinstance(stmt, WPrintStmt):
            value = self._eval_expr(stmt.value, env)
            if isinstance(value, VError):
                return value
            self.stdout.write(value.to_string() + "\n")
            return NULL
        if isinstance(stmt, WIfStmt):
            return self._eval_if(stmt, env)
        if isinstance(stmt, WWhileStmt):
            return self._eval_while(stmt, env)
        if isinstance(stmt, WForEachStmt):
            return self._eval_foreach(stmt, env)
        if isinstance(stmt, WReturnStmt):
            if stmt.value is None:
                return VReturn(NULL)
            value = self._eval_expr(stmt.value, env)
            if isinstance(value, VError):
                return value
            return VReturn(value)
        if isinstance(stmt, WInputStmt):
            return self._read_input(stmt.prompt)
        if isinstance(stmt, WExitStmt):
            raise self._exit_signal(stmt, env)
        if isinstance(stmt, WBlock):
            return self._eval_block(stmt, env)
        raise RuntimeFault(f"unhandled statement {type(stmt).__name__}", stmt.pos)

    def _eval_if(self, stmt: WIfStmt, env: Environment) -> Value:
        cond = self._eval_expr(stmt.cond, env)
        if isinstance(cond, VError):
            return cond
        if is_truthy(cond):
            return self._eval_block(stmt.then_body, env)
        for branch in stmt.elseifs:
            cond = self._eval_expr(branch.cond, env)
            if isinstance(cond, VError):
                return cond
            if is_truthy(cond):
                return self._eval_block(branch.body, env)
        if stmt.else_body is not None:
            return self._eval_block(stmt.else_body, env)
        return NULL

    def _eval_while(self, stmt: WWhileStmt, env: Environment) -> Value:
        result: Value = NULL
        while True:
            cond = self._eval_expr(stmt.cond, env)
            if isinstance(cond, VError):
                return cond
            if not is_truthy(cond):
                return result
            result = self._eval_block(stmt.body, env)
            if isinstance(result, (VReturn, VError)):
                return result

    def _eval_foreach(self, stmt: WForEachStmt, env: Environment) -> Value:
        iterable = self._eval_expr(stmt.iterable, env)
        if isinstance(iterable, VError):
            return iterable
        if not isinstance(iterable, VList):
            return VError(
                TYPE_MISMATCH, f"foreach expects a LIST, got {iterable.type_name()}"
            )
        result: Value = NULL
        for element in iterable.elements:
            frame = env.child()
            frame.set(stmt.var, element)
            result = self._eval_block(stmt.body, frame)
            if isinstance(result, (VReturn, VError)):
                return result
        return result

    def _exit_signal(self, stmt: WExitStmt, env: Environment) -> _Exit:
        if stmt.code is None:
            return _Exit(0)
        code = self._eval_expr(stmt.code, env)
        if isinstance(code, VError):
            return _Exit(1, code.to_string())
        if not isinstance(code, VInt):
            err = VError(
                TYPE_MISMATCH, f"exit status must be INTEGER, got {code.type_name()}"
            )
            return _Exit(1, err.to_string())
        return _Exit(code.value)

    def _read_input(self, prompt: str | None) -> Value:
        if prompt is not None:
            self.stdout.write(prompt)
            self.stdout.flush()
        line = self.stdin.read_line()
        return VString("" if line is None else line)

    # ---- Expressions -------------------------------------------------------

    def _eval_expr(self, expr: WExpr, env: Environment) -> Value:
        if isinstance(expr, WIntLit):
            return VInt(expr.value)
        if isinstance(expr, WFloatLit):
            return VFloat(expr.value)
        if isinstance(expr, WStringLit):
            return VString(expr.value)
        if isinstance(expr, WBoolLit):
            return native_bool(expr.value)
        if isinstance(expr, WIdent):
            value = env.get(expr.name)
            if value is None:
                return VError(UNKNOWN_IDENTIFIER, f"identifier not found: {expr.name}")
            return value
        if isinstance(expr, WInfixOp):
            left = self._eval_expr(expr.left, env)
            if isinstance(left, VError):
                return left
            right = self._eval_expr(expr.right, env)
            if isinstance(right, VError):
                return right
            return self._eval_infix(expr.op, left, right)
        if isinstance(expr, WPrefixOp):
            operand = self._eval_expr(expr.operand, env)
            if isinstance(operand, VError):
                return operand
            if expr.op == TK_NOT:
                return self._eval_not(operand)
            return VError(
                UNKNOWN_OPERATOR, f"unknown operator: {expr.op}{operand.type_name()}"
            )
        if isinstance(expr, WCall):
            return self._eval_call(expr, env)
        if isinstance(expr, WFnLit):
            return VFunc(expr.params, expr.body, env)
        if isinstance(expr, WListLit):
            elements: list[Value] = []
            for element in expr.elements:
                value = self._eval_expr(element, env)
                if isinstance(value, VError):
                    return value
                elements.append(value)
            return VList(elements)
        if isinstance(expr, WIndexOf):
            return self._eval_index(expr, env)
        if isinstance(expr, WIsDefined):
            return native_bool(env.is_defined(expr.name))
        if isinstance(expr, WToNumber):
            operand = self._eval_expr(expr.operand, env)
            if isinstance(operand, VError):
                return operand
            return self._convert_to_number(operand)
        if isinstance(expr, WToString):
            operand = self._eval_expr(expr.operand, env)
            if isinstance(operand, VError):
                return operand
            return VString(operand.to_string())
        if isinstance(expr, WInput):
            return self._read_input(expr.prompt)
        raise RuntimeFault(f"unhandled expression {type(expr).__name__}", expr.pos)

    def _eval_not(self, operand: Value) -> Value:
        if isinstance(operand, VBool):
            return native_bool(not operand.value)
        if isinstance(operand, VNull):
            return native_bool(True)
        return native_bool(False)

    def _eval_infix(self, op: str, left: Value, right: Value) -> Value:
        if op == TK_AND:
            return native_bool(is_truthy(left) and is_truthy(right))
        if op == TK_OR:
            return native_bool(is_truthy(left) or is_truthy(right))
        if op == TK_EQUALS:
            return native_bool(_values_equal(left, right))
        if op == TK_NOTEQUALS:
            return native_bool(not _values_equal(left, right))
        if op in _ARITHMETIC:
            return self._eval_arith(op, left, right)
        if op in _COMPARISON:
            if isinstance(left, (VInt, VFloat)) and isinstance(right, (VInt, VFloat)):
                if isinstance(left, VInt) and isinstance(right, VInt):
                    return native_bool(_compare(op, left.value, right.value))
                return native_bool(
                    _compare(op, float(left.value), float(right.value))
                )
            return _type_mismatch(op, left, right)
        return VError(
            UNKNOWN_OPERATOR,
            f"unknown operator: {left.type_name()} {op} {right.type_name()}",
        )

    def _eval_arith(self, op: str, left: Value, right: Value) -> Value:
        if op == TK_ADD and isinstance(left, VString) and isinstance(right, VString):
            return VString(left.value + right.value)
        if not isinstance(left, (VInt, VFloat)) or not isinstance(
            right, (VInt, VFloat)
        ):
            return _type_mismatch(op, left, right)
        if op == TK_DIVIDE and right.value == 0:
            return VError(DIVISION_BY_ZERO, "division by zero")
        if isinstance(left, VInt) and isinstance(right, VInt):
            a = left.value
            b = right.value
            if op == TK_ADD:
                result = a + b
            elif op == TK_SUBTRACT:
                result = a - b
            elif op == TK_MULTIPLY:
                result = a * b
            else:
                result = _int_div_trunc(a, b)
            if result < _INT64_MIN or result > _INT64_MAX:
                if self._strict:
                    return VError(INTEGER_OVERFLOW, f"integer overflow in '{op}'")
                result = _wrap_int64(result)
            return VInt(result)
        x = float(left.value)
        y = float(right.value)
        if op == TK_ADD:
            return VFloat(x + y)
        if op == TK_SUBTRACT:
            return VFloat(x - y)
        if op == TK_MULTIPLY:
            return VFloat(x * y)
        return VFloat(x / y)

    def _eval_index(self, expr: WIndexOf, env: Environment) -> Value:
        target = self._eval_expr(expr.target, env)
        if isinstance(target, VError):
            return target
        if not isinstance(target, VList):
            return VError(TYPE_MISMATCH, f"cannot index {target.type_name()}")
        index = self._eval_expr(expr.index, env)
        if isinstance(index, VError):
            return index
        if not isinstance(index, VInt):
            return VError(
                TYPE_MISMATCH, f"list index must be INTEGER, got {index.type_name()}"
            )
        n = len(target.elements)
        if index.value < 0 or index.value >= n:
            return VError(
                INDEX_OUT_OF_BOUNDS,
                f"index {index.value} out of bounds for list of length {n}",
            )
        return target.elements[index.value]

    def _convert_to_number(self, operand: Value) -> Value:
        if isinstance(operand, (VInt, VFloat)):
            return operand
        if isinstance(operand, VString):
            number = _to_number(operand.value)
            if number is None:
                return VError(
                    CONVERSION_ERROR, f"cannot convert '{operand.value}' to number"
                )
            return number
        return VError(
            TYPE_MISMATCH, f"cannot convert {operand.type_name()} to number"
        )

    # ---- Calls -------------------------------------------------------------

    def _eval_call(self, expr: WCall, env: Environment) -> Value:
        callee = self._eval_expr(expr.callee, env)
        if isinstance(callee, VError):
            return callee
        args: list[Value] = []
        for arg in expr.args:
            value = self._eval_expr(arg, env)
            if isinstance(value, VError):
                return value
            args.append(value)
        return self.apply(callee, args)

    def apply(self, fn: Value, args: list[Value]) -> Value:
        """Call fn with already-evaluated arguments; unwraps its return."""
        if not isinstance(fn, VFunc):
            return VError(TYPE_MISMATCH, f"cannot call {fn.type_name()}")
        if len(args) != len(fn.params):
            return VError(
                ARITY_MISMATCH,
                f"function expects {len(fn.params)} argument(s), got {len(args)}",
            )
        if self._depth >= self.max_depth:
            return VError(
                STACK_OVERFLOW, f"maximum call depth {self.max_depth} exceeded"
            )
        frame = Environment(fn.env)
        for name, arg in zip(fn.params, args):
            frame.set(name, arg)
        self._depth += 1
        try:
            result = self._eval_block(fn.body, frame)
        finally:
            self._depth -= 1
        if isinstance(result, VReturn):
            return result.value
        return result
