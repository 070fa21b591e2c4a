"""WordLang emitter: converts an AST back into canonical WordLang source.

Trees built from infix operators are written infix, since the right operand
of an infix node binds tighter than the node itself. Arithmetic trees that
only the operator-first form can produce (`multiply add 1 2 3`) are written
operator-first. Calls are always closed with `end` and lists always use the
bracketed form, so the output reparses to an equivalent tree.
"""

from __future__ import annotations

from .ast import (
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
from .parse import PRECEDENCES
from .tokens import TK_ADD, TK_DIVIDE, TK_MULTIPLY, TK_SUBTRACT

_OPERATOR_FIRST = frozenset({TK_ADD, TK_SUBTRACT, TK_MULTIPLY, TK_DIVIDE})


def to_source(program: WProgram) -> str:
    """Emit a `WProgram` AST as WordLang source text."""
    return _Emitter().emit_program(program)


class _Emitter:
    _INDENT: str = "    "

    def __init__(self, indent_level: int = 0) -> None:
        self._lines: list[str] = []
        self._indent_level: int = indent_level

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, program: WProgram) -> str:
        self._lines = []
        if program.strict_math:
            self._lines.append("# pragma strict-math")
        for stmt in program.stmts:
            self._emit_stmt(stmt)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        return text + "\n"

    # ── Helpers ─────────────────────────────────────────────

    def _emit_line(self, text: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + text)

    def _emit_block(self, block: WBlock) -> None:
        self._indent_level += 1
        for stmt in block.stmts:
            self._emit_stmt(stmt)
        self._indent_level -= 1

    # ── Statements ──────────────────────────────────────────

    def _emit_stmt(self, stmt: WStmt) -> None:
        if isinstance(stmt, WLetStmt):
            self._emit_line(f"let {stmt.name} be {self._expr(stmt.value)}")
        elif isinstance(stmt, WPrintStmt):
            self._emit_line(f"print {self._expr(stmt.value)}")
        elif isinstance(stmt, WExprStmt):
            self._emit_line(self._expr(stmt.expr))
        elif isinstance(stmt, WReturnStmt):
            if stmt.value is None:
                self._emit_line("return")
            else:
                self._emit_line(f"return {self._expr(stmt.value)}")
        elif isinstance(stmt, WExitStmt):
            if stmt.code is None:
                self._emit_line("exit")
            else:
                self._emit_line(f"exit {self._expr(stmt.code)}")
        elif isinstance(stmt, WInputStmt):
            self._emit_line(self._input(stmt.prompt))
        elif isinstance(stmt, WIfStmt):
            self._emit_line(f"if {self._expr(stmt.cond)} then")
            self._emit_block(stmt.then_body)
            for branch in stmt.elseifs:
                self._emit_line(f"elseif {self._expr(branch.cond)} then")
                self._emit_block(branch.body)
            if stmt.else_body is not None:
                self._emit_line("else")
                self._emit_block(stmt.else_body)
            self._emit_line("endif")
        elif isinstance(stmt, WWhileStmt):
            self._emit_line(f"while {self._expr(stmt.cond)} do")
            self._emit_block(stmt.body)
            self._emit_line("endwhile")
        elif isinstance(stmt, WForEachStmt):
            self._emit_line(
                f"foreach {stmt.var} in {self._expr(stmt.iterable)} do"
            )
            self._emit_block(stmt.body)
            self._emit_line("endforeach")
        elif isinstance(stmt, WBlock):
            for inner in stmt.stmts:
                self._emit_stmt(inner)
        else:
            raise TypeError(f"unhandled statement {type(stmt).__name__}")

    # ── Expressions ─────────────────────────────────────────

    def _expr(self, expr: WExpr) -> str:
        if isinstance(expr, WIdent):
            return expr.name
        if isinstance(expr, WIntLit):
            return expr.raw
        if isinstance(expr, WFloatLit):
            return expr.raw
        if isinstance(expr, WStringLit):
            return '"' + expr.value + '"'
        if isinstance(expr, WBoolLit):
            return "true" if expr.value else "false"
        if isinstance(expr, WInfixOp):
            if self._needs_operator_first(expr):
                return self._operator_first(expr)
            return f"{self._expr(expr.left)} {expr.op} {self._expr(expr.right)}"
        if isinstance(expr, WPrefixOp):
            return f"{expr.op} {self._operand(expr.operand)}"
        if isinstance(expr, WListLit):
            return "list(" + ", ".join(self._expr(e) for e in expr.elements) + ")"
        if isinstance(expr, WIndexOf):
            return (
                f"get item at index {self._expr(expr.index)}"
                f" from {self._operand(expr.target)}"
            )
        if isinstance(expr, WIsDefined):
            return f"is defined {expr.name}"
        if isinstance(expr, WToNumber):
            return f"convert to number {self._operand(expr.operand)}"
        if isinstance(expr, WToString):
            return f"convert to string {self._operand(expr.operand)}"
        if isinstance(expr, WCall):
            parts = ["call", self._operand(expr.callee)]
            parts.extend(self._expr(a) for a in expr.args)
            parts.append("end")
            return " ".join(parts)
        if isinstance(expr, WFnLit):
            return self._fn_lit(expr)
        if isinstance(expr, WInput):
            return self._input(expr.prompt)
        raise TypeError(f"unhandled expression {type(expr).__name__}")

    def _operand(self, expr: WExpr) -> str:
        # prefix-level operands only hold an infix node built operator-first
        if isinstance(expr, WInfixOp):
            return self._operator_first(expr)
        return self._expr(expr)

    def _needs_operator_first(self, expr: WInfixOp) -> bool:
        prec = PRECEDENCES[expr.op]
        left = expr.left
        right = expr.right
        if isinstance(left, WInfixOp) and PRECEDENCES[left.op] < prec:
            return True
        return isinstance(right, WInfixOp) and PRECEDENCES[right.op] <= prec

    def _operator_first(self, expr: WExpr) -> str:
        """Render an infix tree as 'op left right' all the way down."""
        if not isinstance(expr, WInfixOp):
            return self._expr(expr)
        if expr.op not in _OPERATOR_FIRST:
            raise ValueError(f"'{expr.op}' has no operator-first form")
        left = self._operator_first(expr.left)
        right = self._operator_first(expr.right)
        return f"{expr.op} {left} {right}"

    def _fn_lit(self, expr: WFnLit) -> str:
        header = " ".join(["function", *expr.params])
        body = _Emitter(self._indent_level + 1)
        for stmt in expr.body.stmts:
            body._emit_stmt(stmt)
        closer = self._INDENT * self._indent_level + "end function"
        return "\n".join([header, *body._lines, closer])

    def _input(self, prompt: str | None) -> str:
        if prompt is None:
            return "input"
        return 'input "' + prompt + '"'
