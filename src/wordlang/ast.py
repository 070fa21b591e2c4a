"""WordLang AST: parse-time node definitions."""

from __future__ import annotations

from dataclasses import dataclass, field


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# BASES
# ============================================================


@dataclass
class WStmt:
    """Base for all statement nodes."""

    pos: Pos


@dataclass
class WExpr:
    """Base for all expression nodes."""

    pos: Pos


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class WBlock(WStmt):
    """Ordered statements up to a block terminator."""

    stmts: list[WStmt]


@dataclass
class WLetStmt(WStmt):
    """let name be expr."""

    name: str
    value: WExpr


@dataclass
class WReturnStmt(WStmt):
    """return [expr]; value is None for bare return."""

    value: WExpr | None


@dataclass
class WExprStmt(WStmt):
    """Expression in statement position."""

    expr: WExpr


@dataclass
class WElseIf:
    """elseif cond then block."""

    pos: Pos
    cond: WExpr
    body: WBlock


@dataclass
class WIfStmt(WStmt):
    """if cond then block {elseif ...} [else block] endif."""

    cond: WExpr
    then_body: WBlock
    elseifs: list[WElseIf]
    else_body: WBlock | None


@dataclass
class WWhileStmt(WStmt):
    """while cond do block endwhile."""

    cond: WExpr
    body: WBlock


@dataclass
class WForEachStmt(WStmt):
    """foreach name in expr do block endforeach."""

    var: str
    iterable: WExpr
    body: WBlock


@dataclass
class WPrintStmt(WStmt):
    """print expr."""

    value: WExpr


@dataclass
class WInputStmt(WStmt):
    """input ["prompt"] as a statement; the line read is discarded."""

    prompt: str | None


@dataclass
class WExitStmt(WStmt):
    """exit [expr]; code is None for bare exit (status 0)."""

    code: WExpr | None


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class WIdent(WExpr):
    name: str


@dataclass
class WIntLit(WExpr):
    value: int
    raw: str


@dataclass
class WFloatLit(WExpr):
    value: float
    raw: str


@dataclass
class WStringLit(WExpr):
    value: str


@dataclass
class WBoolLit(WExpr):
    value: bool


@dataclass
class WPrefixOp(WExpr):
    """not expr."""

    op: str
    operand: WExpr


@dataclass
class WInfixOp(WExpr):
    """left op right; op is the canonical keyword, e.g. 'greater or equal'."""

    op: str
    left: WExpr
    right: WExpr


@dataclass
class WListLit(WExpr):
    elements: list[WExpr]


@dataclass
class WIndexOf(WExpr):
    """get item at index index from target."""

    index: WExpr
    target: WExpr


@dataclass
class WIsDefined(WExpr):
    name: str


@dataclass
class WToNumber(WExpr):
    operand: WExpr


@dataclass
class WToString(WExpr):
    operand: WExpr


@dataclass
class WFnLit(WExpr):
    """function p1 p2 ... block end function."""

    params: list[str]
    body: WBlock


@dataclass
class WCall(WExpr):
    """call callee arg ... [end]."""

    callee: WExpr
    args: list[WExpr]


@dataclass
class WInput(WExpr):
    """input ["prompt"] in expression position, yields the line read."""

    prompt: str | None


# ============================================================
# PROGRAM
# ============================================================


@dataclass
class WProgram:
    """Top-level statements plus pragma flags."""

    stmts: list[WStmt]
    strict_math: bool = field(default=False)
