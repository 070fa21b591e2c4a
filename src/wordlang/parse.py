"""WordLang parser: precedence climbing over a pull lexer, with error recovery."""

from __future__ import annotations

from typing import Callable

from .ast import (
    Pos,
    WBlock,
    WBoolLit,
    WCall,
    WElseIf,
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
from .tokens import (
    TK_ADD,
    TK_AND,
    TK_BE,
    TK_CALL,
    TK_COMMA,
    TK_DIVIDE,
    TK_DO,
    TK_ELSE,
    TK_ELSEIF,
    TK_END,
    TK_END_FUNCTION,
    TK_ENDFOREACH,
    TK_ENDIF,
    TK_ENDWHILE,
    TK_EOF,
    TK_EQUALS,
    TK_EXIT,
    TK_FALSE,
    TK_FLOAT,
    TK_FOREACH,
    TK_FROM,
    TK_FUNCTION,
    TK_GET_ITEM,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_IDENT,
    TK_IF,
    TK_ILLEGAL,
    TK_IN,
    TK_INPUT,
    TK_INT,
    TK_IS_DEFINED,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_LET,
    TK_LIST,
    TK_LPAREN,
    TK_MULTIPLY,
    TK_NOT,
    TK_NOTEQUALS,
    TK_OR,
    TK_PRINT,
    TK_RETURN,
    TK_RPAREN,
    TK_STRING,
    TK_SUBTRACT,
    TK_THEN,
    TK_TO_NUMBER,
    TK_TO_STRING,
    TK_TRUE,
    TK_WHILE,
    Lexer,
    Token,
)

INT64_MAX = 2**63 - 1

# Binding powers, lowest first
LOWEST = 1
LOGICAL = 2
EQUALS = 3
LESSGREATER = 4
SUM = 5
PRODUCT = 6
PREFIX = 7
CALL = 8

PRECEDENCES: dict[str, int] = {
    TK_OR: LOGICAL,
    TK_AND: LOGICAL,
    TK_EQUALS: EQUALS,
    TK_NOTEQUALS: EQUALS,
    TK_GREATER: LESSGREATER,
    TK_LESS: LESSGREATER,
    TK_GREATER_EQUAL: LESSGREATER,
    TK_LESS_EQUAL: LESSGREATER,
    TK_ADD: SUM,
    TK_SUBTRACT: SUM,
    TK_MULTIPLY: PRODUCT,
    TK_DIVIDE: PRODUCT,
}

# Tokens that end a block without being consumed by it
BLOCK_TERMINATORS: set[str] = {
    TK_EOF,
    TK_ENDIF,
    TK_ELSE,
    TK_ELSEIF,
    TK_ENDWHILE,
    TK_ENDFOREACH,
    TK_END,
    TK_END_FUNCTION,
}

STMT_KEYWORDS: set[str] = {
    TK_LET,
    TK_IF,
    TK_WHILE,
    TK_FOREACH,
    TK_PRINT,
    TK_RETURN,
    TK_EXIT,
}

# Tokens that can never start an expression; they close argument lists
# and mark an optional operand as absent.
BOUNDARY: set[str] = (
    BLOCK_TERMINATORS
    | STMT_KEYWORDS
    | {TK_THEN, TK_DO, TK_FROM, TK_IN, TK_BE, TK_RPAREN, TK_COMMA}
)

_OPENERS: set[str] = {TK_IF, TK_WHILE, TK_FOREACH, TK_FUNCTION}
_CLOSERS: set[str] = {TK_ENDIF, TK_ENDWHILE, TK_ENDFOREACH, TK_END_FUNCTION}


class ParseError(Exception):
    """Parse diagnostic with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at " + str(line) + ":" + str(col))


class ParseErrors(Exception):
    """All diagnostics collected from one parse; the program is not runnable."""

    def __init__(self, errors: list[ParseError]):
        self.errors: list[ParseError] = errors
        super().__init__("\n".join(str(e) for e in errors))


def _describe(tok: Token) -> str:
    if tok.type == TK_EOF:
        return "end of input"
    if tok.type == TK_IDENT:
        return "identifier '" + tok.value + "'"
    if tok.type == TK_INT or tok.type == TK_FLOAT:
        return "number " + tok.value
    if tok.type == TK_STRING:
        return 'string "' + tok.value + '"'
    return "'" + tok.value + "'"


def _describe_kind(kind: str) -> str:
    if kind == TK_IDENT:
        return "identifier"
    if kind == TK_EOF:
        return "end of input"
    return "'" + kind + "'"


class Parser:
    """Parser for WordLang. Diagnostics accumulate in self.errors."""

    def __init__(self, lexer: Lexer):
        self.lexer: Lexer = lexer
        self._cur: Token = lexer.next_token()
        self._next: Token = lexer.next_token()
        self.errors: list[ParseError] = []
        # closers of the constructs currently being parsed, innermost last
        self._open: list[str] = []
        self._stmt_parsers: dict[str, Callable[[], WStmt]] = {
            TK_LET: self.parse_let_stmt,
            TK_IF: self.parse_if_stmt,
            TK_WHILE: self.parse_while_stmt,
            TK_FOREACH: self.parse_foreach_stmt,
            TK_PRINT: self.parse_print_stmt,
            TK_INPUT: self.parse_input_stmt,
            TK_RETURN: self.parse_return_stmt,
            TK_EXIT: self.parse_exit_stmt,
        }
        self._prefix_parsers: dict[str, Callable[[], WExpr]] = {
            TK_IDENT: self.parse_ident,
            TK_INT: self.parse_int,
            TK_FLOAT: self.parse_float,
            TK_STRING: self.parse_string,
            TK_TRUE: self.parse_bool,
            TK_FALSE: self.parse_bool,
            TK_NOT: self.parse_not,
            TK_LIST: self.parse_list,
            TK_GET_ITEM: self.parse_index_of,
            TK_IS_DEFINED: self.parse_is_defined,
            TK_TO_NUMBER: self.parse_to_number,
            TK_TO_STRING: self.parse_to_string,
            TK_FUNCTION: self.parse_fn_lit,
            TK_CALL: self.parse_call,
            TK_INPUT: self.parse_input_expr,
            TK_ILLEGAL: self.parse_illegal,
            TK_ADD: self.parse_operator_first,
            TK_SUBTRACT: self.parse_operator_first,
            TK_MULTIPLY: self.parse_operator_first,
            TK_DIVIDE: self.parse_operator_first,
        }

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self._cur

    def peek(self) -> Token:
        return self._next

    def advance(self) -> Token:
        tok = self._cur
        self._cur = self._next
        self._next = self.lexer.next_token()
        return tok

    def at(self, kind: str) -> bool:
        return self._cur.type == kind

    def expect(self, kind: str) -> Token:
        if self._cur.type != kind:
            raise self.error(
                "expected " + _describe_kind(kind) + ", got " + _describe(self._cur)
            )
        return self.advance()

    def expect_ident(self) -> Token:
        return self.expect(TK_IDENT)

    def error(self, msg: str) -> ParseError:
        return ParseError(msg, self._cur.line, self._cur.col)

    def _pos(self) -> Pos:
        return Pos(self._cur.line, self._cur.col)

    def _tok_pos(self, tok: Token) -> Pos:
        return Pos(tok.line, tok.col)

    # ── Recovery ─────────────────────────────────────────────

    def _parse_stmt_recovering(self) -> WStmt | None:
        """Parse one statement; on failure record it and skip past the damage."""
        depth = len(self._open)
        start = self._cur
        try:
            return self.parse_stmt()
        except ParseError as e:
            self.errors.append(e)
            unclosed = len(self._open) - depth
            del self._open[depth:]
            self._synchronize(unclosed)
            if self._cur is start and not self.at(TK_EOF):
                self.advance()
            return None

    def _synchronize(self, depth: int) -> None:
        """Skip tokens until a statement boundary outside any unfinished construct."""
        while not self.at(TK_EOF):
            kind = self._cur.type
            # a bare 'end' is ambiguous (call, list or function), so it is skipped
            if depth == 0 and kind != TK_END:
                if kind in STMT_KEYWORDS or kind in BLOCK_TERMINATORS:
                    return
            if kind in _OPENERS:
                depth += 1
            elif kind in _CLOSERS:
                depth -= 1
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> WProgram:
        stmts: list[WStmt] = []
        try:
            while not self.at(TK_EOF):
                if self._cur.type in BLOCK_TERMINATORS:
                    self.errors.append(
                        self.error("unexpected " + _describe(self._cur))
                    )
                    self.advance()
                    continue
                stmt = self._parse_stmt_recovering()
                if stmt is not None:
                    stmts.append(stmt)
        except RecursionError:
            # the rest of the input is abandoned
            self.errors.append(self.error("expression nested too deeply"))
        return WProgram(stmts)

    def parse_block(self) -> WBlock:
        """Block = Stmt*, stopping before a block terminator."""
        pos = self._pos()
        stmts: list[WStmt] = []
        while self._cur.type not in BLOCK_TERMINATORS:
            stmt = self._parse_stmt_recovering()
            if stmt is not None:
                stmts.append(stmt)
        return WBlock(pos, stmts)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> WStmt:
        parser = self._stmt_parsers.get(self._cur.type)
        if parser is not None:
            return parser()
        return self.parse_expr_stmt()

    def parse_let_stmt(self) -> WLetStmt:
        """Let = 'let' IDENT 'be' Expr"""
        pos = self._pos()
        self.expect(TK_LET)
        name_tok = self.expect_ident()
        self.expect(TK_BE)
        value = self.parse_expr()
        return WLetStmt(pos, name_tok.value, value)

    def parse_if_stmt(self) -> WIfStmt:
        """If = 'if' Expr 'then' Block ( 'elseif' Expr 'then' Block )* ( 'else' Block )? 'endif'"""
        pos = self._pos()
        self.expect(TK_IF)
        self._open.append(TK_ENDIF)
        cond = self.parse_expr()
        self.expect(TK_THEN)
        then_body = self.parse_block()
        elseifs: list[WElseIf] = []
        while self.at(TK_ELSEIF):
            branch_pos = self._pos()
            self.advance()
            branch_cond = self.parse_expr()
            self.expect(TK_THEN)
            elseifs.append(WElseIf(branch_pos, branch_cond, self.parse_block()))
        else_body: WBlock | None = None
        if self.at(TK_ELSE):
            self.advance()
            else_body = self.parse_block()
        self.expect(TK_ENDIF)
        self._open.pop()
        return WIfStmt(pos, cond, then_body, elseifs, else_body)

    def parse_while_stmt(self) -> WWhileStmt:
        """While = 'while' Expr 'do' Block 'endwhile'"""
        pos = self._pos()
        self.expect(TK_WHILE)
        self._open.append(TK_ENDWHILE)
        cond = self.parse_expr()
        self.expect(TK_DO)
        body = self.parse_block()
        self.expect(TK_ENDWHILE)
        self._open.pop()
        return WWhileStmt(pos, cond, body)

    def parse_foreach_stmt(self) -> WForEachStmt:
        """ForEach = 'foreach' IDENT 'in' Expr 'do' Block 'endforeach'"""
        pos = self._pos()
        self.expect(TK_FOREACH)
        self._open.append(TK_ENDFOREACH)
        var_tok = self.expect_ident()
        self.expect(TK_IN)
        iterable = self.parse_expr()
        self.expect(TK_DO)
        body = self.parse_block()
        self.expect(TK_ENDFOREACH)
        self._open.pop()
        return WForEachStmt(pos, var_tok.value, iterable, body)

    def parse_print_stmt(self) -> WPrintStmt:
        pos = self._pos()
        self.expect(TK_PRINT)
        return WPrintStmt(pos, self.parse_expr())

    def parse_input_stmt(self) -> WInputStmt:
        pos = self._pos()
        self.expect(TK_INPUT)
        return WInputStmt(pos, self._parse_prompt())

    def parse_return_stmt(self) -> WReturnStmt:
        pos = self._pos()
        self.expect(TK_RETURN)
        if self._cur.type in BOUNDARY:
            return WReturnStmt(pos, None)
        return WReturnStmt(pos, self.parse_expr())

    def parse_exit_stmt(self) -> WExitStmt:
        pos = self._pos()
        self.expect(TK_EXIT)
        if self._cur.type in BOUNDARY:
            return WExitStmt(pos, None)
        return WExitStmt(pos, self.parse_expr())

    def parse_expr_stmt(self) -> WExprStmt:
        pos = self._pos()
        return WExprStmt(pos, self.parse_expr())

    def _parse_prompt(self) -> str | None:
        if self.at(TK_STRING):
            return self.advance().value
        return None

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self, precedence: int = LOWEST) -> WExpr:
        """Expr = Prefix ( InfixOp Expr )*, climbing while the operator binds tighter."""
        prefix = self._prefix_parsers.get(self._cur.type)
        if prefix is None:
            raise self.error("no expression can start with " + _describe(self._cur))
        left = prefix()
        while precedence < PRECEDENCES.get(self._cur.type, LOWEST):
            op_tok = self.advance()
            right = self.parse_expr(PRECEDENCES[op_tok.type])
            left = WInfixOp(left.pos, op_tok.type, left, right)
        return left

    def parse_ident(self) -> WIdent:
        tok = self.advance()
        return WIdent(self._tok_pos(tok), tok.value)

    def parse_int(self) -> WIntLit:
        tok = self._cur
        value = int(tok.value)
        if value > INT64_MAX:
            raise self.error("could not parse '" + tok.value + "' as integer")
        self.advance()
        return WIntLit(self._tok_pos(tok), value, tok.value)

    def parse_float(self) -> WFloatLit:
        tok = self._cur
        try:
            value = float(tok.value)
        except ValueError:
            raise self.error("could not parse '" + tok.value + "' as float") from None
        self.advance()
        return WFloatLit(self._tok_pos(tok), value, tok.value)

    def parse_string(self) -> WStringLit:
        tok = self.advance()
        return WStringLit(self._tok_pos(tok), tok.value)

    def parse_bool(self) -> WBoolLit:
        tok = self.advance()
        return WBoolLit(self._tok_pos(tok), tok.type == TK_TRUE)

    def parse_illegal(self) -> WExpr:
        tok = self._cur
        if tok.value.startswith('"'):
            raise self.error("unterminated string")
        raise self.error("illegal character '" + tok.value + "'")

    def parse_not(self) -> WPrefixOp:
        pos = self._pos()
        op = self.advance().type
        return WPrefixOp(pos, op, self.parse_expr(PREFIX))

    def parse_operator_first(self) -> WInfixOp:
        """OpFirst = ArithOp Prefix Prefix, e.g. 'add a b'."""
        pos = self._pos()
        op = self.advance().type
        left = self.parse_expr(PREFIX)
        right = self.parse_expr(PREFIX)
        return WInfixOp(pos, op, left, right)

    def parse_to_number(self) -> WToNumber:
        pos = self._pos()
        self.advance()
        return WToNumber(pos, self.parse_expr(PREFIX))

    def parse_to_string(self) -> WToString:
        pos = self._pos()
        self.advance()
        return WToString(pos, self.parse_expr(PREFIX))

    def parse_index_of(self) -> WIndexOf:
        """IndexOf = 'get item at index' Expr 'from' Prefix"""
        pos = self._pos()
        self.advance()
        index = self.parse_expr()
        self.expect(TK_FROM)
        target = self.parse_expr(PREFIX)
        return WIndexOf(pos, index, target)

    def parse_is_defined(self) -> WIsDefined:
        pos = self._pos()
        self.advance()
        name_tok = self.expect_ident()
        return WIsDefined(pos, name_tok.value)

    def parse_list(self) -> WListLit:
        """List = 'list' '(' ( Expr ','? )* ')' | 'list' Expr* 'end'?"""
        pos = self._pos()
        self.expect(TK_LIST)
        if self.at(TK_LPAREN):
            self.advance()
            elements: list[WExpr] = []
            while not self.at(TK_RPAREN):
                if self.at(TK_EOF):
                    raise self.error("expected ')', got end of input")
                elements.append(self.parse_expr())
                if self.at(TK_COMMA):
                    self.advance()
            self.expect(TK_RPAREN)
            return WListLit(pos, elements)
        return WListLit(pos, self._parse_open_args())

    def parse_fn_lit(self) -> WFnLit:
        """FnLit = 'function' IDENT* Block ( 'end function' | 'end' )"""
        pos = self._pos()
        self.expect(TK_FUNCTION)
        self._open.append(TK_END_FUNCTION)
        params: list[str] = []
        while self.at(TK_IDENT):
            params.append(self.advance().value)
        body = self.parse_block()
        if self.at(TK_END):
            self.advance()
        else:
            self.expect(TK_END_FUNCTION)
        self._open.pop()
        return WFnLit(pos, params, body)

    def parse_call(self) -> WCall:
        """Call = 'call' Callee Expr* 'end'?"""
        pos = self._pos()
        self.expect(TK_CALL)
        callee = self.parse_expr(CALL)
        return WCall(pos, callee, self._parse_open_args())

    def _parse_open_args(self) -> list[WExpr]:
        """Expressions up to an explicit 'end' (consumed) or a boundary token."""
        args: list[WExpr] = []
        while not self.at(TK_END) and self._cur.type not in BOUNDARY:
            args.append(self.parse_expr())
        if self.at(TK_END):
            self.advance()
        return args

    def parse_input_expr(self) -> WInput:
        pos = self._pos()
        self.expect(TK_INPUT)
        return WInput(pos, self._parse_prompt())
