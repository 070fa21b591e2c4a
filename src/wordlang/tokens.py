"""WordLang lexer: pulls tokens one at a time, fusing multi-word keyword phrases."""

from __future__ import annotations

from dataclasses import dataclass


# Token type constants
TK_INT = "INT"
TK_FLOAT = "FLOAT"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_ILLEGAL = "ILLEGAL"
TK_EOF = "EOF"

# Punctuation
TK_LPAREN = "("
TK_RPAREN = ")"
TK_COMMA = ","

# Keyword tokens use their canonical spelling as their type
TK_LET = "let"
TK_BE = "be"
TK_FUNCTION = "function"
TK_CALL = "call"
TK_IF = "if"
TK_THEN = "then"
TK_ELSE = "else"
TK_ELSEIF = "elseif"
TK_ENDIF = "endif"
TK_WHILE = "while"
TK_DO = "do"
TK_ENDWHILE = "endwhile"
TK_FOREACH = "foreach"
TK_IN = "in"
TK_ENDFOREACH = "endforeach"
TK_PRINT = "print"
TK_INPUT = "input"
TK_EXIT = "exit"
TK_RETURN = "return"
TK_ADD = "add"
TK_SUBTRACT = "subtract"
TK_MULTIPLY = "multiply"
TK_DIVIDE = "divide"
TK_AND = "and"
TK_OR = "or"
TK_NOT = "not"
TK_EQUALS = "equals"
TK_NOTEQUALS = "notequals"
TK_GREATER = "greater"
TK_LESS = "less"
TK_GREATER_EQUAL = "greater or equal"
TK_LESS_EQUAL = "less or equal"
TK_END = "end"
TK_END_FUNCTION = "end function"
TK_LIST = "list"
TK_FROM = "from"
TK_TRUE = "true"
TK_FALSE = "false"
TK_GET_ITEM = "get item at index"
TK_IS_DEFINED = "is defined"
TK_TO_NUMBER = "convert to number"
TK_TO_STRING = "convert to string"

# Single words, including the short aliases accepted by the original keyword table
KEYWORDS: dict[str, str] = {
    "let": TK_LET,
    "be": TK_BE,
    "function": TK_FUNCTION,
    "call": TK_CALL,
    "if": TK_IF,
    "then": TK_THEN,
    "else": TK_ELSE,
    "elseif": TK_ELSEIF,
    "endif": TK_ENDIF,
    "while": TK_WHILE,
    "do": TK_DO,
    "endwhile": TK_ENDWHILE,
    "foreach": TK_FOREACH,
    "in": TK_IN,
    "endforeach": TK_ENDFOREACH,
    "print": TK_PRINT,
    "input": TK_INPUT,
    "exit": TK_EXIT,
    "return": TK_RETURN,
    "add": TK_ADD,
    "subtract": TK_SUBTRACT,
    "sub": TK_SUBTRACT,
    "multiply": TK_MULTIPLY,
    "mult": TK_MULTIPLY,
    "divide": TK_DIVIDE,
    "div": TK_DIVIDE,
    "and": TK_AND,
    "or": TK_OR,
    "not": TK_NOT,
    "equals": TK_EQUALS,
    "notequals": TK_NOTEQUALS,
    "greater": TK_GREATER,
    "less": TK_LESS,
    "end": TK_END,
    "endfunction": TK_END_FUNCTION,
    "isdefined": TK_IS_DEFINED,
    "list": TK_LIST,
    "from": TK_FROM,
    "true": TK_TRUE,
    "false": TK_FALSE,
}

# Multi-word phrases, matched longest first
PHRASES: dict[tuple[str, ...], str] = {
    ("greater", "than"): TK_GREATER,
    ("greater", "or", "equal"): TK_GREATER_EQUAL,
    ("less", "than"): TK_LESS,
    ("less", "or", "equal"): TK_LESS_EQUAL,
    ("end", "if"): TK_ENDIF,
    ("end", "while"): TK_ENDWHILE,
    ("end", "foreach"): TK_ENDFOREACH,
    ("end", "function"): TK_END_FUNCTION,
    ("get", "item", "at", "index"): TK_GET_ITEM,
    ("is", "defined"): TK_IS_DEFINED,
    ("convert", "to", "number"): TK_TO_NUMBER,
    ("convert", "to", "string"): TK_TO_STRING,
}

_PHRASE_PREFIXES: set[tuple[str, ...]] = {
    phrase[:n] for phrase in PHRASES for n in range(1, len(phrase))
}

_MAX_PHRASE = max(len(p) for p in PHRASES)

_PUNCTUATION: dict[str, str] = {
    "(": TK_LPAREN,
    ")": TK_RPAREN,
    ",": TK_COMMA,
}


@dataclass(frozen=True)
class Token:
    type: str
    value: str
    line: int
    col: int

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r}, {self.line}:{self.col})"


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c) or c == "_"


class Lexer:
    """Pull lexer: each next_token() call consumes exactly one token.

    Positions are 1-based. Once the input is exhausted every further call
    returns an EOF token at the end position.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1

    def _peek_char(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return ""

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _skip_trivia(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in " \t\r\n":
                self._advance()
            elif ch == "#":
                while self.pos < len(self.source) and self.source[self.pos] != "\n":
                    self._advance()
            else:
                break

    def next_token(self) -> Token:
        self._skip_trivia()
        line = self.line
        col = self.col
        if self.pos >= len(self.source):
            return Token(TK_EOF, "", line, col)
        ch = self.source[self.pos]
        if _is_digit(ch):
            return self._read_number(line, col)
        if ch == '"':
            return self._read_string(line, col)
        if _is_alpha(ch):
            return self._read_word(line, col)
        if ch in _PUNCTUATION:
            self._advance()
            return Token(_PUNCTUATION[ch], ch, line, col)
        self._advance()
        return Token(TK_ILLEGAL, ch, line, col)

    def _read_number(self, line: int, col: int) -> Token:
        start = self.pos
        while self._peek_char() != "" and (
            _is_digit(self._peek_char()) or self._peek_char() == "."
        ):
            self._advance()
        text = self.source[start : self.pos]
        if "." in text:
            return Token(TK_FLOAT, text, line, col)
        return Token(TK_INT, text, line, col)

    def _read_string(self, line: int, col: int) -> Token:
        self._advance()
        start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] != '"':
            self._advance()
        if self.pos >= len(self.source):
            return Token(TK_ILLEGAL, '"' + self.source[start:], line, col)
        text = self.source[start : self.pos]
        self._advance()
        return Token(TK_STRING, text, line, col)

    def _scan_word(self, pos: int) -> int:
        """Return the end index of the word starting at pos (no state change)."""
        end = pos
        while end < len(self.source) and _is_alnum(self.source[end]):
            end += 1
        return end

    def _read_word(self, line: int, col: int) -> Token:
        first_end = self._scan_word(self.pos)
        words = [self.source[self.pos : first_end]]
        ends = [first_end]
        # Peek ahead over following words on the same line without consuming
        cursor = first_end
        while len(words) < _MAX_PHRASE and tuple(words) in _PHRASE_PREFIXES:
            gap = cursor
            while gap < len(self.source) and self.source[gap] in " \t":
                gap += 1
            if gap == cursor or gap >= len(self.source):
                break
            if not _is_alpha(self.source[gap]):
                break
            cursor = self._scan_word(gap)
            words.append(self.source[gap:cursor])
            ends.append(cursor)
        n = len(words)
        while n > 1:
            kind = PHRASES.get(tuple(words[:n]))
            if kind is not None:
                return self._commit_word(kind, ends[n - 1], line, col)
            n -= 1
        word = words[0]
        return self._commit_word(KEYWORDS.get(word, TK_IDENT), first_end, line, col)

    def _commit_word(self, kind: str, end: int, line: int, col: int) -> Token:
        start = self.pos
        while self.pos < end:
            self._advance()
        return Token(kind, self.source[start:end], line, col)


def tokenize(source: str) -> list[Token]:
    """Drain a Lexer over source, returning all tokens including the final EOF."""
    lexer = Lexer(source)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.type == TK_EOF:
            return tokens
