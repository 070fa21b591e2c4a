"""WordLang runtime values."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .ast import WBlock

if TYPE_CHECKING:
    from .env import Environment


# Error kinds
TYPE_MISMATCH = "TypeMismatch"
DIVISION_BY_ZERO = "DivisionByZero"
UNKNOWN_IDENTIFIER = "UnknownIdentifier"
INDEX_OUT_OF_BOUNDS = "IndexOutOfBounds"
CONVERSION_ERROR = "ConversionError"
ARITY_MISMATCH = "ArityMismatch"
UNKNOWN_OPERATOR = "UnknownOperator"
INTEGER_OVERFLOW = "IntegerOverflow"
STACK_OVERFLOW = "StackOverflow"


class Value:
    """A runtime value. Every expression evaluates to exactly one."""

    def type_name(self) -> str:
        raise NotImplementedError

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class VNull(Value):
    def type_name(self) -> str:
        return "NULL"

    def to_string(self) -> str:
        return "null"


@dataclass(frozen=True)
class VBool(Value):
    value: bool

    def type_name(self) -> str:
        return "BOOLEAN"

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class VInt(Value):
    value: int

    def type_name(self) -> str:
        return "INTEGER"

    def to_string(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class VFloat(Value):
    value: float

    def type_name(self) -> str:
        return "FLOAT"

    def to_string(self) -> str:
        return format_float(self.value)


@dataclass(frozen=True)
class VString(Value):
    value: str

    def type_name(self) -> str:
        return "STRING"

    def to_string(self) -> str:
        return self.value


@dataclass(eq=False)
class VList(Value):
    # Compared by identity; elements are shared, never copied.
    elements: list[Value]

    def type_name(self) -> str:
        return "LIST"

    def to_string(self) -> str:
        inner = ", ".join(v.to_string() for v in self.elements)
        return f"[{inner}]"


@dataclass(eq=False)
class VFunc(Value):
    """A closure: parameters, body and the environment it was defined in."""

    params: list[str]
    body: WBlock
    env: Environment

    def type_name(self) -> str:
        return "FUNCTION"

    def to_string(self) -> str:
        if not self.params:
            return "<function>"
        return "<function " + " ".join(self.params) + ">"


@dataclass(frozen=True)
class VError(Value):
    """Runtime error sentinel; propagates unchanged through every construct."""

    kind: str
    message: str

    def type_name(self) -> str:
        return "ERROR"

    def to_string(self) -> str:
        return f"ERROR: {self.kind}: {self.message}"


@dataclass(frozen=True)
class VReturn(Value):
    """Return sentinel; unwrapped only at a call boundary or the program top."""

    value: Value

    def type_name(self) -> str:
        return "RETURN_VALUE"

    def to_string(self) -> str:
        return self.value.to_string()


NULL = VNull()
TRUE = VBool(True)
FALSE = VBool(False)


def native_bool(b: bool) -> VBool:
    return TRUE if b else FALSE


def is_truthy(v: Value) -> bool:
    """Null and false are falsy; everything else, including 0 and "", is truthy."""
    if isinstance(v, VNull):
        return False
    if isinstance(v, VBool):
        return v.value
    return True


def format_float(f: float) -> str:
    """Six fixed decimals, with Go-style spellings for the non-finite values."""
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "+Inf" if f > 0 else "-Inf"
    return f"{f:.6f}"
