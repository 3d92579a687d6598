"""Token kinds, source locations and the null sentinel."""

from dataclasses import dataclass
from enum import Enum


@dataclass(order=True)
class Location:
    """A line/column position in source text (both 1-based)."""

    line: int = 1
    column: int = 1

    def next_line(self) -> None:
        self.line += 1
        self.column = 1

    def update(self, other: "Location") -> None:
        self.line = other.line
        self.column = other.column

    def copy(self) -> "Location":
        return Location(self.line, self.column)

    def __str__(self) -> str:
        return f"({self.line}, {self.column})"


class TokenKind(Enum):
    """Kinds of token produced by the tokenizer."""

    EOF = "EOF"
    WORD = "Word"
    INTEGER = "Integer"
    FLOAT = "Float"
    STRING = "String"
    NEWLINE = "Newline"
    LEFT_CURLY = "LeftCurly"
    RIGHT_CURLY = "RightCurly"
    LEFT_BRACKET = "LeftBracket"
    RIGHT_BRACKET = "RightBracket"
    LEFT_PARENTHESIS = "LeftParenthesis"
    RIGHT_PARENTHESIS = "RightParenthesis"
    LESS_THAN = "LessThan"
    GREATER_THAN = "GreaterThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    ASSIGN = "Assign"
    EQUAL = "Equal"
    UNEQUAL = "Unequal"
    ALT_UNEQUAL = "AltUnequal"
    LEFT_SHIFT = "LeftShift"
    RIGHT_SHIFT = "RightShift"
    DOT = "Dot"
    COMMA = "Comma"
    COLON = "Colon"
    AT = "At"
    PLUS = "Plus"
    MINUS = "Minus"
    STAR = "Star"
    POWER = "Power"
    SLASH = "Slash"
    SLASH_SLASH = "SlashSlash"
    MODULO = "Modulo"
    BACKTICK = "BackTick"
    DOLLAR = "Dollar"
    TRUE = "True"
    FALSE = "False"
    NONE = "None"
    IS = "Is"
    IN = "In"
    NOT = "Not"
    AND = "And"
    OR = "Or"
    BITWISE_AND = "BitwiseAnd"
    BITWISE_OR = "BitwiseOr"
    BITWISE_XOR = "BitwiseXor"
    BITWISE_COMPLEMENT = "BitwiseComplement"
    COMPLEX = "Complex"
    IS_NOT = "IsNot"
    NOT_IN = "NotIn"

    def __str__(self) -> str:
        return self.value


class _Null:
    """The configuration ``null`` value, distinct from Python's ``None``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "null"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Null, ())


NULL = _Null()

PUNCTUATION = {
    ":": TokenKind.COLON,
    "-": TokenKind.MINUS,
    "+": TokenKind.PLUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "%": TokenKind.MODULO,
    ",": TokenKind.COMMA,
    "{": TokenKind.LEFT_CURLY,
    "}": TokenKind.RIGHT_CURLY,
    "[": TokenKind.LEFT_BRACKET,
    "]": TokenKind.RIGHT_BRACKET,
    "(": TokenKind.LEFT_PARENTHESIS,
    ")": TokenKind.RIGHT_PARENTHESIS,
    "@": TokenKind.AT,
    "$": TokenKind.DOLLAR,
    "<": TokenKind.LESS_THAN,
    ">": TokenKind.GREATER_THAN,
    "!": TokenKind.NOT,
    "~": TokenKind.BITWISE_COMPLEMENT,
    "&": TokenKind.BITWISE_AND,
    "|": TokenKind.BITWISE_OR,
    "^": TokenKind.BITWISE_XOR,
    ".": TokenKind.DOT,
    "=": TokenKind.ASSIGN,
}

KEYWORDS = {
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "null": TokenKind.NONE,
    "is": TokenKind.IS,
    "in": TokenKind.IN,
    "not": TokenKind.NOT,
    "and": TokenKind.AND,
    "or": TokenKind.OR,
}

KEYWORD_VALUES = {
    TokenKind.TRUE: True,
    TokenKind.FALSE: False,
    TokenKind.NONE: NULL,
}

SCALAR_TOKENS = frozenset(
    {
        TokenKind.STRING,
        TokenKind.INTEGER,
        TokenKind.FLOAT,
        TokenKind.COMPLEX,
        TokenKind.FALSE,
        TokenKind.TRUE,
        TokenKind.NONE,
    }
)
