"""Tokenizer for the configuration language.

Converts a character stream into a sequence of typed tokens, tracking the
location of every character so that errors can be reported precisely.
"""

import io
import re
from typing import Any, Iterator, List, TextIO, Tuple

from .exceptions import RecognizerError, TokenizerError
from .nodes import Token
from .tokens import KEYWORD_VALUES, KEYWORDS, PUNCTUATION, Location, TokenKind

ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
}

HEX_ESCAPE_WIDTHS = {"x": 4, "X": 4, "u": 6, "U": 10}

_HEX_PATTERN = re.compile(r"^[0-9a-fA-F]+$")

_RADIX_MARKERS = {"x": 16, "X": 16, "o": 8, "O": 8, "b": 2, "B": 2}

# first character -> {second character -> compound kind}
_COMPOUNDS = {
    "=": {"=": TokenKind.EQUAL},
    "<": {"=": TokenKind.LESS_THAN_OR_EQUAL, ">": TokenKind.ALT_UNEQUAL, "<": TokenKind.LEFT_SHIFT},
    ">": {"=": TokenKind.GREATER_THAN_OR_EQUAL, ">": TokenKind.RIGHT_SHIFT},
    "!": {"=": TokenKind.UNEQUAL},
    "/": {"/": TokenKind.SLASH_SLASH},
    "*": {"*": TokenKind.POWER},
    "&": {"&": TokenKind.AND},
    "|": {"|": TokenKind.OR},
}


def is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def is_hex_digit(c: str) -> bool:
    return is_digit(c) or ("a" <= c <= "f") or ("A" <= c <= "F")


def parse_escapes(s: str) -> str:
    """Decode backslash escape sequences in a string.

    Args:
        s: Raw string body, without quotes

    Returns:
        Decoded string

    Raises:
        TokenizerError: If an escape sequence is malformed  # (no location; caller supplies it)
    """
    i = s.find("\\")
    if i < 0:
        return s

    parts = []  # List[str] (decoded fragments)
    while i >= 0:
        n = len(s)
        if i > 0:
            parts.append(s[:i])
        c = s[i + 1] if i + 1 < n else ""
        if c in ESCAPES:
            parts.append(ESCAPES[c])
            i += 2
        elif c and c in HEX_ESCAPE_WIDTHS:
            width = HEX_ESCAPE_WIDTHS[c]
            digits = s[i + 2 : i + width]
            if i + width > n or not _HEX_PATTERN.match(digits):
                raise TokenizerError(f"Invalid escape sequence at index {i}")
            code = int(digits, 16)
            if 0xD800 <= code <= 0xDFFF or code >= 0x110000:
                raise TokenizerError(f"Invalid escape sequence at index {i}")
            parts.append(chr(code))
            i += width
        else:
            raise TokenizerError(f"Invalid escape sequence at index {i}")
        s = s[i:]
        i = s.find("\\")
    parts.append(s)
    return "".join(parts)


class Tokenizer:
    """Split a text stream into tokens.

    Characters are read one at a time. A stack of pushed-back characters,
    each with the location it was read at, provides the lookahead needed for
    compound punctuation and numbers which start with ``.`` or ``-``.
    """

    def __init__(self, stream: TextIO):
        """Initialize tokenizer.

        Args:
            stream: Text stream to read from  # (anything with read(1))
        """
        self.stream = stream
        self.pushed_back: List[Tuple[str, Location]] = []
        self.location = Location()
        self.char_location = Location()

    @classmethod
    def from_string(cls, text: str) -> "Tokenizer":
        return cls(io.StringIO(text))

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.get_token()
            yield token
            if token.kind == TokenKind.EOF:
                break

    def push_back(self, c: str) -> None:
        if c:
            self.pushed_back.append((c, self.char_location.copy()))

    def get_char(self) -> str:
        """Return the next character, or an empty string at end of input."""
        if self.pushed_back:
            c, loc = self.pushed_back.pop()
            self.char_location.update(loc)
            self.location.update(loc)  # bumped below
        else:
            self.char_location.update(self.location)
            c = self.stream.read(1)
        if c:
            if c == "\n":
                self.location.next_line()
            else:
                self.location.column += 1
        return c

    def _append(self, text: List[str], c: str, end: Location) -> None:
        text.append(c)
        end.update(self.char_location)

    def _error(self, message: str, location: Location) -> TokenizerError:
        return TokenizerError(message, location.copy())

    def _get_number(self, text: List[str], start: Location, end: Location) -> Tuple[TokenKind, Any]:
        kind = TokenKind.INTEGER
        in_exponent = False
        radix = 0
        dot_seen = "." in text
        last_was_digit = is_digit(text[-1])

        while True:
            c = self.get_char()
            if not c:
                break
            if c == ".":
                dot_seen = True
            if c == "_":
                if last_was_digit:
                    self._append(text, c, end)
                    last_was_digit = False
                    continue
                raise self._error(f"Invalid '_' in number: {''.join(text)}{c}", self.char_location)
            last_was_digit = False
            if (
                (radix == 0 and is_digit(c))
                or (radix == 2 and c in "01")
                or (radix == 8 and "0" <= c <= "7")
                or (radix == 16 and is_hex_digit(c))
            ):
                self._append(text, c, end)
                last_was_digit = True
            elif c in _RADIX_MARKERS and text == ["0"]:
                radix = _RADIX_MARKERS[c]
                self._append(text, c, end)
            elif radix == 0 and c == "." and not in_exponent and text.count(".") == 0:
                self._append(text, c, end)
            elif radix == 0 and c in "+-" and in_exponent and text[-1] in "eE":
                self._append(text, c, end)
            elif radix == 0 and c in "eE" and not in_exponent and text[-1] != "_":
                self._append(text, c, end)
                in_exponent = True
            else:
                break

        if text[-1] == "_":
            raise self._error(f"Invalid '_' at end of number: {''.join(text)}", end)
        if radix == 0 and c in ("j", "J"):
            self._append(text, c, end)
            kind = TokenKind.COMPLEX
        elif c == "." or c.isalnum():
            raise self._error(f"Invalid character in number: {c}", self.char_location)
        else:
            self.push_back(c)

        s = "".join(text).replace("_", "")
        try:
            if radix != 0:
                value = int(s[2:], radix)
            elif kind == TokenKind.COMPLEX:
                value = complex(0.0, float(s[:-1]))
            elif in_exponent or dot_seen:
                kind = TokenKind.FLOAT
                value = float(s)
            else:
                value = int(s, 8 if s[0] == "0" else 10)
        except ValueError as e:
            raise TokenizerError(f"Invalid character in number: {s}", start.copy()) from e
        return kind, value

    def _get_quoted(self, quote: str, text: List[str], start: Location, end: Location) -> Any:
        multi_line = False
        escaped = False

        text.append(quote)
        c1 = self.get_char()
        c1_location = self.char_location.copy()
        if c1 != quote:
            self.push_back(c1)
        else:
            c2 = self.get_char()
            if c2 != quote:
                self.push_back(c2)
                self.char_location.update(c1_location)
                self.push_back(c1)
            else:
                multi_line = True
                text.append(quote * 2)

        quoter = "".join(text)
        body_start = len(quoter)
        while True:
            c = self.get_char()
            if not c:
                break
            self._append(text, c, end)
            if c == quote and not escaped:
                s = "".join(text)
                if not multi_line or (len(s) >= 6 and s.endswith(quoter) and s[-4] != "\\"):
                    break
            escaped = (not escaped) if c == "\\" else False
        if not c:
            raise self._error(f"Unterminated quoted string: {''.join(text)}", start)
        s = "".join(text)
        return self._decode(s[body_start : len(s) - body_start], start)

    def _decode(self, s: str, start: Location) -> str:
        try:
            return parse_escapes(s)
        except RecognizerError as e:
            e.location = start.copy()
            raise

    def get_token(self) -> Token:
        """Read the next token from the stream.

        Returns:
            The next token  # (an EOF token, repeatedly, once input is exhausted)

        Raises:
            TokenizerError: If the input contains a malformed token
        """
        kind = TokenKind.EOF
        text: List[str] = []
        value: Any = None
        start = Location()
        end = Location()

        while True:
            c = self.get_char()
            start.update(self.char_location)
            end.update(self.char_location)

            if not c:
                break
            if c == "#":
                text.append(c)
                c = self.get_char()
                while c and c != "\n":
                    if c != "\r":
                        self._append(text, c, end)
                    c = self.get_char()
                kind = TokenKind.NEWLINE
                break
            if c == "\n":
                text.append(c)
                kind = TokenKind.NEWLINE
                break
            if c == "\r":
                c = self.get_char()
                if c != "\n":
                    self.push_back(c)
                text.append("\n")
                kind = TokenKind.NEWLINE
                break
            if c == "\\":
                c = self.get_char()
                if c == "\r":
                    c = self.get_char()
                if c != "\n":
                    raise self._error("Unexpected character: \\", self.char_location)
                end.update(self.char_location)
                continue
            if c.isspace():
                continue
            if c.isalpha() or c == "_":
                kind = TokenKind.WORD
                self._append(text, c, end)
                c = self.get_char()
                while c and (c.isalnum() or c == "_"):
                    self._append(text, c, end)
                    c = self.get_char()
                self.push_back(c)
                value = "".join(text)
                if value in KEYWORDS:
                    kind = KEYWORDS[value]
                    value = KEYWORD_VALUES.get(kind, value)
                break
            if c == "`":
                kind = TokenKind.BACKTICK
                self._append(text, c, end)
                while True:
                    c = self.get_char()
                    if not c:
                        break
                    self._append(text, c, end)
                    if c == "`":
                        break
                if not c:
                    raise self._error(f"Unterminated `-string: {''.join(text)}", start)
                value = self._decode("".join(text)[1:-1], start)
                break
            if c in ("'", '"'):
                kind = TokenKind.STRING
                value = self._get_quoted(c, text, start, end)
                break
            if is_digit(c):
                self._append(text, c, end)
                kind, value = self._get_number(text, start, end)
                break
            if c in PUNCTUATION:
                kind = PUNCTUATION[c]
                self._append(text, c, end)
                kind, value = self._get_punctuation(c, kind, text, start, end)
                break
            raise self._error(f"Unexpected character: {c}", self.char_location)

        token = Token(kind, "".join(text), value)
        token.start = start.copy()
        token.end = end.copy()
        return token

    def _get_punctuation(
        self, c: str, kind: TokenKind, text: List[str], start: Location, end: Location
    ) -> Tuple[TokenKind, Any]:
        if c in ".-":
            c2 = self.get_char()
            if is_digit(c2) or (c == "-" and c2 == "."):
                self._append(text, c2, end)
                return self._get_number(text, start, end)
            self.push_back(c2)
            return kind, None

        compounds = _COMPOUNDS.get(c)
        if compounds:
            c2 = self.get_char()
            if c2 in compounds:
                self._append(text, c2, end)
                return compounds[c2], None
            self.push_back(c2)
        return kind, None
