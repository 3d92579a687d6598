"""Recursive-descent parser for the configuration language."""

import io
import re
from typing import Any, Iterator, List, Optional, TextIO, Tuple

from .exceptions import ConfigError, InvalidPathError, ParserError, RecognizerError
from .nodes import ASTNode, BinaryNode, ListNode, MappingNode, SliceNode, Token, UnaryNode
from .tokenizer import Tokenizer
from .tokens import TokenKind

IDENTIFIER_PATTERN = re.compile(r"^(?!\d)\w+$")

EXPRESSION_STARTERS = frozenset(
    {
        TokenKind.LEFT_CURLY,
        TokenKind.LEFT_BRACKET,
        TokenKind.LEFT_PARENTHESIS,
        TokenKind.AT,
        TokenKind.DOLLAR,
        TokenKind.BACKTICK,
        TokenKind.PLUS,
        TokenKind.MINUS,
        TokenKind.BITWISE_COMPLEMENT,
        TokenKind.INTEGER,
        TokenKind.FLOAT,
        TokenKind.COMPLEX,
        TokenKind.TRUE,
        TokenKind.FALSE,
        TokenKind.NONE,
        TokenKind.NOT,
        TokenKind.STRING,
        TokenKind.WORD,
    }
)

VALUE_STARTERS = frozenset(
    {
        TokenKind.WORD,
        TokenKind.INTEGER,
        TokenKind.FLOAT,
        TokenKind.COMPLEX,
        TokenKind.STRING,
        TokenKind.BACKTICK,
        TokenKind.NONE,
        TokenKind.TRUE,
        TokenKind.FALSE,
    }
)

COMPARISON_OPERATORS = frozenset(
    {
        TokenKind.LESS_THAN,
        TokenKind.LESS_THAN_OR_EQUAL,
        TokenKind.GREATER_THAN,
        TokenKind.GREATER_THAN_OR_EQUAL,
        TokenKind.EQUAL,
        TokenKind.UNEQUAL,
        TokenKind.ALT_UNEQUAL,
        TokenKind.IS,
        TokenKind.IN,
        TokenKind.NOT,
    }
)

UNARY_OPERATORS = frozenset({TokenKind.PLUS, TokenKind.MINUS, TokenKind.BITWISE_COMPLEMENT, TokenKind.AT})

MULTIPLICATIVE_OPERATORS = frozenset({TokenKind.STAR, TokenKind.SLASH, TokenKind.SLASH_SLASH, TokenKind.MODULO})


class Parser:
    """Parse a token stream into an abstract syntax tree.

    One token of lookahead is held in ``next``. Each grammar rule is a method
    which consumes the tokens it recognizes and returns the resulting node.
    """

    def __init__(self, stream: TextIO):
        self.tokenizer = Tokenizer(stream)
        self.next = self.tokenizer.get_token()

    @classmethod
    def from_string(cls, text: str) -> "Parser":
        return cls(io.StringIO(text))

    @property
    def at_end(self) -> bool:
        return self.next.kind == TokenKind.EOF

    def advance(self) -> TokenKind:
        self.next = self.tokenizer.get_token()
        return self.next.kind

    def expect(self, kind: TokenKind) -> Token:
        if self.next.kind != kind:
            raise ParserError(f"Expected {kind} but got {self.next.kind}", self.next.start)
        result = self.next
        self.advance()
        return result

    def consume_newlines(self) -> TokenKind:
        kind = self.next.kind
        while kind == TokenKind.NEWLINE:
            kind = self.advance()
        return kind

    def strings(self) -> Token:
        """Parse one or more adjacent string literals as a single string token."""
        result = self.next
        if self.advance() == TokenKind.STRING:
            texts = [result.text]
            values = [result.value]
            start = result.start
            end = result.end
            while self.next.kind == TokenKind.STRING:
                texts.append(self.next.text)
                values.append(self.next.value)
                end = self.next.end
                self.advance()
            result = Token(TokenKind.STRING, "".join(texts), "".join(values))
            result.start = start
            result.end = end
        return result

    def value(self) -> Token:
        kind = self.next.kind
        if kind not in VALUE_STARTERS:
            raise ParserError(f"Unexpected when looking for value: {kind}", self.next.start)
        if kind == TokenKind.STRING:
            return self.strings()
        result = self.next
        self.advance()
        return result

    def atom(self) -> ASTNode:
        kind = self.next.kind
        if kind == TokenKind.LEFT_CURLY:
            return self.mapping()
        if kind == TokenKind.LEFT_BRACKET:
            return self.list()
        if kind == TokenKind.DOLLAR:
            self.advance()
            self.expect(TokenKind.LEFT_CURLY)
            result = UnaryNode(TokenKind.DOLLAR, self.primary())
            self.expect(TokenKind.RIGHT_CURLY)
            return result
        if kind in VALUE_STARTERS:
            return self.value()
        if kind == TokenKind.LEFT_PARENTHESIS:
            self.advance()
            result = self.expr()
            self.expect(TokenKind.RIGHT_PARENTHESIS)
            return result
        raise ParserError(f"Unexpected: {kind}", self.next.start)

    def _slice_element(self) -> ASTNode:
        body = self.list_body()
        size = len(body.elements)
        if size != 1:
            raise ParserError(f"Invalid index at {body.start}: expected 1 expression, found {size}", body.start)
        return body.elements[0]

    def trailer(self) -> Tuple[TokenKind, ASTNode]:
        """Parse a ``.name`` or ``[...]`` trailer.

        Returns:
            Operator kind and operand  # (Dot/Word, LeftBracket/index or Colon/SliceNode)
        """
        op = self.next.kind
        if op != TokenKind.LEFT_BRACKET:
            self.expect(TokenKind.DOT)
            return op, self.expect(TokenKind.WORD)

        bracket_start = self.next.start
        kind = self.advance()
        start_index: Optional[ASTNode] = None
        stop_index: Optional[ASTNode] = None
        step: Optional[ASTNode] = None

        if kind != TokenKind.COLON:
            element = self._slice_element()
            if self.next.kind != TokenKind.COLON:
                self.expect(TokenKind.RIGHT_BRACKET)
                return op, element
            start_index = element

        # pointing at the colon after the (optional) start
        kind = self.advance()
        if kind == TokenKind.COLON:
            if self.advance() != TokenKind.RIGHT_BRACKET:
                step = self._slice_element()
        elif kind != TokenKind.RIGHT_BRACKET:
            stop_index = self._slice_element()
            if self.next.kind == TokenKind.COLON:
                if self.advance() != TokenKind.RIGHT_BRACKET:
                    step = self._slice_element()
        end = self.expect(TokenKind.RIGHT_BRACKET).end
        result = SliceNode(start_index, stop_index, step)
        result.start = bracket_start
        result.end = end
        return TokenKind.COLON, result

    def primary(self) -> ASTNode:
        result = self.atom()
        while self.next.kind in (TokenKind.DOT, TokenKind.LEFT_BRACKET):
            op, operand = self.trailer()
            result = BinaryNode(op, result, operand)
        return result

    def mapping_key(self) -> Token:
        if self.next.kind == TokenKind.STRING:
            return self.strings()
        result = self.next
        self.advance()
        return result

    def mapping_body(self) -> MappingNode:
        elements: List[Tuple[Token, ASTNode]] = []
        kind = self.consume_newlines()
        start = self.next.start

        if kind not in (TokenKind.RIGHT_CURLY, TokenKind.EOF):
            if kind not in (TokenKind.WORD, TokenKind.STRING):
                raise ParserError(f"Unexpected type for key: {kind}", self.next.start)
            while kind in (TokenKind.WORD, TokenKind.STRING):
                key = self.mapping_key()
                kind = self.next.kind
                if kind not in (TokenKind.COLON, TokenKind.ASSIGN):
                    raise ParserError(f"Expected key-value separator, found: {kind}", self.next.start)
                self.advance()
                self.consume_newlines()
                elements.append((key, self.expr()))
                kind = self.next.kind
                if kind in (TokenKind.NEWLINE, TokenKind.COMMA):
                    self.advance()
                    kind = self.consume_newlines()
                elif kind not in (TokenKind.RIGHT_CURLY, TokenKind.EOF):
                    raise ParserError(f"Unexpected following value: {kind}", self.next.start)

        result = MappingNode(elements)
        result.start = start
        result.end = elements[-1][1].end if elements else start
        return result

    def mapping(self) -> MappingNode:
        start = self.expect(TokenKind.LEFT_CURLY).start
        result = self.mapping_body()
        result.start = start
        result.end = self.expect(TokenKind.RIGHT_CURLY).end
        return result

    def list_body(self) -> ListNode:
        elements: List[ASTNode] = []
        kind = self.consume_newlines()
        start = self.next.start

        while kind in EXPRESSION_STARTERS:
            elements.append(self.expr())
            kind = self.next.kind
            if kind not in (TokenKind.NEWLINE, TokenKind.COMMA):
                break
            self.advance()
            kind = self.consume_newlines()

        result = ListNode(elements)
        result.start = start
        result.end = elements[-1].end if elements else start
        return result

    def list(self) -> ListNode:
        start = self.expect(TokenKind.LEFT_BRACKET).start
        result = self.list_body()
        result.start = start
        result.end = self.expect(TokenKind.RIGHT_BRACKET).end
        return result

    def container(self) -> ASTNode:
        """Parse a whole document: a braced mapping, a list or a bare mapping body."""
        kind = self.consume_newlines()
        if kind == TokenKind.LEFT_CURLY:
            result: ASTNode = self.mapping()
        elif kind == TokenKind.LEFT_BRACKET:
            result = self.list()
        elif kind in (TokenKind.WORD, TokenKind.STRING, TokenKind.EOF):
            result = self.mapping_body()
        else:
            raise ParserError(f"Unexpected type for container: {kind}", self.next.start)
        self.consume_newlines()
        return result

    def power(self) -> ASTNode:
        result = self.primary()
        while self.next.kind == TokenKind.POWER:
            self.advance()
            result = BinaryNode(TokenKind.POWER, result, self.unary_expr())
        return result

    def unary_expr(self) -> ASTNode:
        kind = self.next.kind
        if kind not in UNARY_OPERATORS:
            return self.power()
        start = self.next.start
        self.advance()
        result = UnaryNode(kind, self.unary_expr())
        result.start = start
        return result

    def _binary_level(self, operators, operand) -> ASTNode:
        result = operand()
        kind = self.next.kind
        while kind in operators:
            self.advance()
            result = BinaryNode(kind, result, operand())
            kind = self.next.kind
        return result

    def mul_expr(self) -> ASTNode:
        return self._binary_level(MULTIPLICATIVE_OPERATORS, self.unary_expr)

    def add_expr(self) -> ASTNode:
        return self._binary_level((TokenKind.PLUS, TokenKind.MINUS), self.mul_expr)

    def shift_expr(self) -> ASTNode:
        return self._binary_level((TokenKind.LEFT_SHIFT, TokenKind.RIGHT_SHIFT), self.add_expr)

    def bitand_expr(self) -> ASTNode:
        return self._binary_level((TokenKind.BITWISE_AND,), self.shift_expr)

    def bitxor_expr(self) -> ASTNode:
        return self._binary_level((TokenKind.BITWISE_XOR,), self.bitand_expr)

    def bitor_expr(self) -> ASTNode:
        return self._binary_level((TokenKind.BITWISE_OR,), self.bitxor_expr)

    def comp_op(self) -> TokenKind:
        result = self.next.kind
        self.advance()
        if result == TokenKind.IS and self.next.kind == TokenKind.NOT:
            self.advance()
            result = TokenKind.IS_NOT
        elif result == TokenKind.NOT:
            self.expect(TokenKind.IN)
            result = TokenKind.NOT_IN
        return result

    def comparison(self) -> ASTNode:
        result = self.bitor_expr()
        if self.next.kind in COMPARISON_OPERATORS:
            op = self.comp_op()
            result = BinaryNode(op, result, self.bitor_expr())
        return result

    def not_expr(self) -> ASTNode:
        if self.next.kind != TokenKind.NOT:
            return self.comparison()
        start = self.next.start
        self.advance()
        result = UnaryNode(TokenKind.NOT, self.not_expr())
        result.start = start
        return result

    def and_expr(self) -> ASTNode:
        return self._binary_level((TokenKind.AND,), self.not_expr)

    def expr(self) -> ASTNode:
        return self._binary_level((TokenKind.OR,), self.and_expr)


def parse(text: str, rule: str = "mapping_body") -> ASTNode:
    """Parse text with a single grammar rule.

    Args:
        text: Source text
        rule: Name of the Parser method to apply  # (e.g. 'expr', 'container')

    Returns:
        Parsed node
    """
    parser = Parser.from_string(text)
    return getattr(parser, rule)()


def is_identifier(s: str) -> bool:
    return IDENTIFIER_PATTERN.fullmatch(s) is not None


def parse_path(s: str) -> ASTNode:
    """Parse a path such as ``foo.bar[2]`` or ``items[::-1]``.

    Args:
        s: Path text

    Returns:
        Parsed path node

    Raises:
        InvalidPathError: If the text does not start with a word or is not consumed entirely
    """
    try:
        parser = Parser.from_string(s)
        if parser.next.kind != TokenKind.WORD:
            raise InvalidPathError(f"Invalid path: {s}")
        result = parser.primary()
        if not parser.at_end:
            raise InvalidPathError(f"Invalid path: {s}")
    except InvalidPathError:
        raise
    except RecognizerError as e:
        raise InvalidPathError(f"Invalid path: {s}", e.location) from e
    return result


def path_iterator(start: ASTNode) -> Iterator[Any]:
    """Walk a path node from left to right.

    Yields the leading word token first, then ``(op, operand)`` pairs where
    op is Dot (operand is a name), LeftBracket (a node to evaluate, literal
    indexes included) or Colon (a SliceNode).
    """
    if isinstance(start, Token):
        yield start
    elif isinstance(start, UnaryNode):
        yield from path_iterator(start.operand)
    elif isinstance(start, BinaryNode):
        yield from path_iterator(start.left)
        if start.kind == TokenKind.COLON:
            yield start.kind, start.right
        elif start.kind == TokenKind.DOT:
            yield start.kind, start.right.value
        else:
            yield start.kind, start.right


def to_source(node: Any) -> str:
    """Render a path node back to its canonical source text."""
    if isinstance(node, Token):
        return node.text
    if not isinstance(node, ASTNode):
        return str(node)

    pi = path_iterator(node)
    parts = [str(next(pi).value)]
    for op, operand in pi:
        if op == TokenKind.DOT:
            parts.append(f".{operand}")
        elif op == TokenKind.COLON:
            parts.append("[")
            if operand.start_index is not None:
                parts.append(to_source(operand.start_index))
            parts.append(":")
            if operand.stop_index is not None:
                parts.append(to_source(operand.stop_index))
            if operand.step is not None:
                parts.append(":")
                parts.append(to_source(operand.step))
            parts.append("]")
        elif op == TokenKind.LEFT_BRACKET:
            parts.append(f"[{to_source(operand)}]")
        else:
            raise ConfigError(f"unable to compute source for {node!r}", node.start)
    return "".join(parts)
