"""Abstract syntax tree nodes."""

from typing import Any, List, Optional, Tuple

from .tokens import Location, TokenKind


class ASTNode:
    """Base class for all nodes. Nodes compare and hash by identity."""

    def __init__(self, kind: TokenKind):
        self.kind = kind
        self.start = Location()
        self.end = Location()


class Token(ASTNode):
    """A lexical token, which doubles as a leaf node."""

    def __init__(self, kind: TokenKind, text: str, value: Any = None):
        super().__init__(kind)
        self.text = text
        self.value = value

    def __repr__(self) -> str:
        return f"Token({self.kind}:{self.text}:{self.value})"


class UnaryNode(ASTNode):
    def __init__(self, kind: TokenKind, operand: ASTNode):
        super().__init__(kind)
        self.operand = operand
        self.start = operand.start
        self.end = operand.end

    def __repr__(self) -> str:
        return f"UnaryNode({self.kind}, {self.operand!r})"


class BinaryNode(ASTNode):
    def __init__(self, kind: TokenKind, left: ASTNode, right: ASTNode):
        super().__init__(kind)
        self.left = left
        self.right = right
        self.start = left.start
        self.end = right.end

    def __repr__(self) -> str:
        return f"BinaryNode({self.kind}, {self.left!r}, {self.right!r})"


class SliceNode(ASTNode):
    """Slice bounds; always the right operand of a ``Colon`` binary node."""

    def __init__(self, start_index: Optional[ASTNode], stop_index: Optional[ASTNode], step: Optional[ASTNode]):
        super().__init__(TokenKind.COLON)
        self.start_index = start_index
        self.stop_index = stop_index
        self.step = step

    def __repr__(self) -> str:
        return f"SliceNode({self.start_index!r}:{self.stop_index!r}:{self.step!r})"


class ListNode(ASTNode):
    def __init__(self, elements: List[ASTNode]):
        super().__init__(TokenKind.LEFT_BRACKET)
        self.elements = elements

    def __repr__(self) -> str:
        return f"ListNode({self.elements!r})"


class MappingNode(ASTNode):
    def __init__(self, elements: List[Tuple[Token, ASTNode]]):
        super().__init__(TokenKind.LEFT_CURLY)
        self.elements = elements

    def __repr__(self) -> str:
        return f"MappingNode({self.elements!r})"
