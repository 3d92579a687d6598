"""Test cases for cfgtree parsing.

This module tests the grammar: operator precedence, containers, mapping
bodies and the errors reported for malformed input.
"""

import pytest

from cfgtree import ParserError, TokenKind
from cfgtree.nodes import BinaryNode, ListNode, MappingNode, SliceNode, Token, UnaryNode
from cfgtree.parser import parse


def test_power_is_right_associative():
    """Test exponentiation groups to the right.

    Given a chain of power operators
    When it is parsed
    Then the rightmost operation is nested innermost
    """
    node = parse("2 ** 3 ** 2", "expr")

    assert isinstance(node, BinaryNode)
    assert node.kind == TokenKind.POWER
    assert node.left.value == 2
    assert isinstance(node.right, BinaryNode)
    assert (node.right.left.value, node.right.right.value) == (3, 2)


def test_operator_precedence():
    """Test multiplication binds tighter than addition and 'and' tighter than 'or'.

    Given expressions mixing operators of different precedence
    When they are parsed
    Then the tree reflects the usual precedence
    """
    node = parse("a + b * c", "expr")
    assert node.kind == TokenKind.PLUS
    assert node.right.kind == TokenKind.STAR

    node = parse("a or b and c", "expr")
    assert node.kind == TokenKind.OR
    assert node.right.kind == TokenKind.AND

    node = parse("a | b ^ c & d << 1", "expr")
    assert node.kind == TokenKind.BITWISE_OR
    assert node.right.kind == TokenKind.BITWISE_XOR
    assert node.right.right.kind == TokenKind.BITWISE_AND
    assert node.right.right.right.kind == TokenKind.LEFT_SHIFT


def test_comparison_operators():
    """Test two-word comparison operators.

    Given 'is not' and 'not in' comparisons
    When they are parsed
    Then each becomes a single binary node of the combined kind
    """
    assert parse("a is not b", "expr").kind == TokenKind.IS_NOT
    assert parse("a not in b", "expr").kind == TokenKind.NOT_IN
    assert parse("a <= b", "expr").kind == TokenKind.LESS_THAN_OR_EQUAL

    node = parse("not a == b", "expr")
    assert isinstance(node, UnaryNode)
    assert node.kind == TokenKind.NOT
    assert node.operand.kind == TokenKind.EQUAL


def test_not_must_be_followed_by_in():
    """Test a dangling 'not' in a comparison is rejected.

    Given 'a not b'
    When it is parsed
    Then a ParserError expects the 'in' keyword
    """
    with pytest.raises(ParserError) as exc_info:
        parse("a not b", "expr")

    assert "Expected In but got Word" in str(exc_info.value)


def test_unary_and_reference_nodes():
    """Test prefix operators and references.

    Given a negated word and a reference to a path
    When they are parsed
    Then unary nodes wrap their operands
    """
    assert repr(parse("-a", "expr")) == "UnaryNode(Minus, Token(Word:a:a))"

    node = parse("${foo.bar}", "expr")
    assert node.kind == TokenKind.DOLLAR
    assert node.operand.kind == TokenKind.DOT

    node = parse("@'other.cfg'", "expr")
    assert node.kind == TokenKind.AT
    assert node.operand.value == "other.cfg"


def test_slices_and_indexes():
    """Test bracket trailers.

    Given a plain index and a full slice
    When they are parsed
    Then an index is a LeftBracket node and a slice is a Colon node
    """
    node = parse("foo[0]", "expr")
    assert node.kind == TokenKind.LEFT_BRACKET
    assert node.right.value == 0

    node = parse("foo[1:2:3]", "expr")
    assert node.kind == TokenKind.COLON
    assert isinstance(node.right, SliceNode)
    assert [n.value for n in (node.right.start_index, node.right.stop_index, node.right.step)] == [1, 2, 3]

    node = parse("foo[:]", "expr")
    assert (node.right.start_index, node.right.stop_index, node.right.step) == (None, None, None)


def test_invalid_index():
    """Test an index must be a single expression.

    Given an index with two expressions
    When it is parsed
    Then a ParserError reports where the index starts
    """
    with pytest.raises(ParserError) as exc_info:
        parse("foo[1, 2]", "expr")

    assert str(exc_info.value) == "Invalid index at (1, 5): expected 1 expression, found 2"


def test_mapping_body():
    """Test a top-level mapping body with comments, separators and string keys.

    Given a body using ':' and '=' separators, comments and blank lines
    When it is parsed
    Then every key and value is collected in order
    """
    node = parse(
        "# leading comment\n"
        "a: 1  # trailing\n"
        "\n"
        "b = 'two'\n"
        "'c d': [1, 2], e: {f: 3}\n"
    )

    assert isinstance(node, MappingNode)
    assert [k.value for k, _ in node.elements] == ["a", "b", "c d", "e"]
    assert isinstance(node.elements[2][1], ListNode)
    assert isinstance(node.elements[3][1], MappingNode)


def test_adjacent_strings_are_joined():
    """Test adjacent string literals form one value.

    Given two string literals next to each other
    When they are parsed as a value
    Then a single string token holds the concatenation
    """
    node = parse("'foo' \"bar\"", "expr")

    assert isinstance(node, Token)
    assert node.value == "foobar"


def test_containers_over_multiple_lines():
    """Test lists and mappings may span lines.

    Given a list and a mapping whose elements are separated by newlines
    When they are parsed
    Then all elements are collected
    """
    node = parse("[\n  1\n  2,\n  3\n]", "container")
    assert [e.value for e in node.elements] == [1, 2, 3]

    node = parse("{\n  a: 1\n  b: 2\n}", "container")
    assert [k.value for k, _ in node.elements] == ["a", "b"]


@pytest.mark.parametrize(
    "text,rule,message",
    [
        ("a 1", "mapping_body", "Expected key-value separator, found: Integer"),
        ("{a: 1", "container", "Expected RightCurly but got EOF"),
        ("1: 2", "mapping_body", "Unexpected type for key: Integer"),
        ("1", "container", "Unexpected type for container: Integer"),
        ("a: 1 2", "mapping_body", "Unexpected following value: Integer"),
        ("a: )", "mapping_body", "Unexpected: RightParenthesis"),
        ("(1 + 2", "expr", "Expected RightParenthesis but got EOF"),
        ("$foo", "expr", "Expected LeftCurly but got Word"),
    ],
)
def test_parse_errors(text, rule, message):
    """Test malformed input is rejected.

    Given malformed source text
    When it is parsed
    Then a ParserError describes what was expected
    """
    with pytest.raises(ParserError) as exc_info:
        parse(text, rule)

    assert message in str(exc_info.value)
    assert exc_info.value.location is not None
