"""Test cases for cfgtree expression evaluation.

This module tests arithmetic, merging, logic, comparisons, references,
slicing and circular reference detection.
"""

import decimal

import pytest

from cfgtree import NULL, BadIndexError, CircularReferenceError, ConfigError, ListView
from cfgtree.nodes import Token
from tests.conftest import make_config


def test_arithmetic():
    """Test the numeric operators.

    Given values computed with every arithmetic and bitwise operator
    When they are looked up
    Then Python numeric semantics apply
    """
    config = make_config(
        """
        add: 1 + 2 * 3
        sub: 10 - 4
        power: 2 ** 3 ** 2
        fraction: 4 ** 0.5
        big_power: 3 ** 40
        unit_power: 1 ** 100000000
        inverse: 2 ** -1
        divide: 10 / 4
        floor: 7 // 2
        mod: 7 % 3
        shift: 1 << 4
        rshift: 256 >> 2
        band: 0xFF & 0x0F
        bxor: 5 ^ 3
        bor: 5 | 2
        invert: ~5
        negate: -(2 + 3)
        plus: +(4)
        grouped: (1 + 2) * 3
        cplx: 1 + 2j
        mixed: 1 + 0.5
        """
    )

    assert config["add"] == 7
    assert config["sub"] == 6
    assert config["power"] == 512
    assert config["fraction"] == 2.0
    assert config["big_power"] == 12157665459056928801
    assert config["unit_power"] == 1
    assert config["inverse"] == 0
    assert config["divide"] == 2.5
    assert config["floor"] == 3
    assert config["mod"] == 1
    assert config["shift"] == 16
    assert config["rshift"] == 64
    assert config["band"] == 15
    assert config["bxor"] == 6
    assert config["bor"] == 7
    assert config["invert"] == -6
    assert config["negate"] == -5
    assert config["plus"] == 4
    assert config["grouped"] == 9
    assert config["cplx"] == 1 + 2j
    assert config["mixed"] == 1.5


def test_strings_and_lists():
    """Test concatenation of strings and lists.

    Given string and list additions
    When they are looked up
    Then the operands are concatenated
    """
    config = make_config(
        """
        greeting: 'Hello, ' + "world"
        joined: 'foo' 'bar'
        items: [1, 2] + [3]
        """
    )

    assert config["greeting"] == "Hello, world"
    assert config["joined"] == "foobar"
    assert config["items"] == [1, 2, 3]


def test_mapping_merge_and_difference():
    """Test merging and subtracting mappings.

    Given mappings combined with '+', '|' and '-'
    When they are looked up
    Then nested mappings merge recursively and subtraction removes keys
    """
    config = make_config(
        """
        base: {a: 1, b: {c: 2, d: 3}}
        merged: ${base} + {b: {c: 20}, e: 5}
        ored: {x: 1} | {y: 2}
        less: {a: 1, b: 2, c: 3} - {b: 0}
        """
    )

    assert config["merged"] == {"a": 1, "b": {"c": 20, "d": 3}, "e": 5}
    assert config["ored"] == {"x": 1, "y": 2}
    assert config["less"] == {"a": 1, "c": 3}
    assert config["base"] == {"a": 1, "b": {"c": 2, "d": 3}}


def test_logic_and_comparisons():
    """Test boolean operators and comparisons.

    Given logical expressions and comparisons of scalars and containers
    When they are looked up
    Then boolean results are produced with short-circuit evaluation
    """
    config = make_config(
        """
        conj: true and false
        disj: false or true
        short_and: false and 1
        short_or: true or 1
        negated: not true
        double: !false
        less: 1 < 2
        ge: 2 >= 3
        same_list: [1, 2] == [1, 2]
        differs: 1 != 2
        alt_differs: 1 <> 1
        member: 2 in [1, 2]
        not_member: 'x' not in 'abc'
        key_member: 'a' in {a: 1}
        nothing: null is null
        something: 1 is not null
        """
    )

    assert config["conj"] is False
    assert config["disj"] is True
    assert config["short_and"] is False
    assert config["short_or"] is True
    assert config["negated"] is False
    assert config["double"] is True
    assert config["less"] is True
    assert config["ge"] is False
    assert config["same_list"] is True
    assert config["differs"] is True
    assert config["alt_differs"] is False
    assert config["member"] is True
    assert config["not_member"] is True
    assert config["key_member"] is True
    assert config["nothing"] is True
    assert config["something"] is True


def test_identity():
    """Test the is and is not operators.

    Given scalars written separately and containers reached by reference or written twice
    When they are compared with is and is not
    Then scalars compare by type and value and containers only match the same view
    """
    config = make_config(
        """
        numbers: [1, 2]
        options: {a: 1}
        large: 1000 is 1000
        text: 'abc' is 'a' + 'bc'
        int_and_bool: 1 is true
        int_and_float: 1 is 1.0
        same_list: ${numbers} is ${numbers}
        same_mapping: ${options} is ${options}
        equal_lists: [1] is [1]
        distinct_lists: [1] is not [1]
        """
    )

    assert config["large"] is True
    assert config["text"] is True
    assert config["int_and_bool"] is False
    assert config["int_and_float"] is False
    assert config["same_list"] is True
    assert config["same_mapping"] is True
    assert config["equal_lists"] is False
    assert config["distinct_lists"] is True


@pytest.mark.parametrize(
    "source,message",
    [
        ("a: 'a' + 1", "unable to add 'a' and 1"),
        ("a: 1 / 0", "unable to divide 1 and 0"),
        ("a: 1.5 // 2", "unable to integer-divide 1.5 and 2"),
        ("a: 'x' * 2", "unable to multiply 'x' and 2"),
        ("a: -'a'", "unable to negate 'a'"),
        ("a: ~1.5", "unable to complement 1.5"),
        ("a: 1 and true", "boolean required, but found 1"),
        ("a: true < 1", "unable to compare True and 1"),
        ("a: foo", "Unknown variable 'foo'"),
        ("a: @1", "@ operand must be a string, but is 1"),
        ("a: 10 ** 100000000", "unable to raise to a power 10 and 100000000"),
        ("a: 2 ** 5000", "unable to raise to a power 2 and 5000"),
    ],
)
def test_evaluation_errors(source, message):
    """Test operations on unsupported operands.

    Given an expression whose operands do not support the operator
    When it is looked up
    Then a ConfigError describes the failed operation
    """
    config = make_config(source)

    with pytest.raises(ConfigError) as exc_info:
        config.get("a")

    assert message in str(exc_info.value)


def test_context_variables():
    """Test bare words are looked up in the context.

    Given a document using a variable supplied as context
    When the value is looked up
    Then the variable's value is used
    """
    config = make_config("answer: x + 1", context={"x": 41})

    assert config["answer"] == 42


def test_references():
    """Test references to other values in the document.

    Given values referring to mappings, list elements and computed indexes
    When they are looked up
    Then each reference resolves from the document root
    """
    config = make_config(
        """
        server: {host: 'localhost', port: 8080, tags: ['a', 'b', 'c']}
        port: ${server.port}
        url: 'http://' + ${server.host}
        second: ${server.tags[1]}
        last: ${server.tags[-1]}
        computed: ${server.tags[1 + 1]}
        whole: ${server}
        chained: ${port} + 1
        """
    )

    assert config["port"] == 8080
    assert config["url"] == "http://localhost"
    assert config["second"] == "b"
    assert config["last"] == "c"
    assert config["computed"] == "c"
    assert config["whole"] == {"host": "localhost", "port": 8080, "tags": ["a", "b", "c"]}
    assert config["chained"] == 8081


def test_shared_references_are_not_circular():
    """Test the same value referenced twice is not a cycle.

    Given a list holding two references to the same key
    When it is looked up
    Then both references resolve
    """
    config = make_config(
        """
        b: 1
        c: [${b}, ${b}]
        d: ${c}
        """
    )

    assert config["c"] == [1, 1]
    assert config["d"] == [1, 1]


def test_slices():
    """Test slicing lists through paths.

    Given a list of seven integers
    When it is sliced with various bounds and steps
    Then the selected elements are returned
    """
    config = make_config("test_list: [1, 2, 3, 4, 5, 6, 7]")

    assert config["test_list[:]"] == [1, 2, 3, 4, 5, 6, 7]
    assert config["test_list[::-1]"] == [7, 6, 5, 4, 3, 2, 1]
    assert config["test_list[::2]"] == [1, 3, 5, 7]
    assert config["test_list[-20:4]"] == [1, 2, 3, 4]
    assert config["test_list[2:]"] == [3, 4, 5, 6, 7]
    assert config["test_list[:3]"] == [1, 2, 3]
    assert config["test_list[-3:]"] == [5, 6, 7]
    assert config["test_list[-1]"] == 7


@pytest.mark.parametrize(
    "path,message",
    [
        ("test_list[7]", "index out of range: is 7, must be between 0 and 6"),
        ("test_list[-8]", "index out of range: is -8, must be between 0 and 6"),
        ("test_list[::0]", "slice step cannot be zero"),
        ("test_list['a']", "integer required, but found 'a'"),
        ("test_list[1:'a']", "integer required, but found 'a'"),
        ("scalar[1:]", "slices can only operate on lists"),
    ],
)
def test_bad_indexes(path, message):
    """Test invalid indexes and slices.

    Given a path with an out-of-range or mistyped index
    When it is looked up, even with a default
    Then a BadIndexError is raised
    """
    config = make_config("test_list: [1, 2, 3, 4, 5, 6, 7]\nscalar: 1")

    with pytest.raises(BadIndexError) as exc_info:
        config.get(path, default=None)

    assert message in str(exc_info.value)


def test_circular_list_reference():
    """Test a list element referring to itself.

    Given a list whose element refers to that element
    When the list is looked up
    Then the cycle is reported with the reference location
    """
    config = make_config("circ_list: [1, ${circ_list[1]}]")

    with pytest.raises(CircularReferenceError) as exc_info:
        config.get("circ_list")

    assert str(exc_info.value) == "Circular reference: circ_list[1] (1, 18)"


def test_circular_mapping_references():
    """Test a cycle through several mapping entries.

    Given three entries each referring to the next
    When the mapping is looked up
    Then every reference in the cycle is listed in sorted order
    """
    config = make_config(
        """
        circ_map: {
          a: ${circ_map.b}
          b: ${circ_map.c}
          c: ${circ_map.a}
        }
        """
    )

    with pytest.raises(CircularReferenceError) as exc_info:
        config.get("circ_map")

    assert str(exc_info.value) == (
        "Circular reference: circ_map.a (4, 8), circ_map.b (2, 8), circ_map.c (3, 8)"
    )


def test_circular_top_level_references():
    """Test cycles between and within top-level keys.

    Given keys which refer to each other or to themselves
    When they are looked up
    Then a CircularReferenceError is raised
    """
    config = make_config("a: ${b}\nb: ${a}\nc: ${c}")

    with pytest.raises(CircularReferenceError) as exc_info:
        config.get("a")
    assert str(exc_info.value) == "Circular reference: a (2, 6), b (1, 6)"

    with pytest.raises(CircularReferenceError) as exc_info:
        config.get("c", default=0)
    assert str(exc_info.value) == "Circular reference: c (3, 6)"


def test_list_elements_are_memoized():
    """Test list elements are evaluated once.

    Given a list holding a backtick string
    When an element is read through the list view twice
    Then the same converted object is returned
    """
    config = make_config("items: [`decimal.Decimal`, `$CFGTREE_UNSET_VAR`]")
    view = config.data["items"]

    assert isinstance(view, ListView)
    assert isinstance(view.base_get(0), Token)
    assert view[0] is decimal.Decimal
    assert view.base_get(0) is decimal.Decimal
    assert view[1] is NULL
