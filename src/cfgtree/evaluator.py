"""Evaluation of parsed configuration nodes.

The evaluator turns AST nodes into values on demand. Containers become lazy
views, ``@`` loads another configuration file as a nested document and ``$``
follows a path from the root of the document the reference lives in.
"""

import logging
import os
from typing import Any, Callable, Dict, Set

from .containers import ListView, MappingView, materialize, to_view
from .exceptions import (
    BadIndexError,
    CircularReferenceError,
    ConfigError,
    IncludeError,
    InvalidPathError,
    NotFoundError,
)
from .nodes import ASTNode, BinaryNode, ListNode, MappingNode, SliceNode, Token, UnaryNode
from .parser import Parser, path_iterator, to_source
from .tokens import SCALAR_TOKENS, TokenKind
from .utils import deep_merge

logger = logging.getLogger(__name__)

# Verb used in "unable to <verb> X and Y" messages
OPERATION_NAMES = {
    TokenKind.PLUS: "add",
    TokenKind.MINUS: "subtract",
    TokenKind.STAR: "multiply",
    TokenKind.SLASH: "divide",
    TokenKind.SLASH_SLASH: "integer-divide",
    TokenKind.MODULO: "compute modulo of",
    TokenKind.POWER: "raise to a power",
    TokenKind.LEFT_SHIFT: "left-shift",
    TokenKind.RIGHT_SHIFT: "right-shift",
    TokenKind.BITWISE_AND: "bitwise-and",
    TokenKind.BITWISE_OR: "bitwise-or",
    TokenKind.BITWISE_XOR: "bitwise-xor",
    TokenKind.LESS_THAN: "compare",
    TokenKind.LESS_THAN_OR_EQUAL: "compare",
    TokenKind.GREATER_THAN: "compare",
    TokenKind.GREATER_THAN_OR_EQUAL: "compare",
    TokenKind.EQUAL: "compare",
    TokenKind.UNEQUAL: "compare",
    TokenKind.ALT_UNEQUAL: "compare",
    TokenKind.IN: "test membership of",
    TokenKind.NOT_IN: "test membership of",
    TokenKind.IS: "compare",
    TokenKind.IS_NOT: "compare",
}

# Python failures which an operator can raise on valid operand types
_ARITHMETIC_ERRORS = (ZeroDivisionError, OverflowError, TypeError, ValueError)

# Larger integer powers are computed in floating point
MAX_EXACT_POWER_BITS = 4096


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, complex)) and not isinstance(value, bool)


def is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_mapping(value: Any) -> bool:
    return isinstance(value, MappingView)


class Evaluator:
    """Evaluate nodes in the context of one document.

    Args:
        config: Document whose context, flags and views are used
    """

    def __init__(self, config: Any):
        self.config = config
        self.refs_seen: Set[UnaryNode] = set()  # references being resolved
        self._binary: Dict[TokenKind, Callable[[Any, Any], Any]] = {
            TokenKind.PLUS: self._add,
            TokenKind.MINUS: self._subtract,
            TokenKind.STAR: self._multiply,
            TokenKind.SLASH: self._divide,
            TokenKind.SLASH_SLASH: self._integer_divide,
            TokenKind.MODULO: self._modulo,
            TokenKind.POWER: self._power,
            TokenKind.LEFT_SHIFT: self._left_shift,
            TokenKind.RIGHT_SHIFT: self._right_shift,
            TokenKind.BITWISE_AND: self._bitwise_and,
            TokenKind.BITWISE_OR: self._bitwise_or,
            TokenKind.BITWISE_XOR: self._bitwise_xor,
            TokenKind.LESS_THAN: lambda a, b: self._order(a, b, lambda x, y: x < y),
            TokenKind.LESS_THAN_OR_EQUAL: lambda a, b: self._order(a, b, lambda x, y: x <= y),
            TokenKind.GREATER_THAN: lambda a, b: self._order(a, b, lambda x, y: x > y),
            TokenKind.GREATER_THAN_OR_EQUAL: lambda a, b: self._order(a, b, lambda x, y: x >= y),
            TokenKind.EQUAL: lambda a, b: materialize(a) == materialize(b),
            TokenKind.UNEQUAL: lambda a, b: materialize(a) != materialize(b),
            TokenKind.ALT_UNEQUAL: lambda a, b: materialize(a) != materialize(b),
            TokenKind.IN: self._contains,
            TokenKind.NOT_IN: lambda a, b: self._negate(self._contains(a, b)),
            TokenKind.IS: self._identical,
            TokenKind.IS_NOT: lambda a, b: not self._identical(a, b),
        }

    def evaluate(self, node: ASTNode) -> Any:
        """Evaluate a node.

        Args:
            node: Node to evaluate

        Returns:
            Computed value  # (containers are returned as lazy views)

        Raises:
            ConfigError: If the node cannot be evaluated
        """
        if isinstance(node, Token):
            return self._evaluate_token(node)
        if isinstance(node, MappingNode):
            return self.config.wrap_mapping(node)
        if isinstance(node, ListNode):
            return self.config.wrap_list(node)
        if isinstance(node, UnaryNode):
            return self._evaluate_unary(node)
        if isinstance(node, BinaryNode):
            return self._evaluate_binary(node)
        raise ConfigError(f"Unable to evaluate {node!r}", node.start)

    def _evaluate_token(self, node: Token) -> Any:
        if node.kind in SCALAR_TOKENS:
            return node.value
        if node.kind == TokenKind.WORD:
            if node.value in self.config.context:
                return self.config.context[node.value]
            raise ConfigError(f"Unknown variable '{node.value}'", node.start)
        if node.kind == TokenKind.BACKTICK:
            return self.config.convert_string(node.value)
        raise ConfigError(f"Unable to evaluate {node!r}", node.start)

    def _evaluate_unary(self, node: UnaryNode) -> Any:
        kind = node.kind
        if kind == TokenKind.AT:
            return self._include(node)
        if kind == TokenKind.DOLLAR:
            return self._reference(node)

        operand = self.evaluate(node.operand)
        if kind == TokenKind.MINUS and is_number(operand):
            return -operand
        if kind == TokenKind.PLUS and is_number(operand):
            return +operand
        if kind == TokenKind.BITWISE_COMPLEMENT and is_integer(operand):
            return ~operand
        if kind == TokenKind.NOT and isinstance(operand, bool):
            return not operand
        names = {TokenKind.MINUS: "negate", TokenKind.PLUS: "apply unary plus to", TokenKind.NOT: "apply 'not' to"}
        raise ConfigError(f"unable to {names.get(kind, 'complement')} {operand!r}", node.start)

    def _evaluate_binary(self, node: BinaryNode) -> Any:
        kind = node.kind
        if kind in (TokenKind.AND, TokenKind.OR):
            return self._logical(node)
        handler = self._binary.get(kind)
        if handler is None:
            raise ConfigError(f"Unable to evaluate {node!r}", node.start)

        lhs = self.evaluate(node.left)
        rhs = self.evaluate(node.right)
        message = f"unable to {OPERATION_NAMES[kind]} {lhs!r} and {rhs!r}"
        try:
            result = handler(lhs, rhs)
        except _ARITHMETIC_ERRORS as e:
            raise ConfigError(f"{message}: {e}", node.start) from e
        if result is NotImplemented:
            raise ConfigError(message, node.start)
        return result

    def _logical(self, node: BinaryNode) -> bool:
        lhs = self._boolean(node.left)
        if node.kind == TokenKind.AND and not lhs:
            return False
        if node.kind == TokenKind.OR and lhs:
            return True
        return self._boolean(node.right)

    def _boolean(self, node: ASTNode) -> bool:
        value = self.evaluate(node)
        if not isinstance(value, bool):
            raise ConfigError(f"boolean required, but found {value!r}", node.start)
        return value

    # Binary operators return NotImplemented for unsupported operand types

    def _merge(self, lhs: MappingView, rhs: MappingView) -> MappingView:
        return to_view(self.config, deep_merge(lhs.as_dict(), rhs.as_dict()))

    def _add(self, lhs: Any, rhs: Any) -> Any:
        if _is_mapping(lhs) and _is_mapping(rhs):
            return self._merge(lhs, rhs)
        if isinstance(lhs, ListView) and isinstance(rhs, ListView):
            return ListView(self.config, [*lhs, *rhs])
        if isinstance(lhs, str) and isinstance(rhs, str):
            return lhs + rhs
        if is_number(lhs) and is_number(rhs):
            return lhs + rhs
        return NotImplemented

    def _subtract(self, lhs: Any, rhs: Any) -> Any:
        if _is_mapping(lhs) and _is_mapping(rhs):
            remaining = {k: v for k, v in lhs.as_dict().items() if k not in rhs}
            return to_view(self.config, remaining)
        if is_number(lhs) and is_number(rhs):
            return lhs - rhs
        return NotImplemented

    def _multiply(self, lhs: Any, rhs: Any) -> Any:
        if is_number(lhs) and is_number(rhs):
            return lhs * rhs
        return NotImplemented

    def _divide(self, lhs: Any, rhs: Any) -> Any:
        if is_number(lhs) and is_number(rhs):
            return lhs / rhs
        return NotImplemented

    def _integer_divide(self, lhs: Any, rhs: Any) -> Any:
        if is_integer(lhs) and is_integer(rhs):
            return lhs // rhs
        return NotImplemented

    def _modulo(self, lhs: Any, rhs: Any) -> Any:
        if is_integer(lhs) and is_integer(rhs):
            return lhs % rhs
        return NotImplemented

    def _power(self, lhs: Any, rhs: Any) -> Any:
        if is_integer(lhs) and is_integer(rhs):
            if rhs >= 0 and abs(lhs).bit_length() * rhs <= MAX_EXACT_POWER_BITS:
                return lhs**rhs
            return int(float(lhs) ** rhs)
        if is_number(lhs) and is_number(rhs):
            return lhs**rhs
        return NotImplemented

    def _left_shift(self, lhs: Any, rhs: Any) -> Any:
        if is_integer(lhs) and is_integer(rhs):
            return lhs << rhs
        return NotImplemented

    def _right_shift(self, lhs: Any, rhs: Any) -> Any:
        if is_integer(lhs) and is_integer(rhs):
            return lhs >> rhs
        return NotImplemented

    def _bitwise_and(self, lhs: Any, rhs: Any) -> Any:
        if is_integer(lhs) and is_integer(rhs):
            return lhs & rhs
        return NotImplemented

    def _bitwise_or(self, lhs: Any, rhs: Any) -> Any:
        if _is_mapping(lhs) and _is_mapping(rhs):
            return self._merge(lhs, rhs)
        if is_integer(lhs) and is_integer(rhs):
            return lhs | rhs
        return NotImplemented

    def _bitwise_xor(self, lhs: Any, rhs: Any) -> Any:
        if is_integer(lhs) and is_integer(rhs):
            return lhs ^ rhs
        return NotImplemented

    def _order(self, lhs: Any, rhs: Any, compare: Callable[[Any, Any], bool]) -> Any:
        if isinstance(lhs, bool) or isinstance(rhs, bool):
            return NotImplemented
        return compare(materialize(lhs), materialize(rhs))

    def _contains(self, lhs: Any, rhs: Any) -> Any:
        if isinstance(rhs, ListView):
            return materialize(lhs) in rhs.as_list()
        if _is_mapping(rhs) or isinstance(rhs, type(self.config)):
            return lhs in rhs if isinstance(lhs, str) else NotImplemented
        if isinstance(rhs, str) and isinstance(lhs, str):
            return lhs in rhs
        return NotImplemented

    def _identical(self, lhs: Any, rhs: Any) -> bool:
        # containers are identical only as the same view, scalars by type and value
        containers = (ListView, MappingView, type(self.config), list, dict)
        if isinstance(lhs, containers) or isinstance(rhs, containers):
            return lhs is rhs
        return type(lhs) is type(rhs) and lhs == rhs

    @staticmethod
    def _negate(result: Any) -> Any:
        return result if result is NotImplemented else not result

    def _include(self, node: UnaryNode) -> Any:
        fn = self.evaluate(node.operand)
        if not isinstance(fn, str):
            raise ConfigError(f"@ operand must be a string, but is {fn!r}", node.operand.start)

        config = self.config
        bases = [config.root_dir or os.getcwd(), *config.include_path]
        found = next((p for p in (os.path.join(base, fn) for base in bases) if os.path.exists(p)), None)
        if found is None:
            raise IncludeError(f"Unable to locate {fn}", node.operand.start)
        if os.path.realpath(found) in config.include_chain:
            raise IncludeError(f"Configuration cannot include itself: {fn}", node.operand.start)

        logger.debug("Including %s from %s", found, config.path or "<stream>")
        with open(found, encoding=config.encoding) as f:
            parser = Parser(f)
            root = parser.container()
            parser.expect(TokenKind.EOF)
        return config.create_included(found, root)

    def _reference(self, node: UnaryNode) -> Any:
        if node in self.refs_seen:
            entries = [f"{to_source(ref.operand)} {ref.start}" for ref in self.refs_seen]
            raise CircularReferenceError(entries, node.start)
        self.refs_seen.add(node)
        try:
            return self.get_from_path(node.operand)
        finally:
            self.refs_seen.discard(node)

    def _settle(self, raw: Any) -> Any:
        # Container nodes become views; everything else is evaluated here
        if isinstance(raw, MappingNode):
            return self.config.wrap_mapping(raw)
        if isinstance(raw, ListNode):
            return self.config.wrap_list(raw)
        if isinstance(raw, ASTNode):
            return self.evaluate(raw)
        return raw

    def _index(self, operand: Any) -> int:
        value = self.evaluate(operand)
        if not is_integer(value):
            raise BadIndexError(f"integer required, but found {value!r}", operand.start)
        return value

    def get_slice(self, container: ListView, node: SliceNode) -> ListView:
        """Select elements of a list.

        Bounds default to the whole list. Negative bounds count from the
        end, the stop bound is exclusive and a negative step whose start
        precedes its stop walks the same range backwards.

        Args:
            container: List to slice
            node: Slice bounds

        Returns:
            New list view holding the selected elements

        Raises:
            BadIndexError: If a bound is not an integer or the step is zero
        """
        size = len(container)
        step = 1 if node.step is None else self._index(node.step)
        if step == 0:
            raise BadIndexError("slice step cannot be zero", node.start)
        if size == 0:
            return ListView(container.config)

        if node.start_index is None:
            start = 0
        else:
            start = self._index(node.start_index)
            if start < 0:
                start = start + size if start >= -size else 0
            elif start >= size:
                start = size - 1

        if node.stop_index is None:
            stop = size - 1
        else:
            stop = self._index(node.stop_index)
            if stop < 0:
                stop = stop + size if stop >= -size else 0
            stop = min(stop, size)
            stop = stop + 1 if step < 0 else stop - 1

        if step < 0 and start < stop:
            start, stop = stop, start

        result = ListView(container.config)
        i = start
        while (i <= stop) if step > 0 else (i >= stop):
            if 0 <= i < size:
                result.slots.append(container[i])
            i += step
        return result

    def get_from_path(self, path: ASTNode) -> Any:
        """Resolve a path against the root of this evaluator's document.

        Whenever the walk steps into a nested document (or a view owned by
        one), further nodes are evaluated by that document's evaluator so
        that its references resolve against its own root.

        Args:
            path: Parsed path  # (see parse_path)

        Returns:
            Value at the path  # (containers as views, nested documents as Config)

        Raises:
            NotFoundError: If a key along the path is missing
            BadIndexError: If an index has the wrong type or is out of range
            CircularReferenceError: If a reference leads back to itself
        """
        from .config import Config

        pi = path_iterator(path)
        first = next(pi, None)
        if not (isinstance(first, Token) and first.kind == TokenKind.WORD):
            raise InvalidPathError(f"Invalid path at {path.start}", path.start)

        root = self.config.data
        current = root.config.evaluator
        key = first.value
        if key not in root:
            raise NotFoundError(f"Not found in configuration: {key}", first.start)
        result = current._settle(root.base_get(key))

        for op, operand in pi:
            sliced = isinstance(operand, SliceNode)
            if not sliced and op != TokenKind.DOT and isinstance(operand, ASTNode):
                operand = current.evaluate(operand)

            if sliced and not isinstance(result, ListView):
                raise BadIndexError("slices can only operate on lists", operand.start)
            if isinstance(result, (MappingView, Config)) and not isinstance(operand, str):
                raise BadIndexError(f"string required, but found {operand!r}")

            if isinstance(result, (MappingView, Config)):
                if isinstance(result, Config):
                    current, view = result.evaluator, result.data
                else:
                    current, view = result.config.evaluator, result
                if operand not in view:
                    raise NotFoundError(f"Not found in configuration: {operand}")
                result = current._settle(view.base_get(operand))
            elif isinstance(result, ListView):
                current = result.config.evaluator
                if sliced:
                    result = current.get_slice(result, operand)
                elif is_integer(operand):
                    n = len(result)
                    index = operand + n if -n <= operand < 0 else operand
                    if not 0 <= index < n:
                        raise BadIndexError(f"index out of range: is {operand}, must be between 0 and {n - 1}")
                    raw = result.base_get(index)
                    value = current._settle(raw)
                    if value is not raw:
                        result.set_evaluated(index, value)
                    result = value
                else:
                    raise BadIndexError(f"integer required, but found {operand!r}")
            else:
                raise NotFoundError(f"Not found in configuration: {to_source(path)}")
        return result
