"""cfgtree configuration document module."""

from __future__ import annotations

import io
import logging
import os
import weakref
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from .containers import ListView, MappingView, unwrap
from .evaluator import Evaluator
from .exceptions import (
    BadIndexError,
    CircularReferenceError,
    ConfigError,
    ConversionError,
    DuplicateKeyError,
    IncludeError,
    InvalidPathError,
    NotFoundError,
)
from .interpolation import default_string_converter
from .nodes import ASTNode, ListNode, MappingNode
from .parser import Parser, is_identifier, parse_path
from .tokens import Location, TokenKind
from .utils import dump_yaml, resolve_object

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

# Errors which a caller-supplied default never hides
ALWAYS_RAISED = (InvalidPathError, BadIndexError, CircularReferenceError, DuplicateKeyError, IncludeError)

StringConverter = Callable[[str, "Config"], Any]
ObjectResolver = Callable[[str, Optional[str]], Any]


class Config:
    """A loaded configuration document.

    Values are computed lazily on lookup. Keys which are identifiers are
    looked up directly; anything else is treated as a path such as
    ``server.ports[0]`` or ``items[::2]``.
    """

    def __init__(
        self,
        stream_or_path: Optional[TextIO | str | os.PathLike] = None,
        parent: Optional[Config] = None,
        context: Optional[Dict[str, Any]] = None,
        cached: bool = False,
        include_path: Optional[List[str]] = None,
        no_duplicates: bool = True,
        strict_conversions: bool = True,
        string_converter: StringConverter = default_string_converter,
        object_resolver: ObjectResolver = resolve_object,
        encoding: str = "utf-8",
    ):
        """Initialize configuration document.

        Args:
            stream_or_path: Text stream or file path to load from  # (optional; load later otherwise)
            parent: Including document  # (held weakly, only for inherited settings)
            context: Variable bindings for bare words in expressions
            cached: Cache evaluated values per key
            include_path: Extra directories searched by '@' includes
            no_duplicates: Reject mappings which repeat a key
            strict_conversions: Raise if a backtick string cannot be converted
            string_converter: Callable converting backtick strings to values
            object_resolver: Callable resolving 'name:member' strings to objects
            encoding: Encoding used to read files
        """
        self._parent = weakref.ref(parent) if parent is not None else None
        self.context = context if context is not None else {}
        self.include_path = include_path if include_path is not None else []
        self.no_duplicates = no_duplicates
        self.strict_conversions = strict_conversions
        self.string_converter = string_converter
        self.object_resolver = object_resolver
        self.encoding = encoding
        self.path: Optional[str] = None
        self.root_dir: Optional[str] = None
        self.include_chain: Tuple[str, ...] = ()
        self.data: Optional[MappingView] = None
        self.evaluator = Evaluator(self)
        self._cache: Optional[Dict[str, Any]] = {} if cached else None
        self._views: Dict[ASTNode, Any] = {}
        self._converting: set = set()

        if stream_or_path is not None:
            if isinstance(stream_or_path, (str, os.PathLike)):
                self.load_file(stream_or_path)
            else:
                self.load(stream_or_path)

    @classmethod
    def from_string(cls, text: str, **kwargs: Any) -> Config:
        """Create a document from source text."""
        return cls(io.StringIO(text), **kwargs)

    @property
    def parent(self) -> Optional[Config]:
        return self._parent() if self._parent is not None else None

    @property
    def cached(self) -> bool:
        return self._cache is not None

    @cached.setter
    def cached(self, value: bool) -> None:
        if not value:
            self._cache = None
        elif self._cache is None:
            self._cache = {}

    def set_path(self, path: str) -> None:
        self.path = path
        self.root_dir = os.path.dirname(os.path.abspath(path))
        parent = self.parent
        inherited = parent.include_chain if parent is not None else ()
        self.include_chain = inherited + (os.path.realpath(path),)

    def load(self, stream: TextIO) -> None:
        """Load the document from a text stream.

        Args:
            stream: Stream to read  # (its 'name', if any, is used as the document path)

        Raises:
            ParserError: If the source text is malformed
            ConfigError: If the root is not a mapping
        """
        parser = Parser(stream)
        node = parser.container()
        if not isinstance(node, MappingNode):
            raise ConfigError("Root configuration must be a mapping", node.start)
        parser.expect(TokenKind.EOF)

        name = getattr(stream, "name", None)
        if isinstance(name, str) and os.path.isfile(name):
            self.set_path(name)
        self._views.clear()
        self.data = self.wrap_mapping(node)
        if self._cache is not None:
            self._cache.clear()
        logger.debug("Loaded configuration %s with %d keys", self.path or "<stream>", len(self.data))

    def load_file(self, path: str | os.PathLike) -> None:
        with open(os.fspath(path), encoding=self.encoding) as f:
            self.load(f)

    def create_included(self, path: str, node: MappingNode | ListNode) -> Config | ListView:
        """Create the nested document for an included file, inheriting settings.

        Args:
            path: Location of the included file
            node: Root node of the included file

        Returns:
            Nested document, or a list view  # (a list root resolves references against this document)
        """
        result = Config(
            parent=self,
            context=self.context,
            cached=self.cached,
            include_path=self.include_path,
            no_duplicates=self.no_duplicates,
            strict_conversions=self.strict_conversions,
            string_converter=self.string_converter,
            object_resolver=self.object_resolver,
            encoding=self.encoding,
        )
        result.set_path(path)
        if isinstance(node, ListNode):
            result.data = self.data
            return result.wrap_list(node)
        result.data = result.wrap_mapping(node)
        return result

    def wrap_mapping(self, node: MappingNode) -> MappingView:
        """Return the (shared) view for a mapping node.

        Raises:
            DuplicateKeyError: If a key repeats and duplicates are not allowed
        """
        result = self._views.get(node)
        if result is None:
            seen: Dict[str, Location] = {}
            data: Dict[str, Any] = {}
            for key, value in node.elements:
                if self.no_duplicates and key.value in seen:
                    raise DuplicateKeyError(key.value, key.start, seen[key.value])
                seen[key.value] = key.start
                data[key.value] = value
            result = self._views[node] = MappingView(self, data)
        return result

    def wrap_list(self, node: ListNode) -> ListView:
        result = self._views.get(node)
        if result is None:
            result = self._views[node] = ListView(self, node.elements)
        return result

    def evaluated(self, value: Any) -> Any:
        if isinstance(value, ASTNode):
            return self.evaluator.evaluate(value)
        return value

    def convert_string(self, s: str) -> Any:
        """Convert a backtick string using the configured converter.

        Raises:
            ConversionError: If strict and the converter returned the string unchanged
            CircularReferenceError: If converting the string requires converting it again
        """
        if s in self._converting:
            raise CircularReferenceError([f"`{s}`"])
        self._converting.add(s)
        try:
            result = self.string_converter(s, self)
        finally:
            self._converting.discard(s)
        if self.strict_conversions and result is s:
            raise ConversionError(f"Unable to convert string {s}")
        return result

    def get_from_path(self, path: str) -> Any:
        return self.evaluator.get_from_path(parse_path(path))

    def get(self, key: str, default: Any = MISSING) -> Any:
        """Dict-style get with default and support for paths.

        Args:
            key: Key or path to look up
            default: Value returned if the key is not found  # (raises if omitted)

        Returns:
            Value with views converted to plain dicts and lists  # (nested documents stay Config)

        Raises:
            NotFoundError: If the key is missing and no default was given
            InvalidPathError: If the key is neither an identifier nor a valid path
        """
        if self._cache is not None and key in self._cache:
            logger.debug("Cache hit for %s", key)
            return self._cache[key]
        if self.data is None:
            raise ConfigError("No data in configuration")

        if key in self.data:
            result = self.data[key]
        elif is_identifier(key):
            if default is MISSING:
                raise NotFoundError(f"Not found in configuration: {key}")
            return default
        else:
            try:
                result = self.get_from_path(key)
            except ALWAYS_RAISED:
                raise
            except ConfigError:
                if default is MISSING:
                    raise
                return default

        result = unwrap(result)
        if self._cache is not None:
            self._cache[key] = result
        return result

    def __getitem__(self, key: str) -> Any:
        """Dict-style getter with support for paths."""
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        return self.data is not None and key in self.data

    def keys(self) -> List[str]:
        return self.data.keys() if self.data is not None else []

    def as_dict(self) -> Dict[str, Any]:
        """Evaluate the whole document into plain nested dicts and lists."""
        if self.data is None:
            raise ConfigError("No data in configuration")
        return self.data.as_dict()

    def as_yaml(self) -> str:
        return dump_yaml(self.as_dict())

    def __repr__(self) -> str:
        return f"Config({self.path or '<stream>'})"
