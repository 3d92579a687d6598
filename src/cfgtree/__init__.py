"""cfgtree - Lazily evaluated configuration documents.

Reads a small expression-oriented configuration language (mappings, lists,
arithmetic, references, includes and string conversions) and exposes the
result as a path-addressable tree of values computed on demand.
"""
# ruff: noqa: F401

from .config import MISSING, Config
from .containers import ListView, MappingView
from .exceptions import (
    BadIndexError,
    CfgTreeError,
    CircularReferenceError,
    ConfigError,
    ConversionError,
    DuplicateKeyError,
    IncludeError,
    InvalidPathError,
    NotFoundError,
    ParserError,
    RecognizerError,
    TokenizerError,
)
from .interpolation import default_string_converter
from .parser import Parser, is_identifier, parse_path, path_iterator, to_source
from .tokenizer import Tokenizer
from .tokens import NULL, Location, TokenKind

__version__ = "0.1.0"
