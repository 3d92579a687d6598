"""Custom exceptions for cfgtree."""

from typing import Any, Optional


class CfgTreeError(Exception):
    """Base exception for cfgtree errors."""

    pass


class RecognizerError(CfgTreeError):
    """Base class for errors which can be attributed to a source location."""

    def __init__(self, message: str, location: Optional[Any] = None):
        """Initialize recognizer error.

        Args:
            message: Human-readable description of the problem
            location: Location of the offending character or node, if known
        """
        self.message = message
        self.location = location
        super().__init__(message)


class TokenizerError(RecognizerError):
    """Raised when the source text cannot be split into tokens."""

    pass


class ParserError(RecognizerError):
    """Raised when the token stream does not match the grammar."""

    pass


class ConfigError(RecognizerError):
    """Raised when a configuration cannot be loaded or a value cannot be computed."""

    pass


class InvalidPathError(ConfigError):
    """Raised when a lookup key is neither an identifier nor a valid path."""

    pass


class NotFoundError(ConfigError):
    """Raised when a key or path does not exist in the configuration."""

    pass


class BadIndexError(ConfigError):
    """Raised for an index of the wrong type or outside the valid range."""

    pass


class CircularReferenceError(ConfigError):
    """Raised when resolving a reference leads back to itself."""

    def __init__(self, entries: list[str], location: Optional[Any] = None):
        self.entries = sorted(entries)
        super().__init__(f"Circular reference: {', '.join(self.entries)}", location)


class ConversionError(ConfigError):
    """Raised when strict string conversion leaves a string unchanged."""

    pass


class DuplicateKeyError(ConfigError):
    """Raised when a mapping defines the same key twice."""

    def __init__(self, key: str, location: Any, previous: Any):
        self.key = key
        self.previous = previous
        super().__init__(f"Duplicate key {key} seen at {location} (previously at {previous})", location)


class IncludeError(ConfigError):
    """Raised when an included configuration cannot be located or includes itself."""

    pass
