"""Lazy views over list and mapping nodes.

A view holds raw children (AST nodes or already computed values) and only
evaluates a child when it is accessed. List views store the evaluated value
back into the slot; mapping views evaluate afresh on every access.
"""

from typing import Any, Dict, Iterator, List, Optional

from .exceptions import NotFoundError


class ListView:
    """Memoizing view over the elements of a list."""

    def __init__(self, config: Any, slots: Optional[List[Any]] = None):
        self.config = config
        self.slots = list(slots) if slots is not None else []

    def __getitem__(self, index: int) -> Any:
        result = self.config.evaluated(self.slots[index])
        self.slots[index] = result
        return result

    def base_get(self, index: int) -> Any:
        return self.slots[index]

    def set_evaluated(self, index: int, value: Any) -> None:
        self.slots[index] = value

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self) -> Iterator[Any]:
        for i in range(len(self.slots)):
            yield self[i]

    def __repr__(self) -> str:
        return f"ListView({self.slots!r})"

    def as_list(self) -> List[Any]:
        """Evaluate every element, recursively converting views to plain containers."""
        return [materialize(item) for item in self]


class MappingView:
    """Insertion-ordered view over the entries of a mapping."""

    def __init__(self, config: Any, data: Optional[Dict[str, Any]] = None):
        self.config = config
        self.data = dict(data) if data is not None else {}

    def __getitem__(self, key: str) -> Any:
        if key not in self.data:
            raise NotFoundError(f"Not found in configuration: {key}")
        return self.config.evaluated(self.data[key])

    def base_get(self, key: str) -> Any:
        return self.data[key]

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"MappingView({self.data!r})"

    def keys(self) -> List[str]:
        return list(self.data)

    def items(self) -> Iterator[tuple]:
        for key in self.data:
            yield key, self[key]

    def as_dict(self) -> Dict[str, Any]:
        """Evaluate every entry, recursively converting views to plain containers."""
        return {key: materialize(value) for key, value in self.items()}


def unwrap(value: Any) -> Any:
    """Convert a top-level view to a plain container, leaving documents alone."""
    if isinstance(value, ListView):
        return value.as_list()
    if isinstance(value, MappingView):
        return value.as_dict()
    return value


def materialize(value: Any) -> Any:
    """Recursively convert views and nested documents to plain containers."""
    from .config import Config

    if isinstance(value, (MappingView, Config)):
        return value.as_dict()
    if isinstance(value, ListView):
        return value.as_list()
    return value


def to_view(config: Any, value: Any) -> Any:
    """Wrap plain (possibly nested) dicts and lists back into views owned by config."""
    if isinstance(value, dict):
        return MappingView(config, {k: to_view(config, v) for k, v in value.items()})
    if isinstance(value, list):
        return ListView(config, [to_view(config, v) for v in value])
    return value
