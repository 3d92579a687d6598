"""Utility functions for cfgtree."""

import builtins
import importlib
import inspect
from copy import deepcopy
from typing import Any, Dict, Optional

import yaml

from .exceptions import ConfigError
from .tokens import NULL


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with update taking precedence.

    Args:
        base: Base dictionary  # (left operand of the merge)
        update: Update dictionary (takes precedence)  # (right operand of the merge)

    Returns:
        Merged dictionary  # (nested dicts are merged key by key)
    """
    result = deepcopy(base)

    for key, value in update.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)
    return result


def import_object(path: str) -> Any:
    """Import an object by its dotted path.

    Args:
        path: Import path like 'module.submodule.ClassName' or 'module.ClassName.attribute'

    Returns:
        Imported object  # (module, class, function or any other attribute)

    Raises:
        ImportError: If object cannot be imported
    """
    # Simple names are built-ins or top-level modules
    if "." not in path:
        if hasattr(builtins, path):
            return getattr(builtins, path)
        return importlib.import_module(path)

    parts = path.split(".")  # List[str] (path components)

    # Try the longest importable module first, then walk attributes
    for i in range(len(parts), 0, -1):
        module_path = ".".join(parts[:i])
        remaining_parts = parts[i:]

        try:
            obj = importlib.import_module(module_path)
            for part in remaining_parts:
                obj = getattr(obj, part)
            return obj
        except (ImportError, AttributeError):
            continue

    raise ImportError(f"Cannot import {path}")


def resolve_object(name: str, member: Optional[str] = None) -> Any:
    """Resolve a dotted name with an optional member to a live object.

    A member which is a function or method is called with no arguments and
    its result returned.

    Args:
        name: Dotted name such as 'os.path' or 'decimal.Decimal'
        member: Attribute of the named object  # (optional)

    Returns:
        Resolved object

    Raises:
        ImportError: If the name cannot be imported
        AttributeError: If the member does not exist
        ConfigError: If the member is a function which requires arguments
    """
    result = import_object(name)
    if member:
        result = getattr(result, member)
        if inspect.isroutine(result):
            if _required_parameters(result):
                raise ConfigError(f"Method should not have parameters: {member}")
            result = result()
    return result


def _required_parameters(func: Any) -> list:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Some builtins expose no signature
        return []
    return [
        p
        for p in signature.parameters.values()
        if p.default is p.empty and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
    ]


class _Dumper(yaml.SafeDumper):
    pass


def _represent_null(dumper: yaml.SafeDumper, data: Any) -> Any:
    return dumper.represent_scalar("tag:yaml.org,2002:null", "null")


def _represent_complex(dumper: yaml.SafeDumper, data: complex) -> Any:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data))


_Dumper.add_representer(type(NULL), _represent_null)
_Dumper.add_representer(complex, _represent_complex)


def dump_yaml(data: Dict[str, Any]) -> str:
    """Render a materialized configuration as YAML.

    Args:
        data: Plain nested structure  # (as produced by Config.as_dict)

    Returns:
        YAML text
    """
    return yaml.dump(data, Dumper=_Dumper, default_flow_style=False, indent=2, sort_keys=False, allow_unicode=True)
