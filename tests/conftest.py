"""Pytest configuration and shared fixtures for cfgtree tests."""

import os
import tempfile
from pathlib import Path
from textwrap import dedent
from typing import Iterator

import pytest
from cfgtree import Config


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def chdir_temp(temp_dir: Path) -> Iterator[Path]:
    """Run a test with the temporary directory as working directory."""
    old_cwd = os.getcwd()
    os.chdir(temp_dir)
    try:
        yield temp_dir
    finally:
        os.chdir(old_cwd)


def write_cfg_file(file_path: Path, source: str) -> Path:
    """Write configuration source to a file.

    Args:
        file_path: Path to write file
        source: Configuration text  # (dedented before writing)

    Returns:
        The path written
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(dedent(source).lstrip("\n"))
    return file_path


def make_config(source: str, **kwargs) -> Config:
    """Create a configuration from dedented source text."""
    return Config.from_string(dedent(source).lstrip("\n"), **kwargs)


def set_env_vars(**env_vars: str) -> None:
    """Set environment variables.

    Args:
        **env_vars: Environment variables to set
    """
    for key, value in env_vars.items():
        os.environ[key] = value


def cleanup_env_vars(*var_names: str) -> None:
    """Clean up environment variables.

    Args:
        *var_names: Variable names to remove
    """
    for var_name in var_names:
        os.environ.pop(var_name, None)
