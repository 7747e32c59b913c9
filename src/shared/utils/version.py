"""
Version utilities for reading project version from pyproject.toml
"""

import tomllib
from pathlib import Path
from typing import Any, Dict


def get_project_root() -> Path:
    """Get the project root directory by finding pyproject.toml"""
    current_path = Path(__file__).resolve()

    for parent in current_path.parents:
        if (parent / "pyproject.toml").exists():
            return parent

    raise FileNotFoundError("Could not find pyproject.toml in project hierarchy")


def read_pyproject_toml() -> Dict[str, Any]:
    """Read and parse the pyproject.toml file"""
    pyproject_path = get_project_root() / "pyproject.toml"

    with open(pyproject_path, "rb") as f:
        return tomllib.load(f)


def get_version() -> str:
    """Get the current project version, "unknown" when not run from a checkout"""
    try:
        return read_pyproject_toml()["project"]["version"]
    except (FileNotFoundError, KeyError):
        return "unknown"
