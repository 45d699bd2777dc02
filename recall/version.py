"""Single source of truth for the package version.

Reads the version from pyproject.toml using tomllib (stdlib, Python 3.11+),
falling back to the installed distribution metadata.
"""

import tomllib
from importlib import metadata
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
DISTRIBUTION_NAME = "contextual-recall"


def get_version() -> str:
    """Read and return the version string from pyproject.toml."""
    pyproject_path = _PROJECT_ROOT / "pyproject.toml"
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return metadata.version(DISTRIBUTION_NAME)
    return data["project"]["version"]


__version__: str = get_version()
