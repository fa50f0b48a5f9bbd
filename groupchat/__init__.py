# =============================================================================
# groupchat Main Package - Dynamic Version Loading
# =============================================================================
"""
groupchat - Group chat backend and client cache synchronizer

Version is loaded dynamically from pyproject.toml via importlib.metadata.

Single Source of Truth: pyproject.toml [project] version
"""

from __future__ import annotations


# =============================================================================
# DYNAMIC VERSION LOADING
# =============================================================================
def _get_version() -> str:
    """
    Get package version dynamically from installed metadata.

    Falls back to reading pyproject.toml if package not installed.

    Returns:
        Version string (e.g., "0.3.0")
    """
    from importlib.metadata import version, PackageNotFoundError

    try:
        return version("groupchat")
    except PackageNotFoundError:
        pass  # Package not installed, try fallback

    import tomllib
    from pathlib import Path

    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
            return data["project"]["version"]

    return "0.1.0-unknown"


__version__: str = _get_version()
__description__: str = "groupchat - Groups, messages and optimistic cache reconciliation"
__author__: str = "groupchat Team"

# =============================================================================
# EXPORTS
# =============================================================================
__all__ = [
    "__version__",
    "__description__",
    "__author__",
]
