"""
Isomorphic render pipeline: static builds, per-request rendering and hydration.
"""

from importlib import metadata as _metadata

try:
    __version__ = _metadata.version("ssrkit")
except _metadata.PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = ["__version__"]
