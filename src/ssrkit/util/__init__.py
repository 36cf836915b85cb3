"""
Shared utility helpers for filesystem access and import resolution.
"""

from .filesystem import clear_directory, ensure_directory, write_text_file
from .imports import ImportStringError, TreeFactory, call_tree_factory, load_tree_factory

__all__ = [
    "ImportStringError",
    "TreeFactory",
    "call_tree_factory",
    "clear_directory",
    "ensure_directory",
    "load_tree_factory",
    "write_text_file",
]
