"""
Rendering helpers (tree evaluation, HTML serialisation, shell injection).
"""

from .renderer import (
    DEFAULT_MAX_DEPTH,
    HYDRATION_ROOT_ATTR,
    TEXT_SEPARATOR,
    RenderMode,
    ResolvedElement,
    ResolvedNode,
    ResolvedText,
    evaluate,
    render,
)
from .shell import DEFAULT_MARKER, ShellTemplate, inject, load

__all__ = [
    "DEFAULT_MARKER",
    "DEFAULT_MAX_DEPTH",
    "HYDRATION_ROOT_ATTR",
    "TEXT_SEPARATOR",
    "RenderMode",
    "ResolvedElement",
    "ResolvedNode",
    "ResolvedText",
    "ShellTemplate",
    "evaluate",
    "inject",
    "load",
    "render",
]
