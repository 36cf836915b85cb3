"""
Resolve ``module:attribute`` strings into tree factories.
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from ..errors import RenderError
from ..tree import Component, h

logger = logging.getLogger(__name__)

TreeFactory = Callable[[], Any]


class ImportStringError(ValueError):
    """Raised when an import string is malformed or cannot be resolved."""


def load_tree_factory(import_string: str, *, app_dir: Optional[Path] = None) -> TreeFactory:
    """
    Import ``package.module:attribute`` and return a zero-argument tree factory.

    ``app_dir`` is placed at the front of ``sys.path`` first, mirroring how
    uvicorn's ``--app-dir`` locates applications next to their config.
    A component (or any callable) resolves to a factory producing its element.
    """
    module_name, sep, attribute = import_string.partition(":")
    if not sep or not module_name or not attribute:
        raise ImportStringError(f"Expected 'module:attribute', got {import_string!r}")

    if app_dir is not None:
        resolved_dir = str(Path(app_dir).expanduser().resolve())
        if resolved_dir not in sys.path:
            sys.path.insert(0, resolved_dir)

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ImportStringError(f"Could not import module {module_name!r}: {exc}") from exc

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ImportStringError(f"Module {module_name!r} has no attribute {attribute!r}") from exc

    if isinstance(target, Component):
        component = target
        return lambda: h(component)
    if not callable(target):
        raise ImportStringError(f"{import_string!r} is not callable")
    logger.debug("Resolved tree factory %s", import_string)
    return target


def call_tree_factory(factory: TreeFactory) -> Any:
    """
    Build a tree, converting factory failures into ``RenderError``.
    """
    try:
        return factory()
    except RenderError:
        raise
    except Exception as exc:
        name = getattr(factory, "__name__", repr(factory))
        raise RenderError(f"Tree factory {name} failed: {exc!r}") from exc
