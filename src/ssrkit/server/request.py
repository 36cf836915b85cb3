"""
Per-request render pipeline: load shell, render interactive markup, inject.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..render import DEFAULT_MARKER, DEFAULT_MAX_DEPTH, RenderMode, ShellTemplate, inject, load, render
from ..util import TreeFactory, call_tree_factory

logger = logging.getLogger(__name__)


class RequestRenderer:
    """
    Stateless document renderer invoked once per request.

    With ``cache_shell`` the shell is loaded and validated once, at construction,
    and the frozen ``ShellTemplate`` is reused; otherwise every call re-reads
    and re-validates the file. No other state is kept between calls.
    """

    def __init__(
        self,
        shell_path: Path | str,
        tree_factory: TreeFactory,
        *,
        marker: str = DEFAULT_MARKER,
        cache_shell: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.shell_path = Path(shell_path)
        self.tree_factory = tree_factory
        self.marker = marker
        self.max_depth = max_depth
        self._cached_shell: Optional[ShellTemplate] = load(self.shell_path, marker) if cache_shell else None

    def shell(self) -> ShellTemplate:
        if self._cached_shell is not None:
            return self._cached_shell
        return load(self.shell_path, self.marker)

    def render_document(self) -> str:
        """
        Produce the final document for one request.

        Raises:
            TemplateError: If the shell is invalid or collides with the markup.
            RenderError: If the tree cannot be built or evaluated.
        """
        shell = self.shell()
        markup = render(call_tree_factory(self.tree_factory), RenderMode.INTERACTIVE, max_depth=self.max_depth)
        return inject(shell, markup)
