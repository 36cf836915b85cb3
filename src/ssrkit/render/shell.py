"""
HTML shell loading and single-marker substitution.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Optional, Union

from ..errors import TemplateError

logger = logging.getLogger(__name__)

DEFAULT_MARKER = "<!--ROOT-->"


@dataclass(frozen=True)
class ShellTemplate:
    """
    A validated HTML shell.

    Attributes:
        source: Raw shell text, containing ``marker`` exactly once.
        marker: Placeholder replaced by rendered markup.
        path: File the shell was read from, if any.
    """
    source: str
    marker: str = DEFAULT_MARKER
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        _require_single_marker(self.source, self.marker, self.path)


def _require_single_marker(source: str, marker: str, origin: Optional[Path]) -> None:
    if not marker:
        raise TemplateError("Marker token must not be empty")
    count = source.count(marker)
    where = f" in {origin}" if origin else ""
    if count == 0:
        raise TemplateError(f"Marker {marker!r} not found{where}")
    if count > 1:
        raise TemplateError(f"Marker {marker!r} appears {count} times{where}; expected exactly one")


def load(path: Union[Path, str], marker: str = DEFAULT_MARKER) -> ShellTemplate:
    """
    Read and validate a shell template.

    Raises:
        TemplateError: If the file cannot be read or the marker count is not one.
    """
    shell_path = Path(path).expanduser().resolve()
    try:
        source = shell_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateError(f"Unable to read shell template {shell_path}: {exc}") from exc
    template = ShellTemplate(source=source, marker=marker, path=shell_path)
    logger.debug("Loaded shell template %s (%d characters)", shell_path, len(source))
    return template


def inject(template: Union[ShellTemplate, str], markup: str, *, marker: str = DEFAULT_MARKER) -> str:
    """
    Replace the template's single marker with ``markup``.

    ``template`` may be a ``ShellTemplate`` (whose own marker wins) or raw text.

    Raises:
        TemplateError: If the marker count is not exactly one, or ``markup``
            contains the marker itself.
    """
    if isinstance(template, ShellTemplate):
        source, marker, origin = template.source, template.marker, template.path
    else:
        source, origin = template, None

    _require_single_marker(source, marker, origin)
    if marker in markup:
        raise TemplateError(f"Rendered markup contains the marker {marker!r}; substitution would be ambiguous")
    return source.replace(marker, markup, 1)
