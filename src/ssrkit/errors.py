"""
Exception and warning types raised by the render pipeline.
"""

from __future__ import annotations


class SsrError(RuntimeError):
    """Base class for every pipeline failure."""


class RenderError(SsrError):
    """Raised when a component tree cannot be evaluated."""


class MissingCapabilityError(RenderError):
    """
    Raised when a component uses a hook the render environment does not supply,
    or one it never declared.
    """

    def __init__(self, capability: str, component: str, reason: str) -> None:
        self.capability = capability
        self.component = component
        super().__init__(f"Component '{component}' used capability '{capability}': {reason}")


class TemplateError(SsrError):
    """Raised when a shell template is missing, has a bad marker count, or collides with markup."""


class FileSystemError(SsrError):
    """Raised when the output directory cannot be created, cleared, or written."""


class HydrationError(SsrError):
    """Raised when hydration cannot start at all (e.g. the root node is absent)."""


class HydrationMismatchWarning(UserWarning):
    """Delivered markup diverged from the tree; the DOM was corrected in place."""
