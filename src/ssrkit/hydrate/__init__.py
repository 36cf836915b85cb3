"""
Client-side hydration over a BeautifulSoup DOM.
"""

from .bootstrap import DomEvent, HydratedRoot, HydrationMismatch, attach, hydrate_document, hydrate_project
from .dom import parse_document, render_client

__all__ = [
    "DomEvent",
    "HydratedRoot",
    "HydrationMismatch",
    "attach",
    "hydrate_document",
    "hydrate_project",
    "parse_document",
    "render_client",
]
