"""
Request-time rendering and the HTTP application.
"""

from .app import create_app, create_renderer
from .request import RequestRenderer

__all__ = ["RequestRenderer", "create_app", "create_renderer"]
