"""
FastAPI application serving rendered documents and build assets.
"""

from __future__ import annotations

import html
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from ..config import ConfigError, ProjectConfig
from ..errors import RenderError, TemplateError
from ..util import ImportStringError, TreeFactory, load_tree_factory
from .request import RequestRenderer

logger = logging.getLogger(__name__)

ERROR_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Render failed</title>
</head>
<body>
  <h1>Render failed</h1>
  <p>{message}</p>
</body>
</html>
"""


def create_renderer(config: ProjectConfig, *, tree_factory: Optional[TreeFactory] = None) -> RequestRenderer:
    """Build the request renderer described by ``config``."""
    if tree_factory is None:
        try:
            tree_factory = load_tree_factory(config.tree_factory, app_dir=config.base_dir)
        except ImportStringError as exc:
            raise ConfigError(str(exc)) from exc
    return RequestRenderer(
        config.shell_path,
        tree_factory,
        marker=config.marker,
        cache_shell=config.server.cache_shell,
        max_depth=config.max_depth,
    )


def create_app(config: ProjectConfig, *, tree_factory: Optional[TreeFactory] = None) -> FastAPI:
    """
    Create the server application.

    ``GET /`` runs the request renderer; render and template failures become a
    500 page instead of escaping into the server. Every other path is served
    from the build output directory.
    """
    renderer = create_renderer(config, tree_factory=tree_factory)
    app = FastAPI(title="ssrkit")
    app.state.renderer = renderer

    @app.get("/", response_class=HTMLResponse)
    def index() -> HTMLResponse:
        try:
            document = renderer.render_document()
        except (RenderError, TemplateError) as exc:
            logger.error("Request render failed: %s", exc, exc_info=True)
            return HTMLResponse(ERROR_TEMPLATE.format(message=html.escape(str(exc))), status_code=500)
        return HTMLResponse(document)

    app.mount("/", StaticFiles(directory=config.output_path, check_dir=False), name="static")
    return app
