"""
Pydantic models for validating and hashing project configuration files.
"""

from __future__ import annotations

import hashlib
import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..render import DEFAULT_MARKER, DEFAULT_MAX_DEPTH, TEXT_SEPARATOR

DEFAULT_CONFIG_FILENAME = "ssrkit.toml"


class ConfigError(RuntimeError):
    """Raised when configuration files cannot be loaded or validated."""


class ServerConfig(BaseModel):
    """
    Settings for the request-time renderer.

    Attributes:
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        cache_shell: Load the shell once at startup instead of on every request.
    """
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    cache_shell: bool = False


class ProjectConfig(BaseModel):
    """
    Top-level configuration for a rendered project.

    Attributes:
        tree_factory: Import string (``module:attribute``) of the tree factory.
        shell: HTML shell containing the marker.
        output_dir: Directory owned by static builds.
        output_file: Document name written inside ``output_dir``.
        marker: Placeholder token; must be an HTML comment.
        root_id: Id of the element that hosts the rendered tree.
        build_mode: Render mode for static builds.
        max_depth: Recursion guard for tree evaluation.
        server: Request renderer settings.
        base_dir: Directory relative paths are resolved against (set on load).
    """
    tree_factory: str
    shell: Path = Path("public/index.html")
    output_dir: Path = Path("build")
    output_file: str = "index.html"
    marker: str = DEFAULT_MARKER
    root_id: str = "root"
    build_mode: Literal["static", "interactive"] = "static"
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)
    server: ServerConfig = Field(default_factory=ServerConfig)
    base_dir: Optional[Path] = Field(default=None, exclude=True)

    model_config = {
        "arbitrary_types_allowed": True,
        "populate_by_name": True,
    }

    @field_validator("tree_factory")
    @classmethod
    def _check_import_string(cls, value: str) -> str:
        module, sep, attribute = value.partition(":")
        if not sep or not module.strip() or not attribute.strip():
            raise ValueError("tree_factory must look like 'package.module:attribute'")
        return value.strip()

    @field_validator("marker")
    @classmethod
    def _check_marker(cls, value: str) -> str:
        if not (value.startswith("<!--") and value.endswith("-->")) or len(value) < 8:
            raise ValueError("marker must be a non-empty HTML comment such as '<!--ROOT-->'")
        if value == TEXT_SEPARATOR:
            raise ValueError(f"marker must differ from the text separator {TEXT_SEPARATOR!r}")
        return value

    @field_validator("output_file")
    @classmethod
    def _check_output_file(cls, value: str) -> str:
        if not value or Path(value).is_absolute() or ".." in Path(value).parts:
            raise ValueError("output_file must be a relative path inside output_dir")
        return value

    def resolve_path(self, value: Path) -> Path:
        base = self.base_dir or Path.cwd()
        return (base / value.expanduser()).resolve()

    @property
    def shell_path(self) -> Path:
        return self.resolve_path(self.shell)

    @property
    def output_path(self) -> Path:
        return self.resolve_path(self.output_dir)

    @property
    def hash(self) -> str:
        """
        Deterministic hash of the normalized config, used to detect changes.
        """
        payload = self.model_dump(mode="json", round_trip=True)
        blob = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return hashlib.sha256(blob).hexdigest()


def load_config(path: Path | str) -> ProjectConfig:
    """
    Load and validate a TOML config file into a ProjectConfig instance.

    Relative paths in the file are resolved against the file's directory.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("rb") as handle:
            raw_data: Dict[str, Any] = tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration file: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in configuration file: {exc}") from exc

    raw_data = _normalize_toml_schema(raw_data)
    raw_data["base_dir"] = config_path.parent

    try:
        return ProjectConfig.model_validate(raw_data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def _normalize_toml_schema(data: Any) -> Dict[str, Any]:
    """
    Accept the ``[project]`` table layout as well as flat top-level keys.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a TOML table/object.")
    if "base_dir" in data:
        raise ConfigError("base_dir is derived from the config location and cannot be set.")

    normalized = dict(data)
    project = normalized.pop("project", None)
    if project is not None:
        if not isinstance(project, dict):
            raise ConfigError("Invalid [project] block; expected a table.")
        overlap = set(project) & set(normalized)
        if overlap:
            raise ConfigError(f"Keys defined both in [project] and at the top level: {', '.join(sorted(overlap))}")
        normalized.update(project)

    server = normalized.get("server")
    if server is not None and not isinstance(server, dict):
        raise ConfigError("Invalid [server] block; expected a table.")
    return normalized
