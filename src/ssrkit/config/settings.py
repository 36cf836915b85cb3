"""
Environment setting helpers.
"""

from __future__ import annotations

import os
from pathlib import Path
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from dotenv import load_dotenv


def _load_dotenv() -> None:
    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(dotenv_path=cwd_env, override=True)


_load_dotenv()


class Settings(BaseModel):
    """
    Process-level overrides loaded from environment variables.

    Attributes:
        config_path: Config file used when ``--config`` is omitted.
        log_level: Logging level overriding ``--log-level``.
        host: Overrides ``[server].host``.
        port: Overrides ``[server].port``.
    """
    config_path: Optional[Path] = Field(default=None, alias="SSRKIT_CONFIG")
    log_level: Optional[str] = Field(default=None, alias="SSRKIT_LOG_LEVEL")
    host: Optional[str] = Field(default=None, alias="SSRKIT_HOST")
    port: Optional[int] = Field(default=None, alias="SSRKIT_PORT")

    model_config = {
        "populate_by_name": True,
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load settings from environment/.env exactly once.
    """
    values = {field.alias: os.getenv(field.alias) for field in Settings.model_fields.values()}
    return Settings(**values)
