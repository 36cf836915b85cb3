"""
Static site generation.
"""

from .orchestrator import (
    DEFAULT_OUTPUT_FILE,
    FAILED_FLAG_FILENAME,
    BuildReport,
    BuildState,
    build_site,
    run_build,
)

__all__ = [
    "DEFAULT_OUTPUT_FILE",
    "FAILED_FLAG_FILENAME",
    "BuildReport",
    "BuildState",
    "build_site",
    "run_build",
]
