"""
Static build: prepare the output directory, render the tree, write the document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..config import ConfigError, ProjectConfig
from ..errors import FileSystemError, SsrError
from ..render import DEFAULT_MARKER, DEFAULT_MAX_DEPTH, RenderMode, ShellTemplate, inject, load, render
from ..util import (
    ImportStringError,
    TreeFactory,
    call_tree_factory,
    clear_directory,
    ensure_directory,
    load_tree_factory,
    write_text_file,
)

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = "index.html"
FAILED_FLAG_FILENAME = "BUILD_FAILED"


class BuildState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    RENDERING = "rendering"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BuildReport:
    """
    Stores what happened during one build.

    Attributes:
        output_dir: Directory the build targeted.
        state: Last state reached; ``FAILED`` if any step raised.
        history: Every state the build passed through, in order.
        removed: Entries cleared from a pre-existing output directory.
        written: Files written by this build.
        created_directory: True if the output directory did not exist before.
        error: Diagnostic message when the build failed.
    """
    output_dir: Path
    state: BuildState = BuildState.IDLE
    history: List[BuildState] = field(default_factory=lambda: [BuildState.IDLE])
    removed: List[str] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)
    created_directory: bool = False
    error: Optional[str] = None

    def advance(self, state: BuildState) -> None:
        logger.debug("Build state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @property
    def succeeded(self) -> bool:
        return self.state is BuildState.DONE

    def summary_rows(self) -> Iterable[tuple[str, str]]:
        yield ("Output directory", str(self.output_dir))
        yield ("State", self.state.value)
        yield ("Directory created", "yes" if self.created_directory else "no")
        yield ("Stale entries removed", str(len(self.removed)))
        yield ("Files written", ", ".join(path.name for path in self.written) or "none")
        if self.error:
            yield ("Error", self.error)


def build_site(
    shell_path: Path | str,
    tree_factory: TreeFactory,
    output_dir: Path | str,
    *,
    output_file: str = DEFAULT_OUTPUT_FILE,
    marker: str = DEFAULT_MARKER,
    mode: RenderMode = RenderMode.STATIC,
    max_depth: int = DEFAULT_MAX_DEPTH,
    report: Optional[BuildReport] = None,
) -> BuildReport:
    """
    Produce the static document for ``tree_factory`` inside ``output_dir``.

    The directory is created if missing, otherwise emptied, so the written file
    set fully replaces the previous build. Running twice with unchanged inputs
    leaves byte-identical contents. Builds against the same directory must not
    run concurrently.

    Args:
        shell_path: HTML shell containing the marker exactly once.
        tree_factory: Zero-argument callable returning the component tree.
        output_dir: Directory owned by the build.
        output_file: Name of the document written inside ``output_dir``.
        marker: Placeholder token inside the shell.
        mode: Render mode; static unless the output will be hydrated.
        max_depth: Recursion guard passed to the renderer.
        report: Optional report to fill in (useful for inspecting failures).

    Returns:
        The completed BuildReport.

    Raises:
        TemplateError, RenderError, FileSystemError: The build is aborted and
            ``report.state`` is ``FAILED``.
    """
    root = Path(output_dir).expanduser().resolve()
    report = report or BuildReport(output_dir=root)
    touched = False

    try:
        report.advance(BuildState.PREPARING)
        shell = load(shell_path, marker=marker)
        touched = True
        _prepare_output_directory(root, report)

        report.advance(BuildState.RENDERING)
        document = _render_document(shell, tree_factory, mode=mode, max_depth=max_depth)

        report.advance(BuildState.WRITING)
        report.written.append(write_text_file(_output_target(root, output_file), document))
    except SsrError as exc:
        report.error = str(exc)
        report.advance(BuildState.FAILED)
        logger.error("Build failed while %s: %s", report.history[-2].value, exc)
        if touched:
            _flag_failure(root, report.error)
        raise

    report.advance(BuildState.DONE)
    logger.info("Build wrote %s", ", ".join(str(path) for path in report.written))
    return report


def _prepare_output_directory(root: Path, report: BuildReport) -> None:
    if root.exists():
        report.removed.extend(clear_directory(root))
        if report.removed:
            logger.info("Cleared %d stale entries from %s", len(report.removed), root)
    else:
        ensure_directory(root)
        report.created_directory = True
        logger.info("Created output directory %s", root)


def _render_document(shell: ShellTemplate, tree_factory: TreeFactory, *, mode: RenderMode, max_depth: int) -> str:
    markup = render(call_tree_factory(tree_factory), mode, max_depth=max_depth)
    return inject(shell, markup)


def _output_target(root: Path, output_file: str) -> Path:
    target = (root / output_file).resolve()
    try:
        target.relative_to(root)
    except ValueError as exc:
        raise FileSystemError(f"Output file {output_file!r} escapes the output directory {root}") from exc
    return target


def _flag_failure(root: Path, message: str) -> None:
    """Leave a marker file so a failed build is never mistaken for a good one."""
    try:
        write_text_file(root / FAILED_FLAG_FILENAME, message + "\n")
    except FileSystemError as exc:
        logger.warning("Could not flag failed build in %s: %s", root, exc)


def run_build(config: ProjectConfig, *, tree_factory: Optional[TreeFactory] = None) -> BuildReport:
    """
    Build the project described by ``config``.

    Args:
        config: Loaded project configuration.
        tree_factory: Overrides the factory named by ``config.tree_factory``.
    """
    if tree_factory is None:
        try:
            tree_factory = load_tree_factory(config.tree_factory, app_dir=config.base_dir)
        except ImportStringError as exc:
            raise ConfigError(str(exc)) from exc
    return build_site(
        config.shell_path,
        tree_factory,
        config.output_path,
        output_file=config.output_file,
        marker=config.marker,
        mode=RenderMode(config.build_mode),
        max_depth=config.max_depth,
    )
