from pathlib import Path

import pytest

from ssrkit.build import FAILED_FLAG_FILENAME, BuildReport, BuildState, build_site, run_build
from ssrkit.config import ConfigError, load_config
from ssrkit.errors import FileSystemError, RenderError, TemplateError

from sample_trees import counter, greeting, undeclared


def _seed_stale_output(output_dir: Path) -> None:
    (output_dir / "assets").mkdir(parents=True)
    (output_dir / "assets" / "app.js").write_text("console.log('old')", encoding="utf-8")
    (output_dir / "old.html").write_text("<p>old</p>", encoding="utf-8")


def test_build_replaces_previous_output(tmp_path: Path, shell_file: Path) -> None:
    output_dir = tmp_path / "build"
    _seed_stale_output(output_dir)

    report = build_site(shell_file, greeting, output_dir)

    assert sorted(p.name for p in output_dir.iterdir()) == ["index.html"]
    document = (output_dir / "index.html").read_text(encoding="utf-8")
    assert '<div id="root"><div><h1>Hello</h1><p>This is SSG</p></div></div>' in document
    assert "<!--ROOT-->" not in document
    assert report.succeeded
    assert report.removed == ["assets", "old.html"]
    assert report.history == [
        BuildState.IDLE,
        BuildState.PREPARING,
        BuildState.RENDERING,
        BuildState.WRITING,
        BuildState.DONE,
    ]


def test_build_is_idempotent(tmp_path: Path, shell_file: Path) -> None:
    output_dir = tmp_path / "build"

    build_site(shell_file, lambda: counter(start=2), output_dir)
    first = (output_dir / "index.html").read_bytes()
    build_site(shell_file, lambda: counter(start=2), output_dir)
    second = (output_dir / "index.html").read_bytes()

    assert first == second
    assert sorted(p.name for p in output_dir.iterdir()) == ["index.html"]


def test_build_creates_missing_output_directory(tmp_path: Path, shell_file: Path) -> None:
    output_dir = tmp_path / "nested" / "dist"

    report = build_site(shell_file, greeting, output_dir)

    assert report.created_directory is True
    assert (output_dir / "index.html").is_file()


def test_static_build_has_no_hydration_markers(tmp_path: Path, shell_file: Path) -> None:
    output_dir = tmp_path / "build"

    build_site(shell_file, lambda: counter(start=1), output_dir)

    document = (output_dir / "index.html").read_text(encoding="utf-8")
    assert "data-ssr-root" not in document
    assert "<!-- -->" not in document


def test_render_failure_flags_output_directory(tmp_path: Path, shell_file: Path) -> None:
    output_dir = tmp_path / "build"
    _seed_stale_output(output_dir)
    report = BuildReport(output_dir=output_dir)

    with pytest.raises(RenderError):
        build_site(shell_file, undeclared, output_dir, report=report)

    assert report.state is BuildState.FAILED
    assert report.history[-2] is BuildState.RENDERING
    assert "Undeclared" in (report.error or "")
    assert not (output_dir / "index.html").exists()
    flag = output_dir / FAILED_FLAG_FILENAME
    assert flag.is_file()
    assert "state" in flag.read_text(encoding="utf-8")


def test_shell_failure_leaves_previous_output_untouched(tmp_path: Path) -> None:
    output_dir = tmp_path / "build"
    _seed_stale_output(output_dir)
    report = BuildReport(output_dir=output_dir)

    with pytest.raises(TemplateError):
        build_site(tmp_path / "missing.html", greeting, output_dir, report=report)

    assert report.state is BuildState.FAILED
    assert sorted(p.name for p in output_dir.iterdir()) == ["assets", "old.html"]


def test_clear_failure_is_reported(tmp_path: Path, shell_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    output_dir = tmp_path / "build"
    _seed_stale_output(output_dir)

    def refuse(path, *args, **kwargs):
        raise PermissionError(f"denied: {path}")

    monkeypatch.setattr("ssrkit.util.filesystem.shutil.rmtree", refuse)

    with pytest.raises(FileSystemError, match="Unable to remove"):
        build_site(shell_file, greeting, output_dir)

    assert not (output_dir / "index.html").exists()
    assert (output_dir / FAILED_FLAG_FILENAME).is_file()


def test_output_path_that_is_a_file_fails(tmp_path: Path, shell_file: Path) -> None:
    output_dir = tmp_path / "build"
    output_dir.write_text("not a directory", encoding="utf-8")

    with pytest.raises(FileSystemError, match="not a directory"):
        build_site(shell_file, greeting, output_dir)


def test_output_file_cannot_escape_directory(tmp_path: Path, shell_file: Path) -> None:
    with pytest.raises(FileSystemError, match="escapes"):
        build_site(shell_file, greeting, tmp_path / "build", output_file="../outside.html")

    assert not (tmp_path / "outside.html").exists()


def test_factory_exception_becomes_render_error(tmp_path: Path, shell_file: Path) -> None:
    def explode():
        raise KeyError("missing data")

    with pytest.raises(RenderError, match="explode"):
        build_site(shell_file, explode, tmp_path / "build")


def test_run_build_uses_project_config(sample_project: dict) -> None:
    config = load_config(sample_project["path"])

    report = run_build(config)

    document = (sample_project["output_dir"] / "index.html").read_text(encoding="utf-8")
    assert "<button>Count: 0</button>" in document
    assert report.output_dir == sample_project["output_dir"].resolve()


def test_run_build_with_unknown_module_is_config_error(sample_project: dict) -> None:
    config = load_config(sample_project["path"]).model_copy(update={"tree_factory": "no_such_module_xyz:tree"})

    with pytest.raises(ConfigError, match="no_such_module_xyz"):
        run_build(config)
