from pathlib import Path

import pytest
from typer.testing import CliRunner

from ssrkit import __version__, cli


def _point_factory(sample_project: dict, attribute: str) -> Path:
    path: Path = sample_project["path"]
    text = path.read_text(encoding="utf-8").replace(":tree", f":{attribute}")
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_build_writes_static_document(runner: CliRunner, sample_project: dict) -> None:
    result = runner.invoke(cli.app, ["build", "--config", str(sample_project["path"])])

    assert result.exit_code == 0, result.output
    assert "Build complete." in result.output
    document = (sample_project["output_dir"] / "index.html").read_text(encoding="utf-8")
    assert "<button>Count: 0</button>" in document
    assert "data-ssr-root" not in document


def test_cli_build_defaults_to_config_in_working_directory(
    runner: CliRunner, sample_project: dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SSRKIT_CONFIG", raising=False)
    monkeypatch.chdir(sample_project["root"])

    result = runner.invoke(cli.app, ["build"])

    assert result.exit_code == 0, result.output
    assert (sample_project["output_dir"] / "index.html").is_file()


def test_cli_build_reads_config_path_from_environment(
    runner: CliRunner, sample_project: dict, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)
    monkeypatch.setenv("SSRKIT_CONFIG", str(sample_project["path"]))

    result = runner.invoke(cli.app, ["build"])

    assert result.exit_code == 0, result.output
    assert (sample_project["output_dir"] / "index.html").is_file()


def test_cli_build_failure_exits_nonzero(runner: CliRunner, sample_project: dict) -> None:
    config_path = _point_factory(sample_project, "broken_tree")

    result = runner.invoke(cli.app, ["build", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Build failed" in result.output
    assert (sample_project["output_dir"] / "BUILD_FAILED").is_file()


def test_cli_missing_config_is_usage_error(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["build", "--config", str(tmp_path / "nope.toml")])

    assert result.exit_code == 2


def test_cli_render_fragment_in_static_mode(runner: CliRunner, sample_project: dict) -> None:
    result = runner.invoke(
        cli.app,
        ["render", "--config", str(sample_project["path"]), "--fragment", "--mode", "static"],
    )

    assert result.exit_code == 0, result.output
    assert "<div><h1>SSR example</h1><button>Count: 0</button></div>" in result.output.splitlines()


def test_cli_render_document_defaults_to_interactive(runner: CliRunner, sample_project: dict) -> None:
    result = runner.invoke(cli.app, ["render", "--config", str(sample_project["path"])])

    assert result.exit_code == 0, result.output
    assert '<div id="root"><div data-ssr-root="">' in result.output
    assert "<!--ROOT-->" not in result.output


def test_cli_check_shell(runner: CliRunner, sample_project: dict) -> None:
    ok = runner.invoke(cli.app, ["check-shell", "--config", str(sample_project["path"])])
    assert ok.exit_code == 0, ok.output
    assert "Shell OK" in ok.output

    sample_project["shell"].write_text("<html><!--ROOT--><!--ROOT--></html>", encoding="utf-8")
    bad = runner.invoke(cli.app, ["check-shell", "--config", str(sample_project["path"])])
    assert bad.exit_code == 1
    assert "Shell invalid" in bad.output


def test_cli_config_hash_matches_model(runner: CliRunner, sample_project: dict) -> None:
    from ssrkit.config import load_config

    result = runner.invoke(cli.app, ["config-hash", "--config", str(sample_project["path"])])

    assert result.exit_code == 0, result.output
    assert load_config(sample_project["path"]).hash in result.output


def test_cli_serve_passes_bind_address_to_uvicorn(
    runner: CliRunner, sample_project: dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda application, **kwargs: calls.append((application, kwargs)))
    monkeypatch.setenv("SSRKIT_PORT", "8123")
    monkeypatch.delenv("SSRKIT_HOST", raising=False)

    result = runner.invoke(cli.app, ["serve", "--config", str(sample_project["path"])])

    assert result.exit_code == 0, result.output
    assert len(calls) == 1
    application, kwargs = calls[0]
    assert kwargs == {"host": "127.0.0.1", "port": 8123}
    assert application.state.renderer.shell_path == sample_project["shell"].resolve()


def test_cli_version_flag(runner: CliRunner) -> None:
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_check_hydration_on_fresh_render(runner: CliRunner, sample_project: dict) -> None:
    result = runner.invoke(cli.app, ["check-hydration", "--config", str(sample_project["path"])])

    assert result.exit_code == 0, result.output
    assert "Hydration OK" in result.output


def test_cli_check_hydration_reports_altered_document(
    runner: CliRunner, sample_project: dict, tmp_path: Path
) -> None:
    delivered = tmp_path / "delivered.html"
    delivered.write_text(
        '<div id="root"><div data-ssr-root=""><h1>Old title</h1><button>Count: 0</button></div></div>',
        encoding="utf-8",
    )

    result = runner.invoke(
        cli.app,
        ["check-hydration", "--config", str(sample_project["path"]), "--document", str(delivered)],
    )

    assert result.exit_code == 1
    assert "Hydration Mismatches" in result.output
