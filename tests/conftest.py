from pathlib import Path
import re
import textwrap

import pytest
from typer.testing import CliRunner

from ssrkit.config import get_settings

SHELL_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Test</title></head>
<body><div id="root"><!--ROOT--></div></body>
</html>
"""

APP_SOURCE = '''
from ssrkit.tree import component, h, use_state


@component(uses=("state",))
def App(props):
    count, set_count = use_state(0)
    return h(
        "div",
        None,
        h("h1", None, "SSR example"),
        h("button", {"onClick": lambda: set_count(count + 1)}, f"Count: {count}"),
    )


@component
def Broken(props):
    value, _ = use_state(0)
    return h("p", None, str(value))


def tree():
    return h(App)


def broken_tree():
    return h(Broken)
'''


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def shell_file(tmp_path: Path) -> Path:
    path = tmp_path / "public" / "index.html"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SHELL_HTML, encoding="utf-8")
    return path


@pytest.fixture
def sample_project(tmp_path: Path, shell_file: Path, monkeypatch: pytest.MonkeyPatch) -> dict:
    """
    Write an importable app module, a shell and an ssrkit.toml; return metadata.
    """
    module_name = "app_" + re.sub(r"\W", "_", tmp_path.name)
    (tmp_path / f"{module_name}.py").write_text(APP_SOURCE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))

    config_text = textwrap.dedent(
        f"""
        tree_factory = "{module_name}:tree"
        shell = "public/index.html"
        output_dir = "build"

        [server]
        cache_shell = false
        """
    ).strip()
    path = tmp_path / "ssrkit.toml"
    path.write_text(config_text + "\n", encoding="utf-8")
    return {
        "path": path,
        "root": tmp_path,
        "module": module_name,
        "shell": shell_file,
        "output_dir": tmp_path / "build",
    }
