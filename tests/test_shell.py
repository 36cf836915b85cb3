from pathlib import Path

import pytest

from ssrkit.errors import TemplateError
from ssrkit.render import DEFAULT_MARKER, ShellTemplate, inject, load


def test_load_validates_marker_once(shell_file: Path) -> None:
    shell = load(shell_file)

    assert shell.marker == DEFAULT_MARKER
    assert shell.path == shell_file.resolve()
    assert shell.source.count(DEFAULT_MARKER) == 1


def test_load_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(TemplateError, match="Unable to read"):
        load(tmp_path / "absent.html")


def test_shell_without_marker_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "index.html"
    path.write_text("<html><body></body></html>", encoding="utf-8")

    with pytest.raises(TemplateError, match="not found"):
        load(path)


def test_shell_with_duplicate_marker_is_rejected() -> None:
    with pytest.raises(TemplateError, match="appears 2 times"):
        ShellTemplate(source="<!--ROOT--><!--ROOT-->")


def test_inject_replaces_marker_and_preserves_rest(shell_file: Path) -> None:
    shell = load(shell_file)
    document = inject(shell, "<p>hi</p>")

    assert '<div id="root"><p>hi</p></div>' in document
    assert DEFAULT_MARKER not in document
    assert document.startswith("<!DOCTYPE html>")


def test_inject_into_already_filled_document_fails(shell_file: Path) -> None:
    document = inject(load(shell_file), "<p>hi</p>")

    with pytest.raises(TemplateError, match="not found"):
        inject(document, "<p>again</p>")


def test_markup_containing_marker_is_rejected() -> None:
    with pytest.raises(TemplateError, match="ambiguous"):
        inject("<div><!--ROOT--></div>", "<!--ROOT-->")


def test_replacement_is_literal() -> None:
    markup = r"<p>\1 \g<0> $& C:\temp</p>"

    assert inject("<main><!--ROOT--></main>", markup) == "<main>" + markup + "</main>"


def test_custom_marker_is_honoured() -> None:
    shell = ShellTemplate(source="<div>@@APP@@</div>", marker="@@APP@@")

    assert inject(shell, "<b>x</b>") == "<div><b>x</b></div>"
