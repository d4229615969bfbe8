"""Tests for HTML writer."""
from __future__ import annotations

import pytest

from services.exporters.html_writer import HTMLWriter


def test_write_html(tmp_path) -> None:
    writer = HTMLWriter(tmp_path)
    path = writer.write_html("<html>α</html>", "My Doc/1")
    assert path.exists()
    assert path.parent == tmp_path
    assert path.name.startswith("My_Doc_1_")
    assert path.suffix == ".html"
    assert path.read_text(encoding="utf-8") == "<html>α</html>"


def test_empty_html_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        HTMLWriter(tmp_path).write_html("", "doc")


def test_unnamed_document(tmp_path) -> None:
    path = HTMLWriter(tmp_path).write_html("<p/>", "???")
    assert path.name.startswith("document_")
