"""Unit tests for Jinja2 template rendering."""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import TemplateNotFound, UndefinedError

from quorum.rendering import TemplateRenderer, get_renderer, render


def test_packaged_templates_are_listed():
    templates = get_renderer().list_templates()

    assert "setup_summary.md.j2" in templates
    prompts = ("anchoring", "board_question", "health_statements", "persona", "report", "trend")
    for name in (*prompts, "vagueness"):
        assert f"prompts/{name}.j2" in templates


def test_render_prompt():
    text = render(
        "prompts/trend.j2",
        previous_appreciating=30,
        previous_depreciating=50,
        current_appreciating=40,
        current_depreciating=35,
    )

    assert "Previous quarter: 30% appreciating, 50% depreciating." in text
    assert "This quarter: 40% appreciating, 35% depreciating." in text


def test_missing_variable_is_an_error():
    with pytest.raises(UndefinedError):
        render("prompts/trend.j2", previous_appreciating=30)


def test_custom_directory(tmp_path: Path):
    (tmp_path / "note.md.j2").write_text(
        "{% if items %}\n{% for i in items %}- {{ i }}\n{% endfor %}\n{% endif %}\n"
    )
    renderer = TemplateRenderer(tmp_path)

    assert renderer.render("note.md.j2", items=["a", "b"]) == "- a\n- b\n"
    with pytest.raises(TemplateNotFound):
        renderer.render("absent.j2")
