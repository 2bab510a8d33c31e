"""Unit tests for partial template execution."""

import pytest

from docgen.contexts.templating.engine import flatten_template, render_template
from docgen.contexts.templating.exceptions import TemplateRenderError


@pytest.mark.unit
def test_flatten_template_removes_newlines_and_tabs():
    template = "<html>\n\t<body>\r\n\t\t{{name}}\n\t</body>\n</html>\n"
    assert flatten_template(template) == "<html><body>\r{{name}}</body></html>"


@pytest.mark.unit
def test_render_template_with_mapping(tmp_path):
    path = tmp_path / "document.html.tmpl"
    path.write_text("<h1>{{name}}</h1>")

    assert render_template(path, {"name": "Project Phoenix"}) == "<h1>Project Phoenix</h1>"


@pytest.mark.unit
def test_render_template_block_helpers(tmp_path):
    """Test {{#each}} and {{#if}}/{{else}} blocks."""
    path = tmp_path / "document.html.tmpl"
    path.write_text(
        "<ul>{{#each items}}<li>{{name}}</li>{{/each}}</ul>"
        "{{#if approved}}<p>approved</p>{{else}}<p>pending</p>{{/if}}"
    )

    html = render_template(path, {"items": [{"name": "a"}, {"name": "b"}], "approved": False})

    assert html == "<ul><li>a</li><li>b</li></ul><p>pending</p>"


@pytest.mark.unit
def test_render_template_nested_path(tmp_path):
    path = tmp_path / "header.inc.html.tmpl"
    path.write_text("<div>{{metadata.header}}</div>")

    assert render_template(path, {"metadata": {"header": "Phoenix"}}) == "<div>Phoenix</div>"


@pytest.mark.unit
def test_render_template_escapes_html(tmp_path):
    """Test that double-stash values are HTML-escaped and triple-stash values are not."""
    path = tmp_path / "document.html.tmpl"
    path.write_text("<p>{{name}}</p><div>{{{raw}}}</div>")

    html = render_template(path, {"name": "<script>", "raw": "<b>bold</b>"})

    assert html == "<p>&lt;script&gt;</p><div><b>bold</b></div>"


@pytest.mark.unit
def test_render_template_missing_value_is_empty(tmp_path):
    path = tmp_path / "document.html.tmpl"
    path.write_text("<p>{{missing}}</p>")

    assert render_template(path, {}) == "<p></p>"


@pytest.mark.unit
def test_render_template_list_data(tmp_path):
    """Test that non-mapping data is the root context."""
    path = tmp_path / "list.html.tmpl"
    path.write_text("{{#each this}}<i>{{this}}</i>{{/each}}")

    assert render_template(path, ["a", "b"]) == "<i>a</i><i>b</i>"


@pytest.mark.unit
def test_render_template_includes_sibling(tmp_path):
    """Test that partials can pull in templates from their own directory."""
    (tmp_path / "macros.inc.html.tmpl").write_text("<b>{{name}}</b>")
    path = tmp_path / "document.html.tmpl"
    path.write_text("<p>{{> macros.inc.html.tmpl}}</p>")

    assert render_template(path, {"name": "x"}) == "<p><b>x</b></p>"


@pytest.mark.unit
def test_render_template_missing_sibling(tmp_path):
    path = tmp_path / "document.html.tmpl"
    path.write_text("{{> missing.inc.html.tmpl}}")

    with pytest.raises(TemplateRenderError, match="missing.inc.html.tmpl"):
        render_template(path, {})


@pytest.mark.unit
def test_render_template_syntax_error(tmp_path):
    path = tmp_path / "broken.html.tmpl"
    path.write_text("{{#if name}}unclosed")

    with pytest.raises(TemplateRenderError) as exc_info:
        render_template(path, {"name": "x"})

    assert exc_info.value.template_path == path
    assert exc_info.value.original_error is not None
