"""
HTML template execution.

Partials are Handlebars templates ({{var}} escaped, {{{var}}} raw, {{#each}},
{{#if}} and the other built-in block helpers). The request data is the root
context. A partial may pull in a sibling template file of its own directory
with {{> file-name}}.
"""

import os
import re
from pathlib import Path
from typing import Any, Callable, Dict

from pybars import Compiler, PybarsError

from docgen.contexts.templating.exceptions import TemplateRenderError

# {{> name}} references inside a template
PARTIAL_REFERENCE_PATTERN = re.compile(r"\{\{>\s*([^\s}]+)")


def flatten_template(template: str) -> str:
    """Remove line separators and tab characters from a partial template."""
    return template.replace(os.linesep, "").replace("\n", "").replace("\t", "")


def compile_partials(
    compiler: Compiler, source: str, templates_dir: Path, partials: Dict[str, Callable]
) -> Dict[str, Callable]:
    """
    Compile the sibling templates a template refers to with {{> name}}, recursively.

    Args:
        compiler: Handlebars compiler
        source: Template text to scan for references
        templates_dir: Directory partial names are resolved against
        partials: Already compiled partials (extended in place)

    Raises:
        TemplateRenderError: If a referenced file does not exist in templates_dir
    """
    for name in PARTIAL_REFERENCE_PATTERN.findall(source):
        if name in partials:
            continue

        partial_path = templates_dir / name
        if Path(name).name != name or not partial_path.is_file():
            raise TemplateRenderError(
                f"Partial '{name}' not found", template_path=partial_path
            )

        partial_source = partial_path.read_text(encoding="utf-8")
        partials[name] = compiler.compile(partial_source)
        compile_partials(compiler, partial_source, templates_dir, partials)

    return partials


def render_template(path: Path, data: Any) -> str:
    """
    Execute a template file against data.

    Args:
        path: Path to the template file
        data: Root context of the template

    Returns:
        Rendered text

    Raises:
        TemplateRenderError: If the template cannot be compiled or rendered
    """
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    compiler = Compiler()

    try:
        template = compiler.compile(source)
        partials = compile_partials(compiler, source, path.parent, {})
        return str(template(data, partials=partials))
    except PybarsError as e:
        raise TemplateRenderError(
            f"Failed to render template '{path.name}'", template_path=path, original_error=e
        ) from e
