"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads templates from the
``libscaffold/scaffolder/templates/`` directory. Files ending in ``.j2`` are
rendered with the context variables; the rest are read verbatim.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Variables that a template references but the context does not define
    render as empty strings.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([], default_for_string=False),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Plain JSON; the built-in filter escapes HTML-sensitive characters.
        self.env.filters["tojson"] = _json_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render *template_path* (relative to the template directory, e.g.
        ``"test/test.js.j2"``) with *context* as its variables."""
        return self.env.get_template(template_path).render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render *template_string* as if it were a template file."""
        return self.env.from_string(template_string).render(**context)

    def read(self, template_path: str) -> str:
        """Return a template file's raw text, unrendered."""
        return (self.template_dir / template_path).read_text(encoding="utf-8")

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of every template path under *prefix*."""
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*")
            if p.is_file()
        )


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _json_filter(value: Any) -> str:
    """Serialise *value* as a JSON literal."""
    return json.dumps(value, ensure_ascii=False)
