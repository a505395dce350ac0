"""Jinja2-backed renderer for the writer."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from .logging import get_logger
from .utils import get_field

logger = get_logger("render")

_DEFAULT_TEMPLATES_DIR = Path(__file__).with_name("templates")


class TemplateRenderer:
    """Renders documents through Jinja2 templates.

    A document may choose its template through a ``template`` field; unknown
    or missing names fall back to the renderer's default template. The
    document is exposed to templates as ``document`` and, when it is a
    mapping, its keys are also available at the top level.
    """

    def __init__(
        self,
        templates_dir: Path | str | None = None,
        *,
        template: str = "page.html.j2",
        globals: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.template = template
        self._env = self._create_env(templates_dir)
        if globals:
            self._env.globals.update(globals)

    def __call__(self, document: Any) -> str:
        return self.render(document)

    def render(self, document: Any) -> str:
        template = self._select_template(get_field(document, "template"))
        context: Dict[str, Any] = {}
        if isinstance(document, Mapping):
            context.update(document)
        context["document"] = document
        return template.render(**context)

    def _select_template(self, name: object):
        if isinstance(name, str) and name:
            try:
                return self._env.get_template(name)
            except TemplateNotFound:
                logger.debug("Template %s not found, using %s", name, self.template)
        return self._env.get_template(self.template)

    @staticmethod
    def _create_env(templates_dir: Path | str | None) -> Environment:
        directories: Sequence[str] = []
        if templates_dir:
            directories = [str(templates_dir)]
        # The bundled templates stay reachable as a fallback.
        ordered = list(dict.fromkeys([*directories, str(_DEFAULT_TEMPLATES_DIR)]))
        loader = FileSystemLoader(ordered)
        return Environment(
            loader=loader,
            autoescape=select_autoescape(["html", "htm", "xml", "html.j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )


__all__ = ["TemplateRenderer"]
