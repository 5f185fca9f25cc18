"""Sandboxed Jinja2 renderer with the ``${{ ... }}`` expression delimiter.

The substrate only ever yields strings. Keeping JSON types intact is the
resolver's job (see ``scaffolder.templating.resolver``).
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from jinja2 import ChainableUndefined, TemplateError, nodes
from jinja2.sandbox import ImmutableSandboxedEnvironment

from scaffolder.exceptions import TemplateRenderError
from scaffolder.templating.filters import TemplateFilter, create_default_filters

logger = logging.getLogger(__name__)

VARIABLE_START = "${{"
VARIABLE_END = "}}"


def _finalize(value: Any) -> Any:
    # Render null/undefined as nothing and booleans the way JSON spells them.
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class TaskTemplateEnvironment(ImmutableSandboxedEnvironment):
    """Sandbox where ``a.b`` on a mapping means the key ``b``.

    Jinja normally prefers the attribute, so ``parameters.items`` would be
    ``dict.items`` instead of the user's ``items`` parameter. Mutating
    methods of builtin containers are unsafe in this sandbox.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            try:
                return obj[attribute]
            except (TypeError, LookupError):
                pass
        return super().getattr(obj, attribute)


class TemplateRenderer:
    """Callable ``render(template, values) -> str`` over one sandboxed environment."""

    def __init__(self, environment: TaskTemplateEnvironment):
        self.environment = environment

    def __call__(self, template: str, values: dict[str, Any]) -> str:
        try:
            return self.environment.from_string(template).render(values)
        except Exception as exc:
            raise TemplateRenderError(
                f"Failed to render template: {exc}", template=template
            ) from exc

    def parse(self, template: str) -> nodes.Template:
        """Parse without rendering.

        Raises:
            TemplateRenderError: on syntax errors
        """
        try:
            return self.environment.parse(template)
        except TemplateError as exc:
            raise TemplateRenderError(
                f"Failed to parse template: {exc}", template=template
            ) from exc


class SecureTemplater:
    """Builds renderers. One renderer is loaded per task execution."""

    @staticmethod
    def load_renderer(
        filters: Optional[dict[str, TemplateFilter]] = None,
        globals_: Optional[dict[str, Any]] = None,
    ) -> TemplateRenderer:
        """Create a renderer with the default filters plus any extras.

        Args:
            filters: Additional filters; override defaults with the same name
            globals_: Additional global functions/values

        Returns:
            TemplateRenderer
        """
        environment = TaskTemplateEnvironment(
            variable_start_string=VARIABLE_START,
            variable_end_string=VARIABLE_END,
            autoescape=False,
            keep_trailing_newline=True,
            undefined=ChainableUndefined,
            finalize=_finalize,
        )
        environment.filters.update(create_default_filters())
        if filters:
            environment.filters.update(filters)
        if globals_:
            environment.globals.update(globals_)
        logger.debug(
            "[SecureTemplater] Renderer loaded, extra filters=%s globals=%s",
            sorted(filters or {}),
            sorted(globals_ or {}),
        )
        return TemplateRenderer(environment)
