"""Render JSON-like values whose string leaves may contain ``${{ ... }}`` templates.

The Jinja2 substrate only produces text. To keep the JSON type of a value
such as ``"${{ parameters.count }}"`` the resolver detects strings made of
exactly one expression, rewrites them to ``${{ ( expr ) | dump }}`` and parses
the rendered JSON back. Anything else is plain string substitution.

An empty rendering means "absent": the key is dropped from its mapping,
becomes ``None`` inside a sequence, and ``render`` returns ``None`` at the
top level.
"""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Optional

from jinja2 import nodes

from scaffolder.exceptions import TemplateRenderError
from scaffolder.templating.secure import TemplateRenderer

logger = logging.getLogger(__name__)

_ABSENT = object()

_SINGLE_EXPRESSION_RE = re.compile(r"\$\{\{(.+)\}\}", re.DOTALL)
_TEMPLATE_MARKERS = ("${{", "{%", "{#")


def is_single_template_string(text: str, render_template: TemplateRenderer) -> bool:
    """True if ``text`` is one ``${{ ... }}`` expression with no literal text around it.

    Raises:
        TemplateRenderError: if the text does not parse
    """
    tree = render_template.parse(text)
    if len(tree.body) != 1:
        return False
    node = tree.body[0]
    if not isinstance(node, nodes.Output) or len(node.nodes) != 1:
        return False
    return not isinstance(node.nodes[0], nodes.TemplateData)


def wrap_with_dump(text: str) -> str:
    """``${{ parameters.x }}`` → ``${{ ( parameters.x ) | dump }}``."""
    return _SINGLE_EXPRESSION_RE.sub(lambda m: "${{ ( " + m.group(1) + " ) | dump }}", text)


class TemplateResolver:
    """Type-preserving renderer for task inputs, conditions, ``each`` and output."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._logger = log or logger

    def render(
        self,
        value: Any,
        context: dict[str, Any],
        render_template: TemplateRenderer,
    ) -> Any:
        """Render every templated string in ``value`` against ``context``.

        Never mutates ``value`` or ``context``; mappings and sequences are
        rebuilt with their original key order.

        Args:
            value: String, mapping, sequence or scalar
            context: Template values (see ``TemplateContext.to_template_values``)
            render_template: Renderer from ``SecureTemplater.load_renderer``

        Returns:
            The rendered value, or None if it rendered to nothing
        """
        result = self._render_value(value, context, render_template)
        return None if result is _ABSENT else result

    def _render_value(self, value: Any, context: dict, render_template: TemplateRenderer) -> Any:
        if isinstance(value, str):
            return self._render_string(value, context, render_template)
        if isinstance(value, Mapping):
            rendered = {}
            for key, item in value.items():
                result = self._render_value(item, context, render_template)
                if result is not _ABSENT:
                    rendered[key] = result
            return rendered
        if isinstance(value, (list, tuple)):
            return [
                None if result is _ABSENT else result
                for result in (self._render_value(item, context, render_template) for item in value)
            ]
        return value

    def _render_string(self, text: str, context: dict, render_template: TemplateRenderer) -> Any:
        if not any(marker in text for marker in _TEMPLATE_MARKERS):
            return text

        try:
            if is_single_template_string(text, render_template):
                templated = render_template(wrap_with_dump(text), context)
                if templated == "":
                    return _ABSENT
                return json.loads(templated)
        except (TemplateRenderError, ValueError) as exc:
            self._logger.error(f"Failed to parse template string: {text} with error {exc}")

        try:
            templated = render_template(text, context)
        except TemplateRenderError as exc:
            self._logger.error(f"Failed to render template string: {text} with error {exc}")
            return text

        if templated == "":
            return _ABSENT
        return templated
