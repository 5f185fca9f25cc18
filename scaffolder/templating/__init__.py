"""Template rendering: sandboxed Jinja2 substrate plus the type-preserving resolver."""

from scaffolder.templating.resolver import TemplateResolver, is_single_template_string
from scaffolder.templating.secure import SecureTemplater, TemplateRenderer

__all__ = ["TemplateResolver", "is_single_template_string", "SecureTemplater", "TemplateRenderer"]
