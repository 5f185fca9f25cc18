"""Built-in actions. Importing this package registers them with @action."""

from scaffolder.actions.builtin import debug  # noqa: F401
from scaffolder.actions.registry import ActionRegistry, get_registered_actions


def create_builtin_registry() -> ActionRegistry:
    """A fresh registry holding every built-in action."""
    registry = ActionRegistry()
    for definition in get_registered_actions().values():
        registry.register(definition)
    return registry
