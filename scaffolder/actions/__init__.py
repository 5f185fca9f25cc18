from scaffolder.actions.context import ActionContext
from scaffolder.actions.invoker import ActionInvoker, StepIteration
from scaffolder.actions.registry import ActionRegistry, TemplateAction, action, get_registered_actions

__all__ = [
    "ActionContext",
    "ActionInvoker",
    "ActionRegistry",
    "StepIteration",
    "TemplateAction",
    "action",
    "get_registered_actions",
]
