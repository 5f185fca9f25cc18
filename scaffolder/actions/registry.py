"""Central registry of all available actions, plus the @action decorator.

Usage:
    @action(id="fetch:plain", description="Fetch a skeleton into the workspace",
            input_schema={"type": "object", "required": ["url"], ...})
    async def fetch_plain(ctx: ActionContext) -> None:
        ...
        ctx.output("remoteUrl", url)
"""

from typing import Any, Callable, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel

from scaffolder.exceptions import ActionNotFoundError, ScaffolderError


class TemplateAction(BaseModel):
    """Registration record for an action a step can invoke."""
    id: str                                     # e.g. "fetch:template"
    description: str = ""
    input_schema: Optional[dict[str, Any]] = None    # JSON Schema for the rendered input
    output_schema: Optional[dict[str, Any]] = None   # JSON Schema for ctx.output(...) values
    supports_dry_run: bool = False
    handler: Callable[..., Any]                 # async def handler(ctx: ActionContext) -> None

    model_config = {"frozen": True}


def _check_schemas(action: TemplateAction) -> None:
    for kind, schema in (("input", action.input_schema), ("output", action.output_schema)):
        if schema is None:
            continue
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as exc:
            raise ScaffolderError(
                f"Action '{action.id}' has an invalid {kind} schema: {exc.message}",
                details={"action_id": action.id},
            ) from exc


class ActionRegistry:
    """Central registry of all available actions."""

    def __init__(self):
        self._actions: dict[str, TemplateAction] = {}

    def register(self, action: TemplateAction) -> None:
        """Register an action.

        Raises:
            ScaffolderError: if the id is taken or a schema is not valid JSON Schema
        """
        if action.id in self._actions:
            raise ScaffolderError(
                f"Template action with ID '{action.id}' has already been registered",
                details={"action_id": action.id},
            )
        _check_schemas(action)
        self._actions[action.id] = action

    def get(self, action_id: str) -> TemplateAction:
        """Get an action by id.

        Raises:
            ActionNotFoundError: if no action is registered under ``action_id``
        """
        action = self._actions.get(action_id)
        if action is None:
            raise ActionNotFoundError(
                f"Template action with ID '{action_id}' is not registered.",
                action_id=action_id,
            )
        return action

    def list(self) -> list[TemplateAction]:
        """List all registered actions."""
        return list(self._actions.values())


# Actions declared with @action, collected at import time
_registered_actions: dict[str, TemplateAction] = {}


def action(
    id: str,
    description: str = None,
    input_schema: Optional[dict[str, Any]] = None,
    output_schema: Optional[dict[str, Any]] = None,
    supports_dry_run: bool = False,
):
    """Decorator declaring an async handler as a template action.

    Args:
        id: Action id used in task steps
        description: Defaults to the first line of the docstring
        input_schema: JSON Schema the rendered input must satisfy
        output_schema: JSON Schema of the outputs; used for dry-run placeholders
        supports_dry_run: Whether the handler is safe to run during a dry run
    """
    def decorator(func):
        definition = TemplateAction(
            id=id,
            description=description or (func.__doc__ or "").strip().split("\n")[0],
            input_schema=input_schema,
            output_schema=output_schema,
            supports_dry_run=supports_dry_run,
            handler=func,
        )
        _registered_actions[id] = definition
        func._scaffolder_action = definition
        return func

    return decorator


def get_registered_actions() -> dict[str, TemplateAction]:
    """Return all actions declared via @action."""
    return _registered_actions.copy()
