"""Policy-based authorization of action invocations.

One ``PolicyDecision`` is requested per task. Every iteration of every step
is then checked against it before the handler may run:

  ALLOW        → allowed
  DENY         → NotAllowedError
  CONDITIONAL  → allowed only if the decision's criteria match
                 ``{"action": <action id>, "input": <rendered input>}``

Criteria are trees of ``{"allOf": [...]}``, ``{"anyOf": [...]}``,
``{"not": {...}}`` and leaf rules ``{"rule": "HAS_ACTION_ID", "params": {...}}``.
"""

import json
import logging
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from scaffolder.core.helpers import get_path, has_path
from scaffolder.exceptions import NotAllowedError, ScaffolderError
from scaffolder.types import AuthorizeResult, PolicyDecision

logger = logging.getLogger(__name__)

ACTION_EXECUTE_PERMISSION: dict[str, Any] = {
    "type": "resource",
    "name": "scaffolder.action.execute",
    "attributes": {},
    "resourceType": "scaffolder-action",
}


@runtime_checkable
class PermissionService(Protocol):
    """Evaluates permission requests for the task's initiator."""

    async def authorize_conditional(
        self,
        requests: list[dict[str, Any]],
        *,
        credentials: Any,
    ) -> list[PolicyDecision]:
        ...


# ── Rules ─────────────────────────────────────────────────────────────────────

ActionResource = dict[str, Any]   # {"action": str, "input": dict}


def _has_action_id(resource: ActionResource, params: dict) -> bool:
    return resource.get("action") == params.get("actionId")


def _has_property(resource: ActionResource, params: dict) -> bool:
    key = params.get("key", "")
    if params.get("value") is None:
        return has_path(resource.get("input"), key)
    return has_path(resource.get("input"), key) and get_path(resource.get("input"), key) == params["value"]


def _typed_property(*types: type, exclude: tuple = ()) -> Callable[[ActionResource, dict], bool]:
    def rule(resource: ActionResource, params: dict) -> bool:
        value = get_path(resource.get("input"), params.get("key", ""))
        if not isinstance(value, types) or isinstance(value, exclude):
            return False
        if params.get("value") is None:
            return True
        return value == params["value"]
    return rule


RULES: dict[str, Callable[[ActionResource, dict], bool]] = {
    "HAS_ACTION_ID": _has_action_id,
    "HAS_PROPERTY": _has_property,
    "HAS_BOOLEAN_PROPERTY": _typed_property(bool),
    "HAS_NUMBER_PROPERTY": _typed_property(int, float, exclude=(bool,)),
    "HAS_STRING_PROPERTY": _typed_property(str),
}


def evaluate_criteria(criteria: dict[str, Any], resource: ActionResource) -> bool:
    """Evaluate a conditional-decision criteria tree against one invocation.

    Raises:
        ScaffolderError: on an unknown rule name
    """
    if "allOf" in criteria:
        return all(evaluate_criteria(c, resource) for c in criteria["allOf"])
    if "anyOf" in criteria:
        return any(evaluate_criteria(c, resource) for c in criteria["anyOf"])
    if "not" in criteria:
        return not evaluate_criteria(criteria["not"], resource)

    rule_name = criteria.get("rule")
    rule = RULES.get(rule_name)
    if rule is None:
        raise ScaffolderError(
            f"Unknown permission rule '{rule_name}' in conditional decision",
            details={"criteria": criteria},
        )
    return rule(resource, criteria.get("params") or {})


def is_action_authorized(decision: PolicyDecision, resource: ActionResource) -> bool:
    if decision.result == AuthorizeResult.ALLOW:
        return True
    if decision.result == AuthorizeResult.DENY:
        return False
    if not decision.conditions:
        return False
    return evaluate_criteria(decision.conditions, resource)


class AuthorizationGate:
    """Resolves the task's decision once and checks each invocation against it."""

    def __init__(self, permissions: Optional[PermissionService] = None):
        self.permissions = permissions

    async def resolve_decision(self, task) -> PolicyDecision:
        """Ask the permission service once for the whole task.

        Tasks without a permission service, or without steps, are allowed
        without calling the evaluator.
        """
        if self.permissions is None or not task.spec.steps:
            return PolicyDecision(result=AuthorizeResult.ALLOW)

        credentials = await task.get_initiator_credentials()
        decisions = await self.permissions.authorize_conditional(
            [{"permission": ACTION_EXECUTE_PERMISSION}],
            credentials=credentials,
        )
        decision = decisions[0]
        logger.info(f"[Authorization] Task decision: {decision.result.value}")
        return decision

    def check(
        self,
        decision: PolicyDecision,
        action_id: str,
        input: dict[str, Any],
        label: Optional[str] = None,
    ) -> None:
        """Raise NotAllowedError unless ``decision`` allows this invocation.

        Args:
            decision: Task-level decision from resolve_decision()
            action_id: Registered action id
            input: Rendered input of this iteration
            label: Id shown in the error, e.g. ``fetch:plain[web]`` for an each iteration
        """
        if is_action_authorized(decision, {"action": action_id, "input": input}):
            return
        shown = label or action_id
        raise NotAllowedError(
            f"Unauthorized action: {shown}. The action is not allowed. "
            f"Input: {json.dumps(input, indent=2, default=str)}",
            action_id=action_id,
        )
