"""Executes a single task step. The state machine every step goes through.

pending → skipped (if condition false, or dry run of an action without dry-run support)
pending → running → succeeded | failed
pending | after invocation → cancelled
"""

import json
import logging
from typing import Any, Optional

from jsonschema import Draft202012Validator

from scaffolder.actions.invoker import ActionInvoker, StepIteration
from scaffolder.actions.registry import ActionRegistry, TemplateAction
from scaffolder.config import ScaffolderConfig
from scaffolder.core.authorization import AuthorizationGate
from scaffolder.core.checkpoints import CheckpointManager
from scaffolder.core.helpers import generate_example_output, is_truthy
from scaffolder.core.logger import create_step_logger
from scaffolder.core.tracker import TaskTrack, Tracker
from scaffolder.exceptions import InputError, TaskCancelledError
from scaffolder.templating.resolver import TemplateResolver
from scaffolder.templating.secure import TemplateRenderer
from scaffolder.types import PolicyDecision, TaskStep, TemplateContext

logger = logging.getLogger(__name__)


def _redact(value: Any, secrets: dict[str, str], placeholder: str) -> Any:
    if isinstance(value, str):
        for secret in sorted({s for s in secrets.values() if s}, key=len, reverse=True):
            value = value.replace(secret, placeholder)
        return value
    if isinstance(value, dict):
        return {k: _redact(v, secrets, placeholder) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact(v, secrets, placeholder) for v in value]
    return value


def _error_path(error) -> str:
    return "/".join(str(p) for p in error.absolute_path)


class StepRunner:
    """Runs one step: condition, cancellation, dry run, fan-out, validation, policy, invocation."""

    def __init__(
        self,
        registry: ActionRegistry,
        tracker: Tracker,
        authorization: AuthorizationGate,
        resolver: Optional[TemplateResolver] = None,
        root_logger: Optional[logging.Logger] = None,
        config: Optional[ScaffolderConfig] = None,
    ):
        self.registry = registry
        self.tracker = tracker
        self.authorization = authorization
        self.resolver = resolver or TemplateResolver()
        self.root_logger = root_logger
        self.config = config or ScaffolderConfig()

    async def execute_step(
        self,
        task,
        step: TaskStep,
        context: TemplateContext,
        render_template: TemplateRenderer,
        task_track: TaskTrack,
        workspace_path: str,
        decision: PolicyDecision,
    ) -> None:
        """Execute ``step`` and commit its output to ``context``.

        Raises:
            TaskCancelledError: cancel signal set before the step or after its invocations
            ActionNotFoundError: step.action is not registered
            InputError: unresolvable ``each`` or input failing the action's schema
            NotAllowedError: the task's policy decision denies an iteration
            Exception: anything the handler raises, unchanged
        """
        step_track = await self.tracker.step_start(task, step)
        step_logger = None

        try:
            if not self._condition_holds(step, context, render_template):
                await step_track.skip_falsy()
                return

            self._check_cancelled(task, step)

            action = self.registry.get(step.action)
            step_logger = create_step_logger(
                task,
                step,
                root_logger=self.root_logger,
                level=self.config.log_level,
                placeholder=self.config.redaction_placeholder,
            )
            secrets = task.secrets or {}

            if task.is_dry_run:
                dry_input = self.resolver.render(
                    step.input or {}, context.to_template_values(secrets=secrets), render_template
                )
                shown = _redact(dry_input, secrets, self.config.redaction_placeholder)
                step_logger.logger.info(
                    f"Running {action.id} in dry-run mode with inputs (secrets redacted): "
                    f"{json.dumps(shown, indent=2, default=str)}"
                )
                if not action.supports_dry_run:
                    await task_track.skip_dry_run(step, action)
                    example = generate_example_output(action.output_schema) if action.output_schema else {}
                    context.commit_output(step.id, example)
                    await step_track.skip_dry_run()
                    return

            iterations = self._expand(step, action, context, render_template, secrets)

            for iteration in iterations:
                self._validate_input(action, iteration)
            for iteration in iterations:
                self.authorization.check(
                    decision, action.id, iteration.input, label=self._label(action, iteration)
                )

            prior_state = await task.get_task_state()
            checkpoints = CheckpointManager(
                task,
                step.id,
                workspace_path,
                prior_state=prior_state,
                version=self.config.checkpoint_version,
            )
            invoker = ActionInvoker(task, step, workspace_path, step_logger.logger, checkpoints)
            output = await invoker.invoke(action, iterations)

            context.commit_output(step.id, output)
            self._check_cancelled(task, step)
            await step_track.mark_successful()
        except TaskCancelledError:
            await task_track.mark_cancelled(step)
            await step_track.mark_cancelled()
            raise
        except Exception as err:
            await task_track.mark_failed(step, err)
            await step_track.mark_failed()
            raise
        finally:
            await task.serialize_workspace(path=workspace_path)
            if step_logger is not None:
                await step_logger.drain()

    def _condition_holds(self, step: TaskStep, context: TemplateContext, render_template: TemplateRenderer) -> bool:
        if step.if_ is None:
            return True
        if isinstance(step.if_, bool):
            return step.if_
        rendered = self.resolver.render(step.if_, context.to_template_values(), render_template)
        return is_truthy(rendered)

    @staticmethod
    def _check_cancelled(task, step: TaskStep) -> None:
        if task.cancel_signal.is_set():
            raise TaskCancelledError(
                f"Step {step.id} ({step.name}) of task {task.task_id} has been cancelled.",
                step_id=step.id,
                task_id=task.task_id,
            )

    def _expand(
        self,
        step: TaskStep,
        action: TemplateAction,
        context: TemplateContext,
        render_template: TemplateRenderer,
        secrets: dict[str, str],
    ) -> list[StepIteration]:
        """Render ``each`` (if any) and the input of every iteration."""
        if step.each is None:
            values = context.to_template_values(secrets=secrets)
            return [StepIteration(input=self._render_input(step, values, render_template))]

        resolved = self.resolver.render(
            step.each, context.to_template_values(secrets=secrets), render_template
        )
        if isinstance(resolved, dict) and resolved:
            items = list(resolved.items())
        elif isinstance(resolved, list) and resolved:
            items = [(str(index), value) for index, value in enumerate(resolved)]
        else:
            raise InputError(
                f'Invalid value on action {action.id}.each parameter, '
                f'"{step.each}" cannot be resolved to a value'
            )

        iterations = []
        for key, value in items:
            each = {"key": key, "value": value}
            values = context.to_template_values(secrets=secrets, each=each)
            iterations.append(StepIteration(input=self._render_input(step, values, render_template), each=each))
        return iterations

    def _render_input(self, step: TaskStep, values: dict, render_template: TemplateRenderer) -> dict:
        rendered = self.resolver.render(step.input or {}, values, render_template)
        return rendered or {}

    @staticmethod
    def _label(action: TemplateAction, iteration: StepIteration) -> str:
        return action.id if iteration.key is None else f"{action.id}[{iteration.key}]"

    def _validate_input(self, action: TemplateAction, iteration: StepIteration) -> None:
        if not action.input_schema:
            return
        validator = Draft202012Validator(action.input_schema)
        errors = sorted(validator.iter_errors(iteration.input), key=_error_path)
        if not errors:
            return
        described = [
            {"path": _error_path(e), "message": e.message}
            for e in errors
        ]
        raise InputError(
            f"Invalid input passed to action {self._label(action, iteration)}, "
            f"{json.dumps(described, indent=2)}",
            errors=described,
        )
