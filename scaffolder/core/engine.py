"""Workflow runner. Executes one task end to end.

Orchestrates: validate spec → rehydrate workspace → [step]* → render output,
with the workspace directory removed on every exit path.
"""

import logging
import os
import shutil
from typing import Any, Optional

from scaffolder.actions.registry import ActionRegistry
from scaffolder.config import ScaffolderConfig
from scaffolder.core.authorization import AuthorizationGate, PermissionService
from scaffolder.core.step_runner import StepRunner
from scaffolder.core.tracker import Tracker
from scaffolder.exceptions import InvalidSpecError
from scaffolder.templating.filters import TemplateFilter
from scaffolder.templating.resolver import TemplateResolver
from scaffolder.templating.secure import SecureTemplater
from scaffolder.types import TaskSpec, TemplateContext, WorkflowResponse

logger = logging.getLogger(__name__)


class WorkflowRunner:
    """Single entry point for executing tasks.

    Constructor dependencies (all injected):
        - registry: ActionRegistry the steps' actions are resolved from
        - working_directory: parent of every task workspace (defaults to config)
        - permissions: optional PermissionService; without one every action is allowed
        - tracker: Tracker for metrics and task log transitions
        - additional_template_filters / additional_template_globals: merged into the renderer
        - config: ScaffolderConfig
    """

    def __init__(
        self,
        registry: ActionRegistry,
        working_directory: Optional[str] = None,
        permissions: Optional[PermissionService] = None,
        tracker: Optional[Tracker] = None,
        additional_template_filters: Optional[dict[str, TemplateFilter]] = None,
        additional_template_globals: Optional[dict[str, Any]] = None,
        config: Optional[ScaffolderConfig] = None,
    ):
        self.registry = registry
        self.config = config or ScaffolderConfig()
        self.working_directory = working_directory or self.config.working_directory
        self.tracker = tracker or Tracker()
        self.authorization = AuthorizationGate(permissions)
        self.additional_template_filters = additional_template_filters or {}
        self.additional_template_globals = additional_template_globals or {}
        self.resolver = TemplateResolver()
        self.step_runner = StepRunner(
            registry,
            self.tracker,
            self.authorization,
            resolver=self.resolver,
            config=self.config,
        )

    def _validate_spec(self, spec: TaskSpec) -> None:
        if spec.api_version not in self.config.supported_api_versions:
            raise InvalidSpecError(
                "Wrong template version executed with the workflow engine",
                details={"api_version": spec.api_version},
            )
        seen: set[str] = set()
        for step in spec.steps:
            if step.id in seen:
                raise InvalidSpecError(
                    f"Duplicate step id '{step.id}' in task spec",
                    details={"step_id": step.id},
                )
            seen.add(step.id)

    async def execute(self, task) -> WorkflowResponse:
        """Run every step of ``task`` in order and render the task output.

        1. Reject unsupported apiVersions and duplicate step ids
        2. Rehydrate the workspace <working_directory>/<task id>
        3. Resolve the policy decision once for the whole task
        4. Run each step through the StepRunner; the first failure aborts the rest
        5. Render spec.output, mark the task successful, clean the persisted workspace

        Args:
            task: TaskContext of the task to run

        Returns:
            WorkflowResponse with the rendered output

        Raises:
            InvalidSpecError: before any step runs
            ScaffolderError or handler exceptions: from the step that failed
        """
        spec = task.spec
        self._validate_spec(spec)

        task_id = await task.get_workspace_name()
        workspace_path = os.path.join(self.working_directory, task_id)
        render_template = SecureTemplater.load_renderer(
            filters=self.additional_template_filters,
            globals_=self.additional_template_globals,
        )
        logger.info(f"[Runner] execute() task={task_id} steps={len(spec.steps)} dry_run={task.is_dry_run}")

        try:
            await task.rehydrate_workspace(task_id=task_id, target_path=workspace_path)
            task_track = await self.tracker.task_start(task)
            os.makedirs(workspace_path, exist_ok=True)

            context = TemplateContext(
                task_id=task_id,
                parameters=spec.parameters,
                user=spec.user,
                recovery=spec.recovery,
            )
            decision = await self.authorization.resolve_decision(task)

            for step in spec.steps:
                await self.step_runner.execute_step(
                    task, step, context, render_template, task_track, workspace_path, decision
                )

            output = self.resolver.render(spec.output, context.to_template_values(), render_template)
            await task_track.mark_successful()
            await task.clean_workspace()
            logger.info(f"[Runner] Task {task_id} completed")
            return WorkflowResponse(output=output)
        finally:
            if self.config.preserve_workspace:
                logger.debug(f"[Runner] Preserving workspace {workspace_path}")
            else:
                shutil.rmtree(workspace_path, ignore_errors=True)
