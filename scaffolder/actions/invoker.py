"""Runs a step's handler once per iteration and collects what it outputs."""

import json
import logging
import os
import shutil
import tempfile
from typing import Any, Optional

from pydantic import BaseModel, Field

from scaffolder.actions.context import ActionContext
from scaffolder.actions.registry import TemplateAction
from scaffolder.core.checkpoints import CheckpointManager
from scaffolder.types import TaskStep

logger = logging.getLogger(__name__)


class StepIteration(BaseModel):
    """One handler call: the rendered input and, for fan-out, the current item."""
    input: dict[str, Any] = Field(default_factory=dict)
    each: Optional[dict[str, Any]] = None   # {"key": ..., "value": ...}

    @property
    def key(self) -> Optional[str]:
        return None if self.each is None else str(self.each["key"])


class ActionInvoker:
    """Invokes one action for every iteration of one step, strictly in order."""

    def __init__(
        self,
        task,
        step: TaskStep,
        workspace_path: str,
        logger: logging.Logger,
        checkpoints: CheckpointManager,
    ):
        self._task = task
        self._step = step
        self._workspace_path = workspace_path
        self._logger = logger
        self._checkpoints = checkpoints
        self._temp_dirs: list[str] = []

    async def create_temporary_directory(self) -> str:
        """New directory beside the workspace, removed when the step finishes."""
        workspace = os.path.normpath(self._workspace_path)
        path = tempfile.mkdtemp(
            prefix=f"{os.path.basename(workspace)}_step-{self._step.id}-",
            dir=os.path.dirname(workspace),
        )
        self._temp_dirs.append(path)
        return path

    async def invoke(self, action: TemplateAction, iterations: list[StepIteration]) -> dict[str, Any]:
        """Call ``action.handler`` for each iteration.

        Args:
            action: Resolved action
            iterations: Validated and authorized iterations, in order

        Returns:
            The step output. With ``each`` every named output is a list with
            one entry per ``ctx.output`` call; otherwise the last write wins.

        Raises:
            Whatever the handler raises, unchanged
        """
        output: dict[str, Any] = {}
        fan_out = self._step.each is not None

        def sink(name: str, value: Any) -> None:
            if fan_out:
                output.setdefault(name, []).append(value)
            else:
                output[name] = value

        task_id = await self._task.get_workspace_name()
        spec = self._task.spec

        try:
            for iteration in iterations:
                if iteration.each is not None:
                    shown = {k: str(v) for k, v in iteration.each.items()}
                    self._logger.info(f"Running step each: {json.dumps(shown, indent=2)}")

                ctx = ActionContext(
                    input=iteration.input,
                    task_id=task_id,
                    secrets=self._task.secrets or {},
                    logger=self._logger,
                    workspace_path=self._workspace_path,
                    checkpoint=self._checkpoints.checkpoint,
                    create_temporary_directory=self.create_temporary_directory,
                    output=sink,
                    signal=self._task.cancel_signal,
                    get_initiator_credentials=self._task.get_initiator_credentials,
                    is_dry_run=self._task.is_dry_run,
                    template_info=spec.template_info,
                    user=spec.user,
                    step_id=self._step.id,
                    step_name=self._step.name,
                    each=iteration.each,
                )
                await action.handler(ctx)
        finally:
            for path in self._temp_dirs:
                shutil.rmtree(path, ignore_errors=True)
            if self._temp_dirs:
                logger.debug(f"[ActionInvoker] Removed {len(self._temp_dirs)} temporary dir(s) of step {self._step.id}")
            self._temp_dirs = []

        return output
