"""scaffolder: workflow runner for templated scaffolding tasks.

Usage:
    from scaffolder import WorkflowRunner, InMemoryTaskContext, TaskSpec
    from scaffolder.actions.builtin import create_builtin_registry

    runner = WorkflowRunner(create_builtin_registry())
    task = InMemoryTaskContext(TaskSpec.model_validate(raw_spec))
    response = await runner.execute(task)
"""

from scaffolder.types import (
    TaskSpec, TaskStep, TemplateInfo, UserInfo, TaskRecovery,
    TemplateContext, TaskState, CheckpointRecord, CheckpointUpdate,
    PolicyDecision, WorkflowResponse, AuthorizeResult, LogStatus,
)
from scaffolder.exceptions import (
    ScaffolderError, InvalidSpecError, InputError, ActionNotFoundError,
    NotAllowedError, TaskCancelledError, TemplateRenderError,
)
from scaffolder.actions import ActionContext, ActionRegistry, TemplateAction, action
from scaffolder.core.engine import WorkflowRunner
from scaffolder.core.task import InMemoryTaskContext, TaskContext
from scaffolder.version import __version__

__all__ = [
    "TaskSpec", "TaskStep", "TemplateInfo", "UserInfo", "TaskRecovery",
    "TemplateContext", "TaskState", "CheckpointRecord", "CheckpointUpdate",
    "PolicyDecision", "WorkflowResponse", "AuthorizeResult", "LogStatus",
    "ScaffolderError", "InvalidSpecError", "InputError", "ActionNotFoundError",
    "NotAllowedError", "TaskCancelledError", "TemplateRenderError",
    "ActionContext", "ActionRegistry", "TemplateAction", "action",
    "WorkflowRunner", "InMemoryTaskContext", "TaskContext",
    "__version__",
]
