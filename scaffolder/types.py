"""All shared types, enums, and type aliases. Everything imports from here."""

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from scaffolder.exceptions import ScaffolderError


# ── Enums ──────────────────────────────────────────────────────────────

class AuthorizeResult(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    CONDITIONAL = "CONDITIONAL"  # allowed only where the attached conditions match

class LogStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"

class TrackResult(str, Enum):
    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"  # if condition false, or dry run of an action without dry-run support


# ── Task Spec ──────────────────────────────────────────────────────────

class TemplateInfo(BaseModel):
    """Where the template that produced this task came from."""
    entity_ref: str = Field(default="", alias="entityRef")
    base_url: Optional[str] = Field(default=None, alias="baseUrl")

    model_config = {"populate_by_name": True, "frozen": True}

class UserInfo(BaseModel):
    """Identity of the user that submitted the task."""
    ref: Optional[str] = None
    entity: Optional[dict[str, Any]] = None

    model_config = {"frozen": True}

class TaskRecovery(BaseModel):
    strategy: Literal["none", "startOver"] = Field(default="none", alias="EXPERIMENTAL_strategy")

    model_config = {"populate_by_name": True, "frozen": True}

class TaskStep(BaseModel):
    """One step of a task: a single action invocation, optionally fanned out."""
    id: str                                  # unique within the task
    name: str
    action: str                              # action id in the registry
    input: Optional[dict[str, Any]] = None   # JSON template
    if_: Optional[Union[bool, str]] = Field(default=None, alias="if")
    each: Any = None                         # templated mapping/list for fan-out

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("id"):
            data = {**data, "name": data["id"]}
        return data

class TaskSpec(BaseModel):
    """Immutable description of one task. Read-only during execution."""
    api_version: str = Field(alias="apiVersion")
    steps: list[TaskStep] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)
    output: Any = Field(default_factory=dict)   # JSON template rendered after the last step
    user: Optional[UserInfo] = None
    template_info: Optional[TemplateInfo] = Field(default=None, alias="templateInfo")
    recovery: Optional[TaskRecovery] = Field(default=None, alias="EXPERIMENTAL_recovery")

    model_config = {"populate_by_name": True, "frozen": True}


# ── Execution State ────────────────────────────────────────────────────

class TemplateContext(BaseModel):
    """Values every template of a task is rendered against.

    Owned by the runner for the task's lifetime. ``steps`` only grows:
    each step writes its own output slot exactly once. Secrets and the
    current ``each`` item are merged into a single render's values and
    never stored here.
    """
    task_id: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    steps: dict[str, dict[str, Any]] = Field(default_factory=dict)
    user: Optional[UserInfo] = None
    recovery: Optional[TaskRecovery] = None

    def commit_output(self, step_id: str, output: dict[str, Any]) -> None:
        """Record a step's output. A step's slot can only be written once."""
        if step_id in self.steps:
            raise ScaffolderError(
                f"Output of step '{step_id}' has already been recorded",
                details={"step_id": step_id},
            )
        self.steps[step_id] = {"output": output}

    def to_template_values(
        self,
        secrets: Optional[dict[str, str]] = None,
        each: Any = None,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {
            "parameters": self.parameters,
            "steps": self.steps,
            "context": {"task": {"id": self.task_id}},
        }
        if self.user is not None:
            values["user"] = self.user.model_dump(exclude_none=True)
        if self.recovery is not None:
            values["EXPERIMENTAL_recovery"] = self.recovery.model_dump(by_alias=True)
        if secrets is not None:
            values["secrets"] = secrets
        if each is not None:
            values["each"] = each
        return values

class CheckpointRecord(BaseModel):
    """Persisted outcome of one checkpoint."""
    status: Literal["success", "failed"]
    value: Any = None
    reason: Optional[str] = None

class CheckpointUpdate(BaseModel):
    """What the runner hands to the task-state store when a checkpoint resolves."""
    key: str
    status: Literal["success", "failed"]
    value: Any = None
    reason: Optional[str] = None

class TaskState(BaseModel):
    """Snapshot of the persisted state of a task, loaded before a step runs."""
    checkpoints: dict[str, CheckpointRecord] = Field(default_factory=dict)

class PolicyDecision(BaseModel):
    """Authorization verdict for executing actions, computed once per task."""
    result: AuthorizeResult
    conditions: Optional[dict[str, Any]] = None   # criteria tree when CONDITIONAL

class WorkflowResponse(BaseModel):
    """Externally visible result of a task."""
    output: Any = None
