"""The task as seen by the runner.

``TaskContext`` is the boundary to whatever dequeued the task: it owns the
persisted task state (checkpoints, serialized workspace) and the task log.
``InMemoryTaskContext`` keeps all of that in process memory; the CLI and the
tests run tasks through it.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from scaffolder.types import CheckpointRecord, CheckpointUpdate, TaskSpec, TaskState

logger = logging.getLogger(__name__)


@runtime_checkable
class TaskContext(Protocol):
    """Everything the runner needs from the task it is executing."""

    task_id: str
    spec: TaskSpec
    secrets: dict[str, str]
    cancel_signal: asyncio.Event
    is_dry_run: bool

    async def get_workspace_name(self) -> str:
        ...

    async def rehydrate_workspace(self, *, task_id: str, target_path: str) -> None:
        """Restore a previously serialized workspace into ``target_path``."""
        ...

    async def serialize_workspace(self, *, path: str) -> None:
        """Persist the current contents of the workspace at ``path``."""
        ...

    async def clean_workspace(self) -> None:
        """Drop the persisted workspace once the task has succeeded."""
        ...

    async def get_task_state(self) -> Optional[TaskState]:
        ...

    async def update_checkpoint(self, update: CheckpointUpdate) -> None:
        ...

    async def emit_log(self, message: str, metadata: Optional[dict[str, Any]] = None) -> None:
        ...

    async def get_initiator_credentials(self) -> Any:
        ...


class InMemoryTaskContext:
    """TaskContext whose persisted state lives in this object.

    Workspace snapshots are a mapping of relative path → file bytes, so a
    second context built with ``workspace_snapshot=first.snapshot`` and
    ``state=first.state`` resumes where the first one stopped.
    """

    def __init__(
        self,
        spec: TaskSpec,
        *,
        task_id: Optional[str] = None,
        secrets: Optional[dict[str, str]] = None,
        is_dry_run: bool = False,
        state: Optional[TaskState] = None,
        workspace_snapshot: Optional[dict[str, bytes]] = None,
        credentials: Any = None,
    ):
        self.task_id = task_id or str(uuid.uuid4())
        self.spec = spec
        self.secrets = dict(secrets or {})
        self.is_dry_run = is_dry_run
        self.cancel_signal = asyncio.Event()
        self.state = state.model_copy(deep=True) if state is not None else TaskState()
        self.snapshot: dict[str, bytes] = dict(workspace_snapshot or {})
        self.logs: list[tuple[str, dict[str, Any]]] = []
        self.serialize_count = 0
        self.cleaned = False
        self._credentials = credentials

    def cancel(self) -> None:
        self.cancel_signal.set()

    async def get_workspace_name(self) -> str:
        return self.task_id

    async def rehydrate_workspace(self, *, task_id: str, target_path: str) -> None:
        root = Path(target_path)
        for relative, data in self.snapshot.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        if self.snapshot:
            logger.debug(f"[Task {task_id}] Rehydrated {len(self.snapshot)} file(s) into {target_path}")

    async def serialize_workspace(self, *, path: str) -> None:
        root = Path(path)
        snapshot: dict[str, bytes] = {}
        if root.is_dir():
            for file in sorted(root.rglob("*")):
                if file.is_file():
                    snapshot[file.relative_to(root).as_posix()] = file.read_bytes()
        self.snapshot = snapshot
        self.serialize_count += 1

    async def clean_workspace(self) -> None:
        self.snapshot = {}
        self.cleaned = True

    async def get_task_state(self) -> Optional[TaskState]:
        return self.state.model_copy(deep=True)

    async def update_checkpoint(self, update: CheckpointUpdate) -> None:
        self.state.checkpoints[update.key] = CheckpointRecord(
            status=update.status, value=update.value, reason=update.reason
        )

    async def emit_log(self, message: str, metadata: Optional[dict[str, Any]] = None) -> None:
        self.logs.append((message, dict(metadata or {})))

    async def get_initiator_credentials(self) -> Any:
        return self._credentials

    def messages(self, step_id: Optional[str] = None) -> list[str]:
        """Logged messages, optionally only those of one step."""
        return [
            message for message, metadata in self.logs
            if step_id is None or metadata.get("stepId") == step_id
        ]
