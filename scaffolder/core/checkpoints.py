"""Step-scoped memoization of expensive or side-effecting work.

A handler wraps work in ``await ctx.checkpoint("create-repo", fn)``. The
outcome is written to the task-state store; when the same task is executed
again (after a crash or a resume) checkpoints that already succeeded return
their stored value and ``fn`` is not called again.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel

from scaffolder.types import CheckpointUpdate, TaskState

logger = logging.getLogger(__name__)

CheckpointFn = Callable[[], Union[Any, Awaitable[Any]]]


def _escape(component: str) -> str:
    return quote(component, safe="").replace(".", "%2E")


class CheckpointKey(BaseModel):
    """Structured checkpoint key: (version, step id, logical key).

    Serialized as ``<version>.task.checkpoint.<step id>.<key>`` with every
    component percent-escaped, so step ids or keys containing dots can
    never collide with one another.
    """
    version: str = "v1"
    step_id: str
    key: str

    model_config = {"frozen": True}

    def serialize(self) -> str:
        return ".".join([
            _escape(self.version),
            "task",
            "checkpoint",
            _escape(self.step_id),
            _escape(self.key),
        ])


def _stringify_error(err: BaseException) -> str:
    return f"{type(err).__name__}: {err}"


class CheckpointManager:
    """Checkpoint capability handed to every handler invocation of one step."""

    def __init__(
        self,
        task,
        step_id: str,
        workspace_path: str,
        prior_state: Optional[TaskState] = None,
        version: str = "v1",
    ):
        """
        Args:
            task: TaskContext of the running task
            step_id: Step the checkpoints belong to
            workspace_path: Workspace serialized after every checkpoint
            prior_state: Task-state snapshot loaded once before the step ran
            version: Version tag, first component of every key
        """
        self._task = task
        self._step_id = step_id
        self._workspace_path = workspace_path
        self._prior_state = prior_state
        self._version = version

    def key_for(self, key: str) -> str:
        return CheckpointKey(version=self._version, step_id=self._step_id, key=key).serialize()

    async def checkpoint(self, key: str, fn: CheckpointFn) -> Any:
        """Return the recorded value for ``key`` or run ``fn`` and record it.

        Args:
            key: Logical key, unique within the step
            fn: Sync or async zero-argument callable doing the work

        Returns:
            The replayed or freshly computed value

        Raises:
            Whatever ``fn`` raises, after recording the failure
        """
        durable_key = self.key_for(key)
        try:
            previous = None
            if self._prior_state is not None:
                previous = self._prior_state.checkpoints.get(durable_key)

            if previous is not None and previous.status == "success":
                logger.debug("[Checkpoint] Replaying '%s' from task state", durable_key)
                return previous.value

            value = fn()
            if inspect.isawaitable(value):
                value = await value

            await self._task.update_checkpoint(
                CheckpointUpdate(key=durable_key, status="success", value=value)
            )
            return value
        except Exception as err:
            await self._task.update_checkpoint(
                CheckpointUpdate(key=durable_key, status="failed", reason=_stringify_error(err))
            )
            raise
        finally:
            await self._task.serialize_workspace(path=self._workspace_path)
