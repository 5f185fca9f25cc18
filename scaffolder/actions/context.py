"""What a handler receives for one invocation."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from scaffolder.types import TemplateInfo, UserInfo


class ActionContext:
    """Execution context of a single handler call.

    Cancellation is cooperative. The runner only looks at the task's cancel
    signal between steps; a handler that runs for a long time must poll
    ``ctx.signal.is_set()`` itself if it wants to stop early.
    """

    def __init__(
        self,
        *,
        input: dict[str, Any],
        task_id: str,
        secrets: dict[str, str],
        logger: logging.Logger,
        workspace_path: str,
        checkpoint: Callable[[str, Callable[[], Any]], Awaitable[Any]],
        create_temporary_directory: Callable[[], Awaitable[str]],
        output: Callable[[str, Any], None],
        signal: asyncio.Event,
        get_initiator_credentials: Callable[[], Awaitable[Any]],
        is_dry_run: bool = False,
        template_info: Optional[TemplateInfo] = None,
        user: Optional[UserInfo] = None,
        step_id: str = "",
        step_name: str = "",
        each: Optional[dict[str, Any]] = None,
    ):
        self.input = input
        self.task_id = task_id
        self.secrets = secrets
        self.logger = logger
        self.workspace_path = workspace_path
        self.checkpoint = checkpoint
        self.create_temporary_directory = create_temporary_directory
        self.output = output
        self.signal = signal
        self.get_initiator_credentials = get_initiator_credentials
        self.is_dry_run = is_dry_run
        self.template_info = template_info
        self.user = user
        self.step_id = step_id
        self.step_name = step_name
        self.each = each
