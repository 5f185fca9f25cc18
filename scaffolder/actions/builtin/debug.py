"""Debugging actions: write to the step log, or wait for a while."""

import asyncio
import os
import time

from scaffolder.actions.context import ActionContext
from scaffolder.actions.registry import action

MAX_WAIT_SECONDS = 600
_POLL_INTERVAL = 0.05


def _list_files(root: str) -> list[str]:
    found = []
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            found.append(os.path.relpath(os.path.join(dirpath, filename), root).replace(os.sep, "/"))
    return sorted(found)


@action(
    id="debug:log",
    description="Writes a message into the step log, optionally listing the workspace.",
    input_schema={
        "type": "object",
        "properties": {
            "message": {"type": "string", "description": "Message to output."},
            "listWorkspace": {
                "type": "boolean",
                "description": "List all files in the workspace, if true.",
            },
        },
    },
    supports_dry_run=True,
)
async def debug_log(ctx: ActionContext) -> None:
    ctx.logger.info(f"Running debug:log in {ctx.workspace_path}")

    if ctx.input.get("message"):
        ctx.logger.info(ctx.input["message"])

    if ctx.input.get("listWorkspace"):
        files = _list_files(ctx.workspace_path)
        ctx.logger.info("Workspace:\n" + "\n".join(f"  - {f}" for f in files))


@action(
    id="debug:wait",
    description="Waits a number of seconds, stopping early if the task is cancelled.",
    input_schema={
        "type": "object",
        "properties": {
            "seconds": {"type": "number", "minimum": 0, "description": "Seconds to wait."},
        },
    },
    output_schema={
        "type": "object",
        "properties": {"waited": {"type": "number"}},
    },
)
async def debug_wait(ctx: ActionContext) -> None:
    seconds = float(ctx.input.get("seconds", 0))
    if seconds > MAX_WAIT_SECONDS:
        raise ValueError(f"Waiting duration is longer than the maximum threshold of {MAX_WAIT_SECONDS} seconds")

    started = time.monotonic()
    deadline = started + seconds
    while time.monotonic() < deadline:
        if ctx.signal.is_set():
            ctx.logger.info("Task cancelled, stopping wait")
            break
        await asyncio.sleep(min(_POLL_INTERVAL, max(0.0, deadline - time.monotonic())))

    ctx.output("waited", round(time.monotonic() - started, 3))
