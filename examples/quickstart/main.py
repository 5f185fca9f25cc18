"""Quickstart: run examples/quickstart/task.yaml in-process.

Run:
    python examples/quickstart/main.py
"""

import asyncio
import json
from pathlib import Path

from scaffolder import InMemoryTaskContext, WorkflowRunner
from scaffolder.actions.builtin import create_builtin_registry
from scaffolder.core.logger import configure_logging
from scaffolder.loader import load_task_spec


async def main():
    configure_logging("INFO")
    spec = load_task_spec(Path(__file__).parent / "task.yaml")
    task = InMemoryTaskContext(spec)

    response = await WorkflowRunner(create_builtin_registry()).execute(task)

    for message, metadata in task.logs:
        print(f"{metadata.get('stepId', '-'):>8}  {message}")
    print(json.dumps(response.output, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
