"""Test fixtures: recording actions, registries, in-memory tasks, runners.

All tests should use these fixtures for consistency.
"""

import pytest

from scaffolder.actions.registry import ActionRegistry, TemplateAction
from scaffolder.config import ScaffolderConfig
from scaffolder.core.engine import WorkflowRunner
from scaffolder.core.task import InMemoryTaskContext
from scaffolder.core.tracker import InMemoryMetrics, Tracker
from scaffolder.types import TaskSpec

API_VERSION = "scaffolder.backstage.io/v1beta3"


class Recorder:
    """Collects every ActionContext a recording action was invoked with."""

    def __init__(self):
        self.calls = []

    @property
    def inputs(self) -> list[dict]:
        return [ctx.input for ctx in self.calls]


def make_spec(steps: list[dict], **fields) -> TaskSpec:
    return TaskSpec.model_validate({"apiVersion": API_VERSION, "steps": steps, **fields})


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def registry(recorder):
    """Registry with:

    noop       does nothing
    echo       outputs every input key as-is (supports dry run)
    record     records its context, outputs ``each.value * 10`` when fanned out
    fail       raises RuntimeError("boom")
    validated  requires a string ``name``; outputs an example per its output schema
    """
    reg = ActionRegistry()

    async def noop(ctx):
        recorder.calls.append(ctx)

    async def echo(ctx):
        recorder.calls.append(ctx)
        for key, value in ctx.input.items():
            ctx.output(key, value)

    async def record(ctx):
        recorder.calls.append(ctx)
        if ctx.each is not None:
            ctx.output("x", ctx.each["value"] * 10)

    async def fail(ctx):
        recorder.calls.append(ctx)
        raise RuntimeError("boom")

    async def validated(ctx):
        recorder.calls.append(ctx)
        ctx.output("greeting", f"hello {ctx.input['name']}")

    reg.register(TemplateAction(id="noop", handler=noop))
    reg.register(TemplateAction(id="echo", handler=echo, supports_dry_run=True))
    reg.register(TemplateAction(id="record", handler=record))
    reg.register(TemplateAction(id="fail", handler=fail))
    reg.register(TemplateAction(
        id="validated",
        handler=validated,
        input_schema={
            "type": "object",
            "required": ["name"],
            "properties": {"name": {"type": "string"}},
        },
        output_schema={
            "type": "object",
            "properties": {"greeting": {"type": "string", "examples": ["hello example"]}},
        },
    ))
    return reg


@pytest.fixture
def metrics():
    return InMemoryMetrics()


@pytest.fixture
def test_config(tmp_path):
    return ScaffolderConfig(working_directory=str(tmp_path / "work"))


@pytest.fixture
def make_runner(registry, metrics, test_config):
    """Factory: make_runner(permissions=None, **kwargs) -> WorkflowRunner."""
    def _make(**kwargs):
        kwargs.setdefault("tracker", Tracker(metrics))
        kwargs.setdefault("config", test_config)
        return WorkflowRunner(registry, **kwargs)
    return _make


@pytest.fixture
def runner(make_runner):
    return make_runner()


@pytest.fixture
def make_task():
    """Factory: make_task(steps, task_id="task-1", secrets=None, is_dry_run=False, **spec_fields)."""
    def _make(steps, *, task_id="task-1", secrets=None, is_dry_run=False,
              state=None, workspace_snapshot=None, credentials=None, **fields):
        return InMemoryTaskContext(
            make_spec(steps, **fields),
            task_id=task_id,
            secrets=secrets,
            is_dry_run=is_dry_run,
            state=state,
            workspace_snapshot=workspace_snapshot,
            credentials=credentials,
        )
    return _make
