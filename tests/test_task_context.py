"""Tests for the in-memory task context and the template context."""

import pytest

from scaffolder.core.task import InMemoryTaskContext, TaskContext
from scaffolder.exceptions import ScaffolderError
from scaffolder.types import CheckpointUpdate, TaskSpec, TaskStep, TemplateContext, UserInfo


def _spec(**fields) -> TaskSpec:
    return TaskSpec.model_validate({"apiVersion": "scaffolder.backstage.io/v1beta3", "steps": [], **fields})


class TestInMemoryTaskContext:

    def test_implements_protocol(self):
        assert isinstance(InMemoryTaskContext(_spec()), TaskContext)

    def test_generates_task_id(self):
        assert InMemoryTaskContext(_spec()).task_id != InMemoryTaskContext(_spec()).task_id

    def test_cancel_sets_signal(self):
        task = InMemoryTaskContext(_spec())
        assert not task.cancel_signal.is_set()
        task.cancel()
        assert task.cancel_signal.is_set()

    @pytest.mark.asyncio
    async def test_serialize_then_rehydrate(self, tmp_path):
        source = tmp_path / "a"
        (source / "sub").mkdir(parents=True)
        (source / "sub" / "f.txt").write_bytes(b"data")
        task = InMemoryTaskContext(_spec(), task_id="t")
        await task.serialize_workspace(path=str(source))
        assert task.snapshot == {"sub/f.txt": b"data"}

        resumed = InMemoryTaskContext(_spec(), task_id="t", workspace_snapshot=task.snapshot)
        target = tmp_path / "b"
        await resumed.rehydrate_workspace(task_id="t", target_path=str(target))
        assert (target / "sub" / "f.txt").read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_checkpoint_updates_fold_into_state(self):
        task = InMemoryTaskContext(_spec())
        await task.update_checkpoint(CheckpointUpdate(key="k", status="success", value=1))
        state = await task.get_task_state()
        assert state.checkpoints["k"].value == 1

    @pytest.mark.asyncio
    async def test_task_state_is_a_snapshot(self):
        task = InMemoryTaskContext(_spec())
        state = await task.get_task_state()
        await task.update_checkpoint(CheckpointUpdate(key="k", status="success", value=1))
        assert "k" not in state.checkpoints

    @pytest.mark.asyncio
    async def test_clean_workspace(self):
        task = InMemoryTaskContext(_spec(), workspace_snapshot={"f": b"x"})
        await task.clean_workspace()
        assert task.snapshot == {}
        assert task.cleaned is True

    @pytest.mark.asyncio
    async def test_messages_filter_by_step(self):
        task = InMemoryTaskContext(_spec())
        await task.emit_log("a")
        await task.emit_log("b", {"stepId": "s1"})
        assert task.messages() == ["a", "b"]
        assert task.messages("s1") == ["b"]


class TestTemplateContext:

    def test_commit_output_once(self):
        context = TemplateContext(task_id="t")
        context.commit_output("s1", {"x": 1})
        with pytest.raises(ScaffolderError, match="s1"):
            context.commit_output("s1", {"x": 2})
        assert context.steps == {"s1": {"output": {"x": 1}}}

    def test_template_values(self):
        context = TemplateContext(task_id="t", parameters={"p": 1}, user=UserInfo(ref="user:default/jdoe"))
        values = context.to_template_values(secrets={"token": "s"}, each={"key": "a", "value": 1})
        assert values["parameters"] == {"p": 1}
        assert values["context"] == {"task": {"id": "t"}}
        assert values["user"] == {"ref": "user:default/jdoe"}
        assert values["secrets"] == {"token": "s"}
        assert values["each"] == {"key": "a", "value": 1}

    def test_template_values_omit_secrets_by_default(self):
        values = TemplateContext(task_id="t").to_template_values()
        assert "secrets" not in values
        assert "each" not in values


class TestTaskSpec:

    def test_step_name_defaults_to_id(self):
        assert TaskStep.model_validate({"id": "s1", "action": "noop"}).name == "s1"

    def test_if_alias(self):
        step = TaskStep.model_validate({"id": "s1", "action": "noop", "if": "${{ parameters.go }}"})
        assert step.if_ == "${{ parameters.go }}"

    def test_aliases(self):
        spec = _spec(
            templateInfo={"entityRef": "template:default/web", "baseUrl": "file:///t"},
            EXPERIMENTAL_recovery={"EXPERIMENTAL_strategy": "startOver"},
        )
        assert spec.template_info.entity_ref == "template:default/web"
        assert spec.recovery.strategy == "startOver"
        assert spec.output == {}
