"""Tests for checkpoint keys and checkpoint replay."""

import pytest

from scaffolder.core.checkpoints import CheckpointKey, CheckpointManager
from scaffolder.core.task import InMemoryTaskContext
from scaffolder.types import CheckpointRecord, TaskSpec, TaskState


# ── Helpers ───────────────────────────────────────────────────────────────────

def _task(state: TaskState = None) -> InMemoryTaskContext:
    spec = TaskSpec.model_validate({"apiVersion": "scaffolder.backstage.io/v1beta3", "steps": []})
    return InMemoryTaskContext(spec, task_id="task-1", state=state)


def _manager(task, workspace, step_id="s1", prior_state=None) -> CheckpointManager:
    return CheckpointManager(task, step_id, str(workspace), prior_state=prior_state)


# ── Keys ──────────────────────────────────────────────────────────────────────

class TestCheckpointKey:

    def test_serialized_form(self):
        assert CheckpointKey(step_id="s1", key="repo").serialize() == "v1.task.checkpoint.s1.repo"

    def test_dots_are_escaped(self):
        key = CheckpointKey(step_id="a.b", key="c").serialize()
        assert key == "v1.task.checkpoint.a%2Eb.c"

    def test_distinct_pairs_never_collide(self):
        left = CheckpointKey(step_id="a.b", key="c").serialize()
        right = CheckpointKey(step_id="a", key="b.c").serialize()
        assert left != right

    def test_special_characters_are_escaped(self):
        key = CheckpointKey(step_id="s 1", key="100%/x").serialize()
        assert key == "v1.task.checkpoint.s%201.100%25%2Fx"

    def test_version_prefix(self):
        assert CheckpointKey(version="v2", step_id="s", key="k").serialize().startswith("v2.task.checkpoint.")


# ── Replay ────────────────────────────────────────────────────────────────────

class TestCheckpointManager:

    @pytest.mark.asyncio
    async def test_records_success(self, tmp_path):
        task = _task()
        manager = _manager(task, tmp_path)
        value = await manager.checkpoint("repo", lambda: {"url": "https://x"})
        assert value == {"url": "https://x"}
        record = task.state.checkpoints["v1.task.checkpoint.s1.repo"]
        assert record.status == "success"
        assert record.value == {"url": "https://x"}

    @pytest.mark.asyncio
    async def test_async_function(self, tmp_path):
        task = _task()

        async def work():
            return 42

        assert await _manager(task, tmp_path).checkpoint("n", work) == 42

    @pytest.mark.asyncio
    async def test_replays_recorded_success_without_calling(self, tmp_path):
        prior = TaskState(checkpoints={
            "v1.task.checkpoint.s1.repo": CheckpointRecord(status="success", value="first"),
        })
        task = _task(prior)
        calls = []
        value = await _manager(task, tmp_path, prior_state=prior).checkpoint(
            "repo", lambda: calls.append(1) or "second"
        )
        assert value == "first"
        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("falsy", [0, False, "", None, []])
    async def test_replays_falsy_values(self, tmp_path, falsy):
        prior = TaskState(checkpoints={
            "v1.task.checkpoint.s1.k": CheckpointRecord(status="success", value=falsy),
        })
        calls = []
        value = await _manager(_task(prior), tmp_path, prior_state=prior).checkpoint(
            "k", lambda: calls.append(1) or "fresh"
        )
        assert value == falsy
        assert calls == []

    @pytest.mark.asyncio
    async def test_failed_record_is_retried(self, tmp_path):
        prior = TaskState(checkpoints={
            "v1.task.checkpoint.s1.k": CheckpointRecord(status="failed", reason="Error: nope"),
        })
        task = _task(prior)
        value = await _manager(task, tmp_path, prior_state=prior).checkpoint("k", lambda: "fresh")
        assert value == "fresh"
        assert task.state.checkpoints["v1.task.checkpoint.s1.k"].status == "success"

    @pytest.mark.asyncio
    async def test_other_step_record_is_not_replayed(self, tmp_path):
        prior = TaskState(checkpoints={
            "v1.task.checkpoint.s2.k": CheckpointRecord(status="success", value="other"),
        })
        value = await _manager(_task(prior), tmp_path, prior_state=prior).checkpoint("k", lambda: "mine")
        assert value == "mine"

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_reraised(self, tmp_path):
        task = _task()

        def explode():
            raise RuntimeError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            await _manager(task, tmp_path).checkpoint("k", explode)

        record = task.state.checkpoints["v1.task.checkpoint.s1.k"]
        assert record.status == "failed"
        assert record.reason == "RuntimeError: disk full"

    @pytest.mark.asyncio
    async def test_workspace_serialized_on_every_outcome(self, tmp_path):
        task = _task()
        (tmp_path / "file.txt").write_text("hi")
        manager = _manager(task, tmp_path)

        await manager.checkpoint("ok", lambda: 1)
        assert task.serialize_count == 1
        assert task.snapshot == {"file.txt": b"hi"}

        def explode():
            raise ValueError("x")

        with pytest.raises(ValueError):
            await manager.checkpoint("bad", explode)
        assert task.serialize_count == 2

    @pytest.mark.asyncio
    async def test_without_prior_state_always_runs(self, tmp_path):
        calls = []
        await _manager(_task(), tmp_path).checkpoint("k", lambda: calls.append(1))
        assert calls == [1]
