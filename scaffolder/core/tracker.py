"""Counts and times tasks and steps; emits task log lines at every transition.

The tracker only observes. Nothing it does changes how a task runs.

Metrics:
    scaffolder.task.count      counter    template, user, result
    scaffolder.task.duration   histogram  template, user, result (seconds)
    scaffolder.step.count      counter    template, step, result
    scaffolder.step.duration   histogram  template, step, result (seconds)
"""

import json
import logging
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, runtime_checkable

from scaffolder.types import LogStatus, TaskStep, TrackResult

audit_logger = logging.getLogger("scaffolder.audit")

TASK_COUNT = "scaffolder.task.count"
TASK_DURATION = "scaffolder.task.duration"
STEP_COUNT = "scaffolder.step.count"
STEP_DURATION = "scaffolder.step.duration"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _audit(event: str, **fields: Any) -> None:
    audit_logger.info(json.dumps({"event": event, "ts": _now(), **fields}, default=str))


@runtime_checkable
class MetricsSink(Protocol):
    """Metrics backend. Labels are plain string mappings."""

    def increment(self, name: str, labels: dict[str, str], value: float = 1) -> None:
        ...

    def observe(self, name: str, value: float, labels: dict[str, str]) -> None:
        ...


class InMemoryMetrics:
    """Process-local metrics sink. Good enough for the CLI and tests."""

    def __init__(self):
        self._counters: dict[tuple[str, tuple], float] = {}
        self._histograms: dict[tuple[str, tuple], list[float]] = {}

    def increment(self, name: str, labels: dict[str, str], value: float = 1) -> None:
        key = (name, tuple(sorted(labels.items())))
        self._counters[key] = self._counters.get(key, 0) + value

    def observe(self, name: str, value: float, labels: dict[str, str]) -> None:
        key = (name, tuple(sorted(labels.items())))
        self._histograms.setdefault(key, []).append(value)

    def count(self, name: str, **labels: str) -> float:
        """Sum of a counter over every label set containing ``labels``."""
        return sum(
            value for (metric, label_set), value in self._counters.items()
            if metric == name and set(labels.items()) <= set(label_set)
        )

    def observations(self, name: str, **labels: str) -> list[float]:
        found: list[float] = []
        for (metric, label_set), values in self._histograms.items():
            if metric == name and set(labels.items()) <= set(label_set):
                found.extend(values)
        return found


class TaskTrack:
    """Handle returned by ``Tracker.task_start``."""

    def __init__(self, task, metrics: MetricsSink, template: str, user: str):
        self._task = task
        self._metrics = metrics
        self._template = template
        self._user = user
        self._started = time.monotonic()

    def _record(self, result: TrackResult) -> None:
        labels = {"template": self._template, "user": self._user, "result": result.value}
        self._metrics.increment(TASK_COUNT, labels)
        self._metrics.observe(TASK_DURATION, time.monotonic() - self._started, labels)
        _audit("task_finished", task_id=self._task.task_id, template=self._template, result=result.value)

    async def skip_dry_run(self, step: TaskStep, action) -> None:
        await self._task.emit_log(
            f"Skipping because {action.id} does not support dry-run",
            {"stepId": step.id, "status": LogStatus.SKIPPED.value},
        )

    async def mark_successful(self) -> None:
        self._record(TrackResult.OK)

    async def mark_failed(self, step: TaskStep, err: BaseException) -> None:
        stack = "".join(traceback.format_exception(type(err), err, err.__traceback__))
        await self._task.emit_log(stack, {"stepId": step.id, "status": LogStatus.FAILED.value})
        self._record(TrackResult.FAILED)

    async def mark_cancelled(self, step: TaskStep) -> None:
        await self._task.emit_log(
            f"Step {step.id} has been cancelled.",
            {"stepId": step.id, "status": LogStatus.CANCELLED.value},
        )
        self._record(TrackResult.CANCELLED)


class StepTrack:
    """Handle returned by ``Tracker.step_start``."""

    def __init__(self, task, step: TaskStep, metrics: MetricsSink, template: str):
        self._task = task
        self._step = step
        self._metrics = metrics
        self._template = template
        self._started = time.monotonic()

    def _record(self, result: TrackResult) -> None:
        labels = {"template": self._template, "step": self._step.name, "result": result.value}
        self._metrics.increment(STEP_COUNT, labels)
        self._metrics.observe(STEP_DURATION, time.monotonic() - self._started, labels)
        _audit("step_finished", task_id=self._task.task_id, step_id=self._step.id, result=result.value)

    async def mark_successful(self) -> None:
        await self._task.emit_log(
            f"Finished step {self._step.name}",
            {"stepId": self._step.id, "status": LogStatus.COMPLETED.value},
        )
        self._record(TrackResult.OK)

    async def mark_failed(self) -> None:
        self._record(TrackResult.FAILED)

    async def mark_cancelled(self) -> None:
        self._record(TrackResult.CANCELLED)

    async def skip_falsy(self) -> None:
        await self._task.emit_log(
            f"Skipping step {self._step.id} because its if condition was false",
            {"stepId": self._step.id, "status": LogStatus.SKIPPED.value},
        )
        self._record(TrackResult.SKIPPED)

    async def skip_dry_run(self) -> None:
        self._record(TrackResult.SKIPPED)


class Tracker:
    """Entry point used by the runner: one TaskTrack per task, one StepTrack per step."""

    def __init__(self, metrics: Optional[MetricsSink] = None):
        self.metrics = metrics if metrics is not None else InMemoryMetrics()

    async def task_start(self, task) -> TaskTrack:
        spec = task.spec
        await task.emit_log(f"Starting up task with {len(spec.steps)} steps")
        template = spec.template_info.entity_ref if spec.template_info else ""
        user = (spec.user.ref if spec.user else None) or ""
        _audit("task_started", task_id=task.task_id, template=template, steps=len(spec.steps))
        return TaskTrack(task, self.metrics, template, user)

    async def step_start(self, task, step: TaskStep) -> StepTrack:
        await task.emit_log(
            f"Beginning step {step.name}",
            {"stepId": step.id, "status": LogStatus.PROCESSING.value},
        )
        spec = task.spec
        template = spec.template_info.entity_ref if spec.template_info else ""
        _audit("step_started", task_id=task.task_id, step_id=step.id, action=step.action)
        return StepTrack(task, step, self.metrics, template)
