"""Per-step task logger.

Handlers log through ``ctx.logger``. Every record is stripped of secret
values, written to the root logger and forwarded to the task log with the
step id attached.
"""

import asyncio
import logging
from typing import Optional

from scaffolder.types import TaskStep

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Basic stderr logging for the CLI."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StepLogHandler(logging.Handler):
    """Redacts secrets, then forwards to the root logger and ``task.emit_log``."""

    def __init__(
        self,
        task,
        step_id: str,
        secrets: dict[str, str],
        root_logger: logging.Logger,
        placeholder: str = "***",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        super().__init__()
        self._task = task
        self._loop = loop or asyncio.get_running_loop()
        self._step_id = step_id
        self._root_logger = root_logger
        self._placeholder = placeholder
        # Longest first so a secret containing another secret is fully masked
        self._redactions = sorted({str(s) for s in secrets.values() if s}, key=len, reverse=True)
        self._pending: set[asyncio.Task] = set()
        self.setFormatter(logging.Formatter("%(message)s"))

    def redact(self, message: str) -> str:
        for secret in self._redactions:
            message = message.replace(secret, self._placeholder)
        return message

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.redact(self.format(record))
            self._root_logger.log(record.levelno, f"[{self._step_id}] {message}")
            if self._on_loop_thread():
                self._forward(message)
            else:
                # Records from worker threads (asyncio.to_thread) are handed back to the loop
                self._loop.call_soon_threadsafe(self._forward, message)
        except Exception:
            self.handleError(record)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _forward(self, message: str) -> None:
        pending = self._loop.create_task(self._task.emit_log(message, {"stepId": self._step_id}))
        self._pending.add(pending)
        pending.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every forwarded record has reached the task log."""
        while self._pending:
            batch = list(self._pending)
            self._pending.difference_update(batch)
            results = await asyncio.gather(*batch, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.warning(f"[StepLogger] Failed to forward log line for step {self._step_id}: {result}")


class StepLogger:
    """The logger handed to handlers, plus its forwarding handler."""

    def __init__(self, logger: logging.Logger, handler: StepLogHandler):
        self.logger = logger
        self.handler = handler

    async def drain(self) -> None:
        await self.handler.drain()


def create_step_logger(
    task,
    step: TaskStep,
    root_logger: Optional[logging.Logger] = None,
    level: str = "INFO",
    placeholder: str = "***",
) -> StepLogger:
    """Build a logger for one step of one task.

    The logger is not registered with the logging module, so it goes away
    with the step instead of accumulating per task id. Must be called on the
    event loop that runs the step.
    """
    step_logger = logging.Logger(f"scaffolder.step.{step.id}", level=level.upper())
    handler = StepLogHandler(
        task,
        step.id,
        task.secrets or {},
        root_logger or logging.getLogger("scaffolder.task"),
        placeholder=placeholder,
    )
    step_logger.addHandler(handler)
    return StepLogger(step_logger, handler)
