"""Typed exception hierarchy. Every error the runner can raise."""


class ScaffolderError(Exception):
    """Base exception for all scaffolder errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class InvalidSpecError(ScaffolderError):
    """Task spec cannot be executed by this engine (e.g. unsupported apiVersion)."""
    pass


class InputError(ScaffolderError):
    """Step input could not be resolved or failed schema validation."""
    def __init__(self, message: str, errors: list = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []


class ActionNotFoundError(InputError):
    """Step references an action id that is not registered."""
    def __init__(self, message: str, action_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.action_id = action_id


class NotAllowedError(ScaffolderError):
    """The task's policy decision denies this action invocation."""
    def __init__(self, message: str, action_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.action_id = action_id


class TaskCancelledError(ScaffolderError):
    """Cancellation signal observed at a step boundary."""
    def __init__(self, message: str, step_id: str = "", task_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.step_id = step_id
        self.task_id = task_id


class TemplateRenderError(ScaffolderError):
    """A templated string could not be parsed or rendered.

    Raised by the renderer; the resolver recovers from it locally, so it
    never aborts a task on its own.
    """
    def __init__(self, message: str, template: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.template = template
