"""Application configuration. All env vars defined here with defaults."""

import os
import tempfile

from pydantic import Field
from pydantic_settings import BaseSettings


def _default_working_directory() -> str:
    return os.path.join(tempfile.gettempdir(), "scaffolder")


class ScaffolderConfig(BaseSettings):
    # ── Workspace ──
    working_directory: str = Field(default_factory=_default_working_directory)
    preserve_workspace: bool = False            # keep <working_directory>/<task id> after the task exits

    # ── Task specs ──
    supported_api_versions: list[str] = ["scaffolder.backstage.io/v1beta3"]

    # ── Checkpoints ──
    checkpoint_version: str = "v1"              # first component of every checkpoint key

    # ── Logging ──
    log_level: str = "INFO"
    redaction_placeholder: str = "***"

    model_config = {"env_prefix": "SCAFFOLDER_", "env_file": ".env", "extra": "ignore"}


config = ScaffolderConfig()
