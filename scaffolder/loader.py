"""Load task files (YAML or JSON) and ``key=value`` CLI pairs."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from scaffolder.exceptions import InvalidSpecError
from scaffolder.types import TaskSpec


def load_task_spec(path: Path) -> TaskSpec:
    """Read a task file into a TaskSpec.

    JSON is a subset of YAML, so both go through ``yaml.safe_load``.

    Raises:
        FileNotFoundError: if ``path`` does not exist
        InvalidSpecError: if the file is not a mapping or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Task file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise InvalidSpecError(f"Task file {path} is not valid YAML/JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise InvalidSpecError(f"Task file {path} must contain a mapping at the top level")

    try:
        return TaskSpec.model_validate(raw)
    except ValidationError as exc:
        raise InvalidSpecError(
            f"Task file {path} is not a valid task spec: {exc}",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def parse_pairs(pairs: list[str], typed: bool = True) -> dict[str, Any]:
    """``["name=web", "replicas=3"]`` → ``{"name": "web", "replicas": 3}``.

    With ``typed`` values are parsed as YAML scalars, so numbers and booleans
    keep their type; otherwise they stay strings.

    Raises:
        ValueError: on an entry without ``=``
    """
    parsed: dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got '{pair}'")
        key, _, value = pair.partition("=")
        parsed[key.strip()] = yaml.safe_load(value) if typed and value else value
    return parsed
