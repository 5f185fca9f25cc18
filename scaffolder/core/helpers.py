"""Small pure helpers shared by the step runner, policy rules and filters."""

from typing import Any

_MISSING = object()


def is_truthy(value: Any) -> bool:
    """Truthiness of a rendered ``if`` condition.

    Falsy: None (absent), False, 0, "", "false", empty list or mapping.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != "" and value.strip().lower() != "false"
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return bool(value)


def generate_example_output(schema: dict[str, Any]) -> Any:
    """Build a placeholder value shaped like ``schema``.

    Used as the output of steps skipped during a dry run, so later steps can
    still template against something with the right structure.
    """
    examples = schema.get("examples")
    if isinstance(examples, list) and examples:
        return examples[0]

    schema_type = schema.get("type")
    if schema_type == "object":
        return {
            key: generate_example_output(sub_schema)
            for key, sub_schema in (schema.get("properties") or {}).items()
        }
    if schema_type == "array":
        items = schema.get("items")
        if isinstance(items, list):
            items = items[0] if items else None
        if isinstance(items, dict):
            return [generate_example_output(items)]
        return []
    if schema_type == "string":
        return "<example>"
    if schema_type in ("number", "integer"):
        return 0
    if schema_type == "boolean":
        return False
    return "<unknown>"


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted path (``a.b.0``) through mappings and sequences."""
    current = obj
    for part in str(path).split("."):
        if isinstance(current, dict):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default
    return current


def has_path(obj: Any, path: str) -> bool:
    return get_path(obj, path, _MISSING) is not _MISSING
