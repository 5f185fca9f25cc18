"""Default template filters available to every task template.

    ${{ parameters.config | dump }}
    ${{ parameters.component | pick('metadata.name') }}
    ${{ parameters.owner | parseEntityRef({'defaultKind': 'group'}) }}
    ${{ parameters.repoUrl | projectSlug }}
"""

import json
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlsplit

from jinja2 import Undefined

from scaffolder.core.helpers import get_path

TemplateFilter = Callable[..., Any]


def dump(value: Any) -> str:
    """Serialize to JSON. Undefined values dump to the empty string."""
    if isinstance(value, Undefined):
        return ""
    return json.dumps(value)


def pick(obj: Any, key: str) -> Any:
    """Look up a dotted path (``a.b.0``) inside mappings and sequences."""
    return get_path(obj, key)


def parse_entity_ref(ref: str, context: Optional[dict] = None) -> dict[str, str]:
    """Split ``[kind:][namespace/]name`` into its parts.

    Raises:
        ValueError: if the ref is empty or has no kind and no default kind is given.
    """
    context = context or {}
    if not isinstance(ref, str) or not ref.strip():
        raise ValueError(f"Entity reference must be a non-empty string, got {ref!r}")

    kind: Optional[str] = None
    rest = ref.strip()
    if ":" in rest:
        kind, rest = rest.split(":", 1)
    namespace: Optional[str] = None
    if "/" in rest:
        namespace, rest = rest.split("/", 1)

    kind = kind or context.get("defaultKind")
    if not kind:
        raise ValueError(f"Entity reference '{ref}' had missing or empty kind")
    if not rest:
        raise ValueError(f"Entity reference '{ref}' had missing or empty name")

    return {
        "kind": kind,
        "namespace": namespace or context.get("defaultNamespace") or "default",
        "name": rest,
    }


def project_slug(repo_url: str) -> str:
    """``github.com?owner=acme&repo=web`` → ``acme/web``."""
    query = parse_qs(urlsplit(f"https://{repo_url}").query)
    owner = (query.get("owner") or query.get("organization") or query.get("workspace") or [""])[0]
    repo = (query.get("repo") or [""])[0]
    if not owner or not repo:
        raise ValueError(f"Invalid repo URL passed to projectSlug, got {repo_url!r}")
    return f"{owner}/{repo}"


def create_default_filters() -> dict[str, TemplateFilter]:
    return {
        "dump": dump,
        "pick": pick,
        "parseEntityRef": parse_entity_ref,
        "projectSlug": project_slug,
    }
