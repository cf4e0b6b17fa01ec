"""Cache key builders. Single place for key format.

A key is ``<collection>:<k1>:<v1>|<k2>:<v2>...`` with the pairs sorted by
parameter name, so the same logical query always maps to the same key no
matter the order its parameters were supplied in. ``None`` values are left
out of the key. Values are percent-encoded so a separator inside a value (a
free-text search, say) cannot collide with another query.
"""
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote

from .models import CollectionType

CACHE_KEY_SEP = "|"
CACHE_PAIR_SEP = ":"

ALL_PROJECTS = "all"


def cache_key(collection: Union[CollectionType, str], params: Mapping[str, Any]) -> str:
    """Build the cache key for a collection query.

    Args:
        collection: Collection type (key prefix)
        params: Query parameters identifying the collection

    Returns:
        Deterministic cache key
    """
    prefix = collection.value if isinstance(collection, CollectionType) else collection
    pairs = CACHE_KEY_SEP.join(
        f"{name}{CACHE_PAIR_SEP}{_encode(params[name])}"
        for name in sorted(params)
        if params[name] is not None
    )
    return f"{prefix}{CACHE_PAIR_SEP}{pairs}"


def board_key(organization_id: str, project_id: str) -> str:
    """Cache key for a project's sprint/backlog board snapshot."""
    return cache_key(
        CollectionType.SPRINT_BACKLOG,
        {"organizationId": organization_id, "projectId": project_id},
    )


def ticket_list_key(
    organization_id: str,
    project_id: Optional[str] = None,
    filters: Optional[Mapping[str, Any]] = None,
) -> str:
    """Cache key for a filtered ticket list; ``project_id=None`` means all projects."""
    params: dict[str, Any] = dict(filters or {})
    params["organizationId"] = organization_id
    params["projectId"] = project_id or ALL_PROJECTS
    return cache_key(CollectionType.TICKET_LIST, params)


def _encode(value: Any) -> str:
    return quote(str(value), safe="")


def key_belongs_to_project(key: str, organization_id: str, project_id: str) -> bool:
    """Return True if ``key`` was built for the given organization and project."""
    _, _, pairs = key.partition(CACHE_PAIR_SEP)
    fields = set(pairs.split(CACHE_KEY_SEP))
    return (
        f"organizationId{CACHE_PAIR_SEP}{_encode(organization_id)}" in fields
        and f"projectId{CACHE_PAIR_SEP}{_encode(project_id)}" in fields
    )
