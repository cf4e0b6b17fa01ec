"""Pydantic schemas for cached tracker data.

The tracker API speaks camelCase JSON; models use snake_case attributes with
camelCase aliases. Unknown fields returned by the server are kept on the model
so cached copies round-trip everything the views render.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .models import Area, MemberRole, Priority, SprintStatus, TicketStatus, TicketType


class CamelModel(BaseModel):
    """Base model for camelCase wire payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the JSON shape the tracker API uses."""
        return self.model_dump(by_alias=True, mode="json")


# Work Item Schemas

class WorkItem(CamelModel):
    """A ticket as returned by the tracker API.

    ``container_id`` is the sprint the ticket belongs to; ``None`` means the
    unscheduled backlog.
    """

    id: str
    container_id: Optional[str] = Field(None, alias="sprintId")
    title: str = ""
    status: Optional[TicketStatus] = None
    type: Optional[TicketType] = None
    priority: Optional[Priority] = None
    area: Optional[Area] = None
    assignee_id: Optional[str] = None
    story_points: Optional[int] = None
    due_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TicketPatch(CamelModel):
    """Field-level patch for a ticket. Only explicitly set fields are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[TicketStatus] = None
    type: Optional[TicketType] = None
    priority: Optional[Priority] = None
    area: Optional[Area] = None
    assignee_id: Optional[str] = None
    story_points: Optional[int] = Field(None, ge=0)
    due_date: Optional[datetime] = None
    container_id: Optional[str] = Field(None, alias="sprintId")

    model_config = ConfigDict(extra="forbid")

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def local_update(self) -> dict[str, Any]:
        """Attribute updates to apply to a cached ``WorkItem``."""
        return self.model_dump(exclude_unset=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=True, mode="json")


# Container Schemas

class Container(CamelModel):
    """An ordered grouping of work items: a sprint, or the backlog when ``id`` is None.

    Positional order of ``items`` is the authoritative order.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    status: Optional[SprintStatus] = None
    items: list[WorkItem] = Field(default_factory=list, alias="tickets")

    @model_validator(mode="after")
    def check_membership(self) -> "Container":
        seen: set[str] = set()
        for item in self.items:
            if item.id in seen:
                raise ValueError(f"Duplicate item {item.id} in container {self.id or 'backlog'}")
            if item.container_id != self.id:
                raise ValueError(
                    f"Item {item.id} belongs to {item.container_id or 'backlog'}, "
                    f"not {self.id or 'backlog'}"
                )
            seen.add(item.id)
        return self

    @property
    def is_backlog(self) -> bool:
        return self.id is None

    @property
    def ordered_item_ids(self) -> list[str]:
        return [item.id for item in self.items]

    def index_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        return None

    def with_items(self, items: list[WorkItem]) -> "Container":
        return self.model_copy(update={"items": items})


class MemberUser(CamelModel):
    """User summary embedded in a project member."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class Member(CamelModel):
    """Project roster entry."""

    id: str
    role: Optional[MemberRole] = None
    user: Optional[MemberUser] = None


class BoardSnapshot(BaseModel):
    """Sprints, backlog and roster for one project, cached as a unit."""

    containers: list[Container] = Field(default_factory=list)
    backlog: Container = Field(default_factory=Container)
    members: list[Member] = Field(default_factory=list)

    def all_containers(self) -> list[Container]:
        return [*self.containers, self.backlog]

    def item_ids(self) -> list[str]:
        return [item_id for container in self.all_containers() for item_id in container.ordered_item_ids]

    def locate(self, item_id: str) -> Optional[Container]:
        """Return the container currently holding ``item_id``, or None."""
        for container in self.all_containers():
            if container.index_of(item_id) is not None:
                return container
        return None

    def find_item(self, item_id: str) -> Optional[WorkItem]:
        container = self.locate(item_id)
        if container is None:
            return None
        return container.items[container.index_of(item_id)]

    def with_order(self, container_id: Optional[str], ordered_ids: list[str]) -> "BoardSnapshot":
        """Return a copy with the given container's items arranged as ``ordered_ids``.

        Ids not present in the container are ignored, as are container items
        missing from ``ordered_ids``.
        """
        def reorder(container: Container) -> Container:
            by_id = {item.id: item for item in container.items}
            return container.with_items([by_id[i] for i in ordered_ids if i in by_id])

        return self._map_container(container_id, reorder)

    def replace_item(self, item: WorkItem) -> "BoardSnapshot":
        """Return a copy with ``item`` replacing the cached copy of the same id.

        When the new copy belongs to a different container, it is removed from
        the old one and appended to the end of the new one. If the new
        container is not on the board, the item leaves the board.
        """
        current = self.locate(item.id)
        if current is None:
            return self
        if current.id == item.container_id:
            index = current.index_of(item.id)
            items = list(current.items)
            items[index] = item
            return self._map_container(current.id, lambda c: c.with_items(items))

        moved = self._map_container(
            current.id, lambda c: c.with_items([i for i in c.items if i.id != item.id])
        )
        if not any(c.id == item.container_id for c in moved.all_containers()):
            return moved
        return moved._map_container(item.container_id, lambda c: c.with_items([*c.items, item]))

    def _map_container(self, container_id: Optional[str], fn) -> "BoardSnapshot":
        if container_id is None:
            return self.model_copy(update={"backlog": fn(self.backlog)})
        containers = [fn(c) if c.id == container_id else c for c in self.containers]
        return self.model_copy(update={"containers": containers})


# Ticket List Schemas

class Pagination(CamelModel):
    """Pagination block of a ticket list response."""

    page: int = 1
    limit: int = 50
    total: int = 0
    pages: int = 1


class TicketListPage(CamelModel):
    """One filtered, paginated page of tickets."""

    items: list[WorkItem] = Field(default_factory=list, alias="tickets")
    pagination: Pagination = Field(default_factory=Pagination)

    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]

    def find_item(self, item_id: str) -> Optional[WorkItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def replace_item(self, item: WorkItem) -> "TicketListPage":
        items = [item if existing.id == item.id else existing for existing in self.items]
        return self.model_copy(update={"items": items})


class TicketFilters(CamelModel):
    """Filters for a flat ticket list.

    The value ``"all"`` (and empty strings) mean "no filter", matching what the
    list view's filter bar sends.
    """

    search: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    assignee: Optional[str] = None
    sprint_id: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = Field(None, pattern="^(asc|desc)$")
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)

    model_config = ConfigDict(extra="forbid")

    def cache_params(self) -> dict[str, Any]:
        """Parameters that identify this query in the cache key."""
        return {k: v for k, v in self.model_dump(by_alias=True).items() if v is not None}

    def query_params(self) -> dict[str, str]:
        """Request parameters for the tickets endpoint."""
        params: dict[str, str] = {}
        for key, value in self.model_dump(by_alias=True).items():
            if value is None or value == "" or value == "all":
                continue
            if key == "assignee":
                key = "assigneeId"
            params[key] = str(value)
        return params
