"""Composition root for the board cache engine.

``ProjectCache`` owns one cache instance and wires the fetchers, the
optimistic mutator and the reorder engine to it. Views talk only to this
object: fetch a collection, subscribe to its key, update or reorder tickets,
invalidate.
"""
import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any, Optional, Union

import httpx

from .api_client import TrackerApiClient
from .cache import TTLCache
from .cache_keys import board_key, key_belongs_to_project
from .config import Settings, get_settings
from .fetchers import BoardFetcher, FetchResult, TicketListFetcher
from .mutator import OptimisticMutator
from .reorder import ReorderEngine
from .schemas import BoardSnapshot, TicketFilters, TicketListPage, TicketPatch

logger = logging.getLogger("sprintboard.project_cache")


def index_item_ids(value: Any) -> list[str]:
    """Cache indexer: ticket ids contained in a cached collection."""
    if isinstance(value, (BoardSnapshot, TicketListPage)):
        return value.item_ids()
    return []


class BackgroundTasks:
    """Keeps references to fire-and-forget tasks until they finish."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until no background task is pending, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class ProjectCache:
    """View-facing API over the board and ticket list caches."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[TrackerApiClient] = None,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Build the engine.

        Args:
            settings: Settings (defaults to ``get_settings()``)
            client: API client (defaults to one built from settings)
            cache: Cache instance (defaults to a fresh, indexed ``TTLCache``)
            transport: httpx transport for the default client (tests)
            clock: Time source for the default cache (tests)
        """
        self.settings = settings or get_settings()
        self.client = client or TrackerApiClient.from_settings(self.settings, transport=transport)
        if cache is None:
            cache = TTLCache(indexer=index_item_ids, clock=clock or time.monotonic)
        self.cache = cache
        self.tasks = BackgroundTasks()

        self.boards = BoardFetcher(self.cache, self.client, self.settings)
        self.ticket_lists = TicketListFetcher(self.cache, self.client, self.settings)
        self.mutator = OptimisticMutator(self.cache, self.client, spawn=self.tasks.spawn)
        self.reorder_engine = ReorderEngine(
            self.cache,
            self.client,
            spawn=self.tasks.spawn,
            on_invalidate=self._refetch_board,
        )

    # ============================================================================
    # Reads
    # ============================================================================

    async def fetch_board(
        self, organization_id: str, project_id: str, refresh: bool = False
    ) -> FetchResult[BoardSnapshot]:
        return await self.boards.fetch(organization_id, project_id, refresh=refresh)

    async def fetch_ticket_list(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        filters: Optional[Union[TicketFilters, dict[str, Any]]] = None,
        refresh: bool = False,
    ) -> FetchResult[TicketListPage]:
        if isinstance(filters, dict):
            filters = TicketFilters.model_validate(filters)
        return await self.ticket_lists.fetch(organization_id, project_id, filters, refresh=refresh)

    def subscribe_board(
        self,
        organization_id: str,
        project_id: str,
        listener: Callable[[Optional[BoardSnapshot]], None],
    ) -> Callable[[], None]:
        """Call ``listener(snapshot)`` whenever the board changes (None after invalidation)."""
        return self.cache.subscribe(
            board_key(organization_id, project_id), lambda key, value: listener(value)
        )

    # ============================================================================
    # Writes
    # ============================================================================

    def update_in_cache(
        self,
        organization_id: str,
        ticket_id: str,
        patch: Union[TicketPatch, dict[str, Any]],
        can_edit: bool = True,
    ) -> Optional[asyncio.Task]:
        """Optimistically patch a ticket everywhere it is cached and persist it.

        ``can_edit`` is the caller's permission decision; when False nothing
        is touched.
        """
        if not can_edit:
            logger.warning(f"Refused update of ticket {ticket_id}: not permitted")
            return None
        return self.mutator.mutate(organization_id, ticket_id, patch)

    def reorder_in_cache(
        self,
        organization_id: str,
        project_id: str,
        moved_id: str,
        target_id: str,
        can_edit: bool = True,
    ) -> Optional[asyncio.Task]:
        """Reorder a ticket within its container and persist the order.

        Raises:
            CrossContainerMoveError: If the tickets are in different containers
        """
        if not can_edit:
            logger.warning(f"Refused reorder of ticket {moved_id}: not permitted")
            return None
        return self.reorder_engine.reorder(organization_id, project_id, moved_id, target_id)

    def move_to_container(
        self,
        organization_id: str,
        ticket_id: str,
        container_id: Optional[str],
        can_edit: bool = True,
    ) -> Optional[asyncio.Task]:
        """Move a ticket to another sprint (or the backlog with None) via a field patch.

        The ticket lands at the end of the destination; order is not preserved.
        """
        return self.update_in_cache(
            organization_id, ticket_id, TicketPatch(container_id=container_id), can_edit=can_edit
        )

    # ============================================================================
    # Invalidation
    # ============================================================================

    def invalidate(self, key: str) -> bool:
        return self.cache.invalidate(key)

    def invalidate_board(self, organization_id: str, project_id: str) -> bool:
        return self.cache.invalidate(board_key(organization_id, project_id))

    def clear_project(self, organization_id: str, project_id: str) -> list[str]:
        """Invalidate every cached collection of one project."""
        return self.cache.invalidate_matching(
            lambda key: key_belongs_to_project(key, organization_id, project_id)
        )

    def clear(self) -> None:
        self.cache.clear()

    # ============================================================================
    # Lifecycle
    # ============================================================================

    async def drain(self) -> None:
        """Wait for all background persistence and refetch work."""
        await self.tasks.drain()

    async def aclose(self) -> None:
        await self.drain()
        await self.client.aclose()

    async def __aenter__(self) -> "ProjectCache":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _refetch_board(self, organization_id: str, project_id: str) -> None:
        if not self.settings.refetch_on_failure:
            return
        logger.info(f"Scheduling board refetch for project {project_id}")
        self.tasks.spawn(self.boards.fetch(organization_id, project_id, refresh=True))
