"""Drag reordering of tickets inside one board container.

A drag-end event carries the dragged ticket and the ticket it was dropped
on. Both must sit in the same container (a sprint, or the backlog). The new
order is written to the cached board snapshot before any network call, then
persisted in the background. If persistence fails the snapshot is invalidated
and the board snaps back to whatever the server holds.

Moving a ticket to another container is a field change on the ticket, made
through ``OptimisticMutator`` by patching ``container_id``; it is not an
ordered move and the reorder path refuses it.
"""
import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, Optional, TypeVar

from .api_client import TrackerApiClient
from .cache import TTLCache
from .cache_keys import board_key
from .exceptions import CrossContainerMoveError, NetworkFailure, NotFound
from .schemas import BoardSnapshot

logger = logging.getLogger("sprintboard.reorder")

T = TypeVar("T")

Spawn = Callable[[Coroutine[Any, Any, Any]], asyncio.Task]


def array_move(items: list[T], old_index: int, new_index: int) -> list[T]:
    """Return a copy of ``items`` with the element at ``old_index`` moved to ``new_index``.

    One removal followed by one insertion, not a swap:
    ``array_move([A, B, C, D], 0, 2) == [B, C, A, D]``.
    """
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


class ReorderEngine:
    """Same-container reordering against the cached board snapshot."""

    def __init__(
        self,
        cache: TTLCache,
        client: TrackerApiClient,
        spawn: Optional[Spawn] = None,
        on_invalidate: Optional[Callable[[str, str], None]] = None,
    ):
        """
        Args:
            cache: Cache holding board snapshots
            client: Tracker API client used to persist the order
            spawn: Schedules background coroutines (defaults to ``asyncio.ensure_future``)
            on_invalidate: Called with ``(organization_id, project_id)`` after a
                failed persist invalidated the board, e.g. to schedule a refetch
        """
        self.cache = cache
        self.client = client
        self._spawn = spawn or asyncio.ensure_future
        self._on_invalidate = on_invalidate

    def reorder(
        self,
        organization_id: str,
        project_id: str,
        moved_id: str,
        target_id: str,
    ) -> Optional[asyncio.Task]:
        """Move ``moved_id`` to the position of ``target_id`` within their container.

        Returns:
            The background persistence task, or None when nothing changed
            (same id, unknown ids, or no cached board).

        Raises:
            CrossContainerMoveError: If the two tickets are in different containers
        """
        if moved_id == target_id:
            return None

        key = board_key(organization_id, project_id)
        snapshot: Optional[BoardSnapshot] = self.cache.get(key)
        if snapshot is None:
            logger.debug(f"Ignoring reorder of {moved_id}: no cached board for project {project_id}")
            return None

        try:
            source = self._locate(snapshot, moved_id)
            target = self._locate(snapshot, target_id)
        except NotFound as e:
            # Stale drag event after a refetch
            logger.debug(f"Ignoring reorder: {e}")
            return None

        if source.id != target.id:
            raise CrossContainerMoveError(moved_id, source.id, target.id)

        new_order = array_move(
            source.ordered_item_ids,
            source.index_of(moved_id),
            source.index_of(target_id),
        )
        self.cache.update(key, snapshot.with_order(source.id, new_order))
        logger.info(
            f"Reordered {moved_id} onto {target_id} in {source.id or 'backlog'} (project {project_id})"
        )
        return self._spawn(
            self._persist(organization_id, project_id, new_order, source.id)
        )

    @staticmethod
    def _locate(snapshot: BoardSnapshot, item_id: str):
        container = snapshot.locate(item_id)
        if container is None:
            raise NotFound(item_id)
        return container

    async def _persist(
        self,
        organization_id: str,
        project_id: str,
        new_order: list[str],
        container_id: Optional[str],
    ) -> bool:
        try:
            await self.client.reorder_tickets(organization_id, project_id, new_order, container_id)
        except NetworkFailure as e:
            logger.warning(
                f"Failed to save ticket order for project {project_id} ({e}); invalidating board"
            )
            self.cache.invalidate(board_key(organization_id, project_id))
            if self._on_invalidate is not None:
                self._on_invalidate(organization_id, project_id)
            return False
        return True
