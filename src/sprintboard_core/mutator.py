"""Optimistic field-level ticket updates across every cached view.

A ticket can be cached in several places at once (the board snapshot, one or
more filtered lists). ``mutate`` patches all of them synchronously, then sends
the patch to the server in the background:

- success: every cached copy is replaced with the server's canonical ticket;
- failure: no field rollback, every affected key is invalidated so the next
  read fetches ground truth.
"""
import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, Optional, Union

from .api_client import TrackerApiClient
from .cache import TTLCache
from .exceptions import NetworkFailure
from .schemas import TicketPatch, WorkItem

logger = logging.getLogger("sprintboard.mutator")

Spawn = Callable[[Coroutine[Any, Any, Any]], asyncio.Task]


class OptimisticMutator:
    """Applies ticket patches to cached copies before the server confirms them."""

    def __init__(
        self,
        cache: TTLCache,
        client: TrackerApiClient,
        spawn: Optional[Spawn] = None,
    ):
        self.cache = cache
        self.client = client
        self._spawn = spawn or asyncio.ensure_future

    def mutate(
        self,
        organization_id: str,
        item_id: str,
        patch: Union[TicketPatch, dict[str, Any]],
    ) -> Optional[asyncio.Task]:
        """Patch every cached copy of ``item_id`` now and persist in the background.

        Args:
            organization_id: Organization owning the ticket
            item_id: Ticket id
            patch: Fields to change (``TicketPatch`` or a dict of its fields)

        Returns:
            The background persistence task (resolves to True on success), or
            None when the patch is empty.
        """
        if not isinstance(patch, TicketPatch):
            patch = TicketPatch.model_validate(patch)
        if patch.is_empty():
            return None

        update = patch.local_update()
        patched_keys = []
        for key in self.cache.keys_containing(item_id):
            value = self.cache.get(key)
            item = value.find_item(item_id) if value is not None else None
            if item is None:
                continue
            if self.cache.update(key, value.replace_item(item.model_copy(update=update))):
                patched_keys.append(key)

        logger.info(f"Optimistically patched ticket {item_id} in {len(patched_keys)} cached views")
        return self._spawn(self._persist(organization_id, item_id, patch, patched_keys))

    async def _persist(
        self,
        organization_id: str,
        item_id: str,
        patch: TicketPatch,
        patched_keys: list[str],
    ) -> bool:
        try:
            canonical = await self.client.update_ticket(organization_id, item_id, patch)
        except NetworkFailure as e:
            affected = sorted(set(patched_keys) | set(self.cache.keys_containing(item_id)))
            logger.warning(
                f"Update of ticket {item_id} failed ({e}); invalidating {len(affected)} cached views"
            )
            for key in affected:
                self.cache.invalidate(key)
            return False

        self.reconcile(canonical)
        return True

    def reconcile(self, canonical: WorkItem) -> list[str]:
        """Replace every cached copy of ``canonical.id`` with the server's version."""
        replaced = []
        for key in self.cache.keys_containing(canonical.id):
            value = self.cache.get(key)
            if value is not None and self.cache.update(key, value.replace_item(canonical)):
                replaced.append(key)
        return replaced
