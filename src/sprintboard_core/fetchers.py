"""Read-through fetchers for cached collections.

Two variants share one flow: compute the cache key, serve a hit immediately,
otherwise read from the tracker API and write the typed result through to the
cache. Failed reads are surfaced in ``FetchResult.error`` and never cached.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .api_client import TrackerApiClient
from .cache import TTLCache
from .cache_keys import board_key, ticket_list_key
from .config import Settings
from .exceptions import NetworkFailure, PartialAssembly
from .schemas import BoardSnapshot, Container, TicketFilters, TicketListPage

logger = logging.getLogger("sprintboard.fetchers")

T = TypeVar("T")


@dataclass
class FetchResult(Generic[T]):
    """What a view renders: data, whether a read is in flight, and an error message."""

    data: Optional[T] = None
    loading: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _CollectionFetcher:
    """Shared hit/miss/commit flow; subclasses provide the reads."""

    def __init__(self, cache: TTLCache, client: TrackerApiClient, settings: Settings):
        self.cache = cache
        self.client = client
        self.settings = settings
        self._in_flight: dict[str, int] = {}

    def is_loading(self, key: str) -> bool:
        return self._in_flight.get(key, 0) > 0

    def _peek(self, key: str) -> FetchResult:
        return FetchResult(data=self.cache.get(key), loading=self.is_loading(key))

    async def _read_through(self, key: str, ttl: float, load, refresh: bool) -> FetchResult:
        if not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return FetchResult(data=cached)

        generation = self.cache.begin(key)
        self._in_flight[key] = self._in_flight.get(key, 0) + 1
        try:
            data = await load()
        except (PartialAssembly, NetworkFailure) as e:
            logger.warning(f"Fetch failed for {key}: {e}")
            return FetchResult(error=str(e))
        finally:
            self._in_flight[key] -= 1
            if not self._in_flight[key]:
                del self._in_flight[key]

        if not self.cache.set_if_current(key, data, ttl, generation):
            logger.info(f"Discarded stale fetch result for {key}")
        return FetchResult(data=data)


class BoardFetcher(_CollectionFetcher):
    """Container board fetcher: open sprints, backlog and roster for one project.

    The three reads are independent and issued in parallel. The snapshot is
    cached only if all three succeed.
    """

    def key(self, organization_id: str, project_id: str) -> str:
        return board_key(organization_id, project_id)

    def peek(self, organization_id: str, project_id: str) -> FetchResult[BoardSnapshot]:
        """Current cached state without triggering a read."""
        return self._peek(self.key(organization_id, project_id))

    async def fetch(
        self, organization_id: str, project_id: str, refresh: bool = False
    ) -> FetchResult[BoardSnapshot]:
        """Return the board snapshot, reading through the cache.

        Args:
            organization_id: Organization UUID
            project_id: Project UUID
            refresh: Skip the cache read (the result is still written through)
        """
        if not project_id:
            return FetchResult()
        return await self._read_through(
            self.key(organization_id, project_id),
            self.settings.ttl_long,
            lambda: self._assemble(organization_id, project_id),
            refresh,
        )

    async def _assemble(self, organization_id: str, project_id: str) -> BoardSnapshot:
        backlog_params = {
            "sprintId": "null",
            "limit": str(self.settings.backlog_page_limit),
            "sortBy": "updatedAt",
            "sortOrder": "asc",
        }
        results = await asyncio.gather(
            self.client.list_sprints(organization_id, project_id),
            self.client.list_tickets(organization_id, project_id, params=backlog_params),
            self.client.list_members(organization_id, project_id),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, NetworkFailure):
                raise failure
        if failures:
            raise PartialAssembly(
                f"Failed to fetch sprint backlog data ({len(failures)} of {len(results)} reads failed): "
                f"{failures[0]}",
                failures,
            )

        sprints, backlog_page, members = results
        return BoardSnapshot(
            containers=sprints,
            backlog=Container(items=backlog_page.items),
            members=members,
        )


class TicketListFetcher(_CollectionFetcher):
    """Flat list fetcher: one filtered, paginated page of tickets."""

    def key(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        filters: Optional[TicketFilters] = None,
    ) -> str:
        filters = filters or TicketFilters()
        return ticket_list_key(organization_id, project_id, filters.cache_params())

    def peek(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        filters: Optional[TicketFilters] = None,
    ) -> FetchResult[TicketListPage]:
        return self._peek(self.key(organization_id, project_id, filters))

    async def fetch(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        filters: Optional[TicketFilters] = None,
        refresh: bool = False,
    ) -> FetchResult[TicketListPage]:
        filters = filters or TicketFilters()
        return await self._read_through(
            self.key(organization_id, project_id, filters),
            self.settings.ttl_medium,
            lambda: self.client.list_tickets(
                organization_id, project_id, params=filters.query_params()
            ),
            refresh,
        )
