"""Async client for the tracker API endpoints the board cache depends on.

Only reads that feed cached collections and the two write endpoints the
engine persists through are covered here; everything else belongs to the CRUD
layer. Every failure is raised as ``NetworkFailure``: transport errors, non-2xx
responses, and 2xx responses whose body is not JSON or does not match the
expected schema.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from .config import Settings
from .exceptions import NetworkFailure
from .schemas import Container, Member, TicketListPage, TicketPatch, WorkItem

logger = logging.getLogger("sprintboard.api")

_SPRINT_LIST = TypeAdapter(list[Container])
_MEMBER_LIST = TypeAdapter(list[Member])


class TrackerApiClient:
    """Thin typed wrapper around ``httpx.AsyncClient``.

    The client is long-lived: background persistence tasks outlive the call
    that scheduled them, so the underlying connection pool is shared for the
    lifetime of the owning ``ProjectCache``. Call ``aclose()`` on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "TrackerApiClient":
        token = settings.api_token.get_secret_value() if settings.api_token else None
        return cls(
            base_url=settings.api_base_url,
            token=token,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TrackerApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ============================================================================
    # Reads
    # ============================================================================

    async def list_sprints(self, organization_id: str, project_id: str) -> list[Container]:
        """GET the project's open sprints with their tickets embedded in position order."""
        path = f"/organizations/{organization_id}/projects/{project_id}/sprints"
        data = await self._request("GET", path)
        sprints = _parse(_SPRINT_LIST.validate_python, data, "GET", path)
        logger.info(f"Fetched {len(sprints)} sprints for project {project_id}")
        return sprints

    async def list_tickets(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        params: Optional[dict[str, str]] = None,
    ) -> TicketListPage:
        """GET a filtered ticket page, project-scoped when ``project_id`` is given."""
        if project_id:
            path = f"/organizations/{organization_id}/projects/{project_id}/tickets"
        else:
            path = f"/organizations/{organization_id}/tickets"
        data = await self._request("GET", path, params=params or {})
        page = _parse(TicketListPage.model_validate, data, "GET", path)
        logger.info(f"Fetched {len(page.items)} tickets from {path}")
        return page

    async def list_members(self, organization_id: str, project_id: str) -> list[Member]:
        """GET the project roster."""
        path = f"/organizations/{organization_id}/projects/{project_id}/members"
        data = await self._request("GET", path)
        return _parse(_MEMBER_LIST.validate_python, data, "GET", path)

    # ============================================================================
    # Writes
    # ============================================================================

    async def update_ticket(
        self, organization_id: str, ticket_id: str, patch: TicketPatch
    ) -> WorkItem:
        """PATCH a ticket and return the server's canonical copy."""
        path = f"/organizations/{organization_id}/tickets/{ticket_id}"
        data = await self._request("PATCH", path, json=patch.to_wire())
        ticket = _parse(WorkItem.model_validate, data, "PATCH", path)
        logger.info(f"Updated ticket {ticket_id}: {sorted(patch.model_fields_set)}")
        return ticket

    async def reorder_tickets(
        self,
        organization_id: str,
        project_id: str,
        ticket_ids: list[str],
        container_id: Optional[str],
    ) -> None:
        """POST the explicit order of one container (``container_id=None`` for backlog)."""
        await self._request(
            "POST",
            f"/organizations/{organization_id}/projects/{project_id}/tickets/reorder",
            json={"ticketIds": ticket_ids, "sprintId": container_id},
        )
        logger.info(
            f"Persisted order of {len(ticket_ids)} tickets in {container_id or 'backlog'}"
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(f"HTTP error during {method} {path}:")
            logger.error(f"  Status: {e.response.status_code}")
            logger.error(f"  Detail: {detail}")
            raise NetworkFailure(
                f"{method} {path} failed with {e.response.status_code}: {detail}",
                status_code=e.response.status_code,
                method=method,
                url=str(e.request.url),
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Request error during {method} {path}:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Error message: {str(e)}")
            raise NetworkFailure(
                f"{method} {path} failed: connection failed - {str(e)}",
                method=method,
                url=path,
            ) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Unreadable response body from {method} {path}: {e}")
            raise NetworkFailure(
                f"{method} {path} returned a body that is not JSON",
                status_code=response.status_code,
                method=method,
                url=path,
            ) from e


def _parse(validate, data: Any, method: str, path: str) -> Any:
    """Validate a response payload, raising ``NetworkFailure`` when it does not fit the schema."""
    try:
        return validate(data)
    except ValidationError as e:
        logger.error(f"Unexpected payload from {method} {path}: {e.error_count()} validation errors")
        raise NetworkFailure(
            f"{method} {path} returned an unexpected payload: {e}",
            method=method,
            url=path,
        ) from e


def _error_detail(response: httpx.Response) -> str:
    """Extract the server's error message (``error`` or ``detail``) from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)
