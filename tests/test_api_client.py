"""Tests for the tracker API client: every failure surfaces as NetworkFailure."""
import httpx
import pytest

from sprintboard_core.api_client import TrackerApiClient
from sprintboard_core.exceptions import NetworkFailure
from sprintboard_core.schemas import TicketPatch

from conftest import BASE_URL, ORG, PROJECT


def _client(reply) -> TrackerApiClient:
    return TrackerApiClient(BASE_URL, token="secret", transport=httpx.MockTransport(reply))


class TestRequests:
    """Headers and payloads."""

    @pytest.mark.asyncio
    async def test_bearer_token_is_sent(self):
        seen = []

        def reply(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        async with _client(reply) as client:
            assert await client.list_members(ORG, PROJECT) == []
        assert seen[0].headers["Authorization"] == "Bearer secret"


class TestErrorMapping:
    """Transport errors, error statuses and unusable bodies."""

    @pytest.mark.asyncio
    async def test_error_status_carries_server_detail(self):
        async with _client(lambda r: httpx.Response(403, json={"error": "Forbidden"})) as client:
            with pytest.raises(NetworkFailure) as excinfo:
                await client.list_sprints(ORG, PROJECT)
        assert excinfo.value.status_code == 403
        assert "Forbidden" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def reply(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(reply) as client:
            with pytest.raises(NetworkFailure, match="connection failed"):
                await client.list_members(ORG, PROJECT)

    @pytest.mark.asyncio
    async def test_non_json_success_body(self):
        async with _client(lambda r: httpx.Response(200, text="<html>Bad gateway</html>")) as client:
            with pytest.raises(NetworkFailure, match="not JSON") as excinfo:
                await client.reorder_tickets(ORG, PROJECT, ["t-a"], None)
        assert excinfo.value.status_code == 200

    @pytest.mark.asyncio
    async def test_ticket_outside_schema(self):
        body = {"id": "t-a", "sprintId": None, "status": "BLOCKED"}
        async with _client(lambda r: httpx.Response(200, json=body)) as client:
            with pytest.raises(NetworkFailure, match="unexpected payload"):
                await client.update_ticket(ORG, "t-a", TicketPatch(title="x"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"sprints": []}, [{"id": "s-1", "tickets": [{"id": "t-a", "sprintId": "s-9"}]}]])
    async def test_sprint_list_outside_schema(self, body):
        async with _client(lambda r: httpx.Response(200, json=body)) as client:
            with pytest.raises(NetworkFailure, match="unexpected payload"):
                await client.list_sprints(ORG, PROJECT)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
