"""MCP tool handlers.

All handlers follow a consistent pattern:
- Accept: arguments dict, the shared ProjectCache, and Settings
- Return: list[TextContent]
- Use formatters for consistent output
- Log all operations for debugging

The permission decision handed to the engine (``can_edit``) comes from
``settings.read_only``; the engine itself does not authorize.
"""
import logging
from typing import Optional

from mcp.types import TextContent

from sprintboard_core.config import Settings
from sprintboard_core.exceptions import CrossContainerMoveError
from sprintboard_core.project_cache import ProjectCache
from sprintboard_core.schemas import TicketFilters, TicketPatch

from . import formatters

logger = logging.getLogger("sprintboard-mcp.handlers")

_FILTER_FIELDS = ("search", "status", "type", "priority", "assignee", "sort_by", "sort_order", "page")
_PATCH_FIELDS = ("title", "status", "type", "priority", "assignee_id", "story_points", "due_date")


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _save_outcome(saved: Optional[bool]) -> str:
    if saved:
        return "Saved."
    return "Save failed; cached views were dropped and will be re-read from the server."


# ============================================================================
# Read Handlers
# ============================================================================

async def handle_get_board(
    arguments: dict,
    project_cache: ProjectCache,
    settings: Settings,
) -> list[TextContent]:
    """Get the sprint board (sprints, backlog, team) of a project."""
    result = await project_cache.fetch_board(
        arguments["organization_id"],
        arguments["project_id"],
        refresh=bool(arguments.get("refresh", False)),
    )
    if result.error:
        return _text(f"Error: {result.error}")
    if result.data is None:
        return _text("No board data.")

    board = result.data
    logger.info(
        f"Served board for project {arguments['project_id']}: "
        f"{len(board.containers)} sprints, {len(board.backlog.items)} backlog tickets"
    )
    return _text(formatters.format_board(board))


async def handle_list_tickets(
    arguments: dict,
    project_cache: ProjectCache,
    settings: Settings,
) -> list[TextContent]:
    """List tickets with filtering and pagination."""
    filters = TicketFilters(**{k: arguments[k] for k in _FILTER_FIELDS if arguments.get(k) is not None})
    result = await project_cache.fetch_ticket_list(
        arguments["organization_id"],
        arguments.get("project_id"),
        filters,
        refresh=bool(arguments.get("refresh", False)),
    )
    if result.error:
        return _text(f"Error: {result.error}")
    return _text(formatters.format_ticket_list(result.data))


# ============================================================================
# Write Handlers
# ============================================================================

async def handle_update_ticket(
    arguments: dict,
    project_cache: ProjectCache,
    settings: Settings,
) -> list[TextContent]:
    """Update ticket fields optimistically and report whether the save went through."""
    ticket_id = arguments["ticket_id"]
    patch = TicketPatch(**{k: arguments[k] for k in _PATCH_FIELDS if k in arguments})
    if patch.is_empty():
        return _text("Nothing to update: provide at least one field.")

    task = project_cache.update_in_cache(
        arguments["organization_id"], ticket_id, patch, can_edit=not settings.read_only
    )
    if task is None:
        return _text("Error: updates are disabled (read-only mode).")

    saved = await task
    fields = ", ".join(sorted(patch.model_fields_set))
    return _text(f"Updated ticket {ticket_id} ({fields}). {_save_outcome(saved)}")


async def handle_reorder_tickets(
    arguments: dict,
    project_cache: ProjectCache,
    settings: Settings,
) -> list[TextContent]:
    """Move a ticket onto another ticket's position within one container."""
    organization_id = arguments["organization_id"]
    project_id = arguments["project_id"]
    ticket_id = arguments["ticket_id"]
    target_id = arguments["target_ticket_id"]

    if settings.read_only:
        return _text("Error: reordering is disabled (read-only mode).")

    # The engine only reorders a cached board
    loaded = await project_cache.fetch_board(organization_id, project_id)
    if loaded.error:
        return _text(f"Error: {loaded.error}")

    try:
        task = project_cache.reorder_in_cache(organization_id, project_id, ticket_id, target_id)
    except CrossContainerMoveError as e:
        logger.info(f"Rejected cross-container reorder: {e}")
        return _text(f"Error: {e}. Use move_ticket to change its sprint.")

    if task is None:
        return _text(f"No change: {ticket_id} and {target_id} are the same ticket or not on the board.")

    saved = await task
    board = project_cache.boards.peek(organization_id, project_id).data
    container = board.locate(ticket_id) if board else None
    order_text = f"\n\n{formatters.format_container(container)}" if container else ""
    return _text(f"Moved {ticket_id} to the position of {target_id}. {_save_outcome(saved)}{order_text}")


async def handle_move_ticket(
    arguments: dict,
    project_cache: ProjectCache,
    settings: Settings,
) -> list[TextContent]:
    """Move a ticket to another sprint or to the backlog."""
    ticket_id = arguments["ticket_id"]
    sprint_id = arguments.get("sprint_id")
    task = project_cache.move_to_container(
        arguments["organization_id"], ticket_id, sprint_id, can_edit=not settings.read_only
    )
    if task is None:
        return _text("Error: updates are disabled (read-only mode).")

    saved = await task
    return _text(f"Moved ticket {ticket_id} to {sprint_id or 'the backlog'}. {_save_outcome(saved)}")


async def handle_invalidate_cache(
    arguments: dict,
    project_cache: ProjectCache,
    settings: Settings,
) -> list[TextContent]:
    """Drop every cached collection of a project."""
    keys = project_cache.clear_project(arguments["organization_id"], arguments["project_id"])
    logger.info(f"Invalidated {len(keys)} cached collections for project {arguments['project_id']}")
    return _text(f"Invalidated {len(keys)} cached collections.")


HANDLERS = {
    "get_board": handle_get_board,
    "list_tickets": handle_list_tickets,
    "update_ticket": handle_update_ticket,
    "reorder_tickets": handle_reorder_tickets,
    "move_ticket": handle_move_ticket,
    "invalidate_cache": handle_invalidate_cache,
}
