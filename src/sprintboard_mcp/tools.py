"""MCP tool definitions for the sprint board cache."""

from mcp.types import Tool

from sprintboard_core.models import Priority, TicketStatus, TicketType

_STATUSES = [s.value for s in TicketStatus]
_TYPES = [t.value for t in TicketType]
_PRIORITIES = [p.value for p in Priority]


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for sprint board access."""
    return [
        # ============================================================================
        # Read Tools
        # ============================================================================
        Tool(
            name="get_board",
            description="Get the sprint board of a project: open sprints with their tickets in board order, "
                       "the unscheduled backlog, and the project team. "
                       "Served from cache when fresh; pass refresh=true to force a re-read.",
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {"type": "string", "description": "Organization UUID"},
                    "project_id": {"type": "string", "description": "Project UUID"},
                    "refresh": {"type": "boolean", "description": "Bypass the cache (default: false)"}
                },
                "required": ["organization_id", "project_id"]
            }
        ),
        Tool(
            name="list_tickets",
            description="List tickets with filtering and pagination. "
                       "Omit project_id to list across all projects of the organization. "
                       "Filter values of 'all' are ignored.",
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {"type": "string", "description": "Organization UUID"},
                    "project_id": {"type": "string", "description": "Project UUID (optional)"},
                    "search": {"type": "string", "description": "Search in title"},
                    "status": {"type": "string", "enum": _STATUSES + ["all"], "description": "Filter by status"},
                    "type": {"type": "string", "enum": _TYPES + ["all"], "description": "Filter by type"},
                    "priority": {"type": "string", "enum": _PRIORITIES + ["all"], "description": "Filter by priority"},
                    "assignee": {"type": "string", "description": "Filter by assignee user id"},
                    "sort_by": {"type": "string", "description": "Sort field (default: updatedAt)"},
                    "sort_order": {"type": "string", "enum": ["asc", "desc"], "description": "Sort direction"},
                    "page": {"type": "integer", "description": "Page number (default: 1)"},
                    "refresh": {"type": "boolean", "description": "Bypass the cache (default: false)"}
                },
                "required": ["organization_id"]
            }
        ),

        # ============================================================================
        # Write Tools
        # ============================================================================
        Tool(
            name="update_ticket",
            description="Update ticket fields. The change is applied to every cached view immediately "
                       "and saved in the background; if the save fails, cached views are dropped and re-read.",
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {"type": "string", "description": "Organization UUID"},
                    "ticket_id": {"type": "string", "description": "Ticket id"},
                    "title": {"type": "string"},
                    "status": {"type": "string", "enum": _STATUSES},
                    "type": {"type": "string", "enum": _TYPES},
                    "priority": {"type": "string", "enum": _PRIORITIES},
                    "assignee_id": {"type": ["string", "null"], "description": "User id, null to unassign"},
                    "story_points": {"type": ["integer", "null"]},
                    "due_date": {"type": ["string", "null"], "description": "ISO 8601 date"}
                },
                "required": ["organization_id", "ticket_id"]
            }
        ),
        Tool(
            name="reorder_tickets",
            description="Move a ticket to the position of another ticket in the same sprint or in the backlog "
                       "(drag and drop). Both tickets must be in the same container; "
                       "use move_ticket to change a ticket's sprint.",
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {"type": "string", "description": "Organization UUID"},
                    "project_id": {"type": "string", "description": "Project UUID"},
                    "ticket_id": {"type": "string", "description": "Ticket being moved"},
                    "target_ticket_id": {"type": "string", "description": "Ticket whose position it takes"}
                },
                "required": ["organization_id", "project_id", "ticket_id", "target_ticket_id"]
            }
        ),
        Tool(
            name="move_ticket",
            description="Move a ticket to another sprint, or to the backlog when sprint_id is null. "
                       "The ticket is placed at the end of the destination.",
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {"type": "string", "description": "Organization UUID"},
                    "ticket_id": {"type": "string", "description": "Ticket id"},
                    "sprint_id": {"type": ["string", "null"], "description": "Destination sprint id, null for backlog"}
                },
                "required": ["organization_id", "ticket_id", "sprint_id"]
            }
        ),
        Tool(
            name="invalidate_cache",
            description="Drop cached data for a project (board and ticket lists) so the next read goes to the server.",
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {"type": "string", "description": "Organization UUID"},
                    "project_id": {"type": "string", "description": "Project UUID"}
                },
                "required": ["organization_id", "project_id"]
            }
        ),
    ]
