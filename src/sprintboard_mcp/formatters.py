"""Formatting functions for tool responses."""
from sprintboard_core.schemas import BoardSnapshot, Container, Member, TicketListPage, WorkItem


def format_ticket_summary(ticket: WorkItem) -> str:
    """Format a ticket as a compact one-liner for list views."""
    type_emoji = {
        'BUG': '🐛',
        'TASK': '✅',
        'STORY': '📖',
        'EPIC': '📚',
    }.get(ticket.type or '', '📋')

    status = ticket.status or 'unknown'
    priority = ticket.priority or 'MEDIUM'
    title = ticket.title or '(untitled)'
    points = f" [{ticket.story_points} pts]" if ticket.story_points is not None else ""
    assignee = f" @{ticket.assignee_id}" if ticket.assignee_id else ""

    return f"{type_emoji} {ticket.id} {status}/{priority}: {title}{points}{assignee}"


def format_container(container: Container) -> str:
    """Format a sprint or the backlog with its tickets in board order."""
    if container.is_backlog:
        header = f"**Backlog** ({len(container.items)} items)"
    else:
        status_info = f" - {container.status}" if container.status else ""
        header = f"**{container.name or container.id}**{status_info} ({len(container.items)} items)\nID: {container.id}"

    if not container.items:
        return f"{header}\n  (empty)"

    lines = [f"  {position}. {format_ticket_summary(ticket)}" for position, ticket in enumerate(container.items, 1)]
    return header + "\n" + "\n".join(lines)


def format_member(member: Member) -> str:
    """Format a project member for display."""
    if member.user is None:
        return f"- Member {member.id}: {member.role or 'MEMBER'}"
    name = member.user.name or member.user.email or member.user.id
    email_info = f" <{member.user.email}>" if member.user.email and member.user.name else ""
    return f"- {name}{email_info}: {member.role or 'MEMBER'}"


def format_board(board: BoardSnapshot) -> str:
    """Format a full board snapshot: sprints, backlog, roster."""
    sections = [format_container(container) for container in board.containers]
    if not board.containers:
        sections.append("No open sprints.")
    sections.append(format_container(board.backlog))
    if board.members:
        sections.append("**Team**\n" + "\n".join(format_member(m) for m in board.members))
    return "\n\n".join(sections)


def format_ticket_list(page: TicketListPage) -> str:
    """Format one page of a filtered ticket list."""
    pagination = page.pagination
    if not page.items:
        return "No tickets found matching criteria."
    items_text = "\n".join(format_ticket_summary(ticket) for ticket in page.items)
    return f"Found {pagination.total} tickets (page {pagination.page} of {pagination.pages})\n\n{items_text}"
