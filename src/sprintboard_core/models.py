"""Domain enums for cached tracker data."""
import enum


class TicketType(str, enum.Enum):
    """Ticket type enum."""

    BUG = "BUG"
    TASK = "TASK"
    STORY = "STORY"
    EPIC = "EPIC"


class TicketStatus(str, enum.Enum):
    """Ticket workflow status enum.

    Lifecycle: TODO -> IN_PROGRESS -> IN_REVIEW -> READY_TO_DEPLOY -> REVIEW_PROD -> DONE
    ON_HOLD may be entered from any non-terminal state.
    """

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    ON_HOLD = "ON_HOLD"
    READY_TO_DEPLOY = "READY_TO_DEPLOY"
    REVIEW_PROD = "REVIEW_PROD"
    DONE = "DONE"


class Priority(str, enum.Enum):
    """Ticket priority enum."""

    HIGHEST = "HIGHEST"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    LOWEST = "LOWEST"


class Area(str, enum.Enum):
    """Ticket area enum."""

    DEVELOPMENT = "DEVELOPMENT"
    DESIGN = "DESIGN"
    PRODUCT = "PRODUCT"
    RESEARCH = "RESEARCH"


class SprintStatus(str, enum.Enum):
    """Sprint status enum. The sprints endpoint returns ACTIVE and PLANNED by default."""

    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class MemberRole(str, enum.Enum):
    """Project member role enum."""

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class CollectionType(str, enum.Enum):
    """Cached collection kinds; the value is the cache key prefix."""

    SPRINT_BACKLOG = "sprint-backlog"
    TICKET_LIST = "ticket-list"
