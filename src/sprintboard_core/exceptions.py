"""Error taxonomy for the board cache engine.

Fetchers turn these into a user-facing ``error`` string. The mutator and the
reorder engine catch ``NetworkFailure`` and fall back to invalidation, so none
of these is fatal to the process.
"""
from typing import Optional


class SprintboardError(Exception):
    """Base class for all cache engine errors."""
    pass


class NetworkFailure(SprintboardError):
    """Raised when a request fails in transport or returns a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.url = url


class NotFound(SprintboardError):
    """Raised when an item id is absent from every known container."""

    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} is not in any cached container")
        self.item_id = item_id


class PartialAssembly(SprintboardError):
    """Raised when one of several parallel reads for a composite fetch failed."""

    def __init__(self, message: str, failures: list[BaseException]):
        super().__init__(message)
        self.failures = failures


class CrossContainerMoveError(SprintboardError, ValueError):
    """Raised when a reorder would move an item between two containers.

    Moving a ticket to another sprint or to the backlog is a field change on
    the ticket (``container_id``) and goes through the optimistic mutator.
    """

    def __init__(
        self,
        moved_id: str,
        source_container: Optional[str],
        target_container: Optional[str],
    ):
        source = source_container or "backlog"
        target = target_container or "backlog"
        super().__init__(
            f"Cannot reorder {moved_id} across containers ({source} -> {target}); "
            f"change its sprint instead"
        )
        self.moved_id = moved_id
        self.source_container = source_container
        self.target_container = target_container
