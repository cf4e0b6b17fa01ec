"""Sprintboard Core - client-side cache for sprint boards and ticket lists.

Modules:
- cache: key-addressed TTL cache with item index and generation guard
- fetchers: read-through board and ticket list fetchers
- mutator: optimistic ticket updates across cached views
- reorder: same-container drag reordering
- project_cache: composition root exposing the view-facing API
"""

__version__ = "1.0.0"

from .cache import TTLCache
from .exceptions import (
    CrossContainerMoveError,
    NetworkFailure,
    NotFound,
    PartialAssembly,
    SprintboardError,
)
from .fetchers import FetchResult
from .project_cache import ProjectCache
from .reorder import array_move

__all__ = [
    "CrossContainerMoveError",
    "FetchResult",
    "NetworkFailure",
    "NotFound",
    "PartialAssembly",
    "ProjectCache",
    "SprintboardError",
    "TTLCache",
    "array_move",
    "__version__",
]
