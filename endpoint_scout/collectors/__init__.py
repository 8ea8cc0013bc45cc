"""OS-facing collaborators: process lookup and connection snapshots."""

from .connections import query_established_tcp
from .processes import (
    AmbiguousProcessError,
    ProcessNotFoundError,
    ProcessResolutionError,
    find_processes,
    resolve_process,
)

__all__ = [
    "query_established_tcp",
    "resolve_process",
    "find_processes",
    "ProcessResolutionError",
    "ProcessNotFoundError",
    "AmbiguousProcessError",
]
