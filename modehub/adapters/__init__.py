"""Adapters — executor bindings for external tools.

Public re-exports for convenient access.
"""

from modehub.adapters.base import Adapter, ExecutionContext
from modehub.adapters.mock import MockAdapter
from modehub.adapters.vcs.git import GitAdapter

__all__ = [
    "Adapter",
    "ExecutionContext",
    "GitAdapter",
    "MockAdapter",
]
