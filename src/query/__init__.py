"""Read-only query interface for presentation layers."""

from .interface import NotFoundError, ScopeQuery

__all__ = ["NotFoundError", "ScopeQuery"]
