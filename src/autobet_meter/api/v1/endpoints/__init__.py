"""API endpoint modules for version 1."""

from .betting import router as betting_router
from .system import router as system_router

__all__ = ["betting_router", "system_router"]
