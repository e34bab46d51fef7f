"""Version 1 API endpoints."""

from .endpoints import betting_router, system_router

__all__ = ["betting_router", "system_router"]
