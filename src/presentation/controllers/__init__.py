"""
Controllers Package - Presentation Layer

This package contains FastAPI controllers (routers) that handle
HTTP requests and responses. Controllers are responsible for
input validation, error handling, and mapping between API DTOs
and application layer use cases.
"""

from .admin_controller import router as admin_router
from .demand_controller import router as demand_router
from .internal_controller import router as internal_router

__all__ = ["admin_router", "demand_router", "internal_router"]
