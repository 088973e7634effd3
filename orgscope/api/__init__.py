"""API routes."""

from .audit import router as audit_router
from .permissions import router as permissions_router
from .structures import router as hierarchy_router
from .users import router as users_router

__all__ = [
    "audit_router",
    "hierarchy_router",
    "permissions_router",
    "users_router",
]
