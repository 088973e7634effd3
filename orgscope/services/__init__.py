"""Business logic services.

Services own transactions: repositories flush, services commit.
"""

from .access_service import AccessService
from .hierarchy_service import HierarchyService
from .permission_service import PermissionService
from .scope_service import AccessScope, ScopeResolver
from .user_service import UserService

__all__ = [
    "AccessScope",
    "AccessService",
    "HierarchyService",
    "PermissionService",
    "ScopeResolver",
    "UserService",
]
