"""Database models."""

from .structure import OrganisationStructure
from .user import User, UserPermission, AuditLog

__all__ = [
    "OrganisationStructure",
    "User", "UserPermission", "AuditLog",
]
