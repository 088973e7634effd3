"""Data access repositories."""

from .base import BaseRepository
from .structure_repository import StructureRepository
from .user_repository import UserRepository
from .permission_repository import PermissionRepository

__all__ = [
    "BaseRepository",
    "StructureRepository",
    "UserRepository",
    "PermissionRepository",
]
