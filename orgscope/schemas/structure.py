"""Structure and hierarchy tree schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator

from ..core.identifiers import check_uuid
from ..core.paths import level_name

MAX_NAME_LENGTH = 100


class StructureCreate(BaseModel):
    """Request body for creating a structure. Omit parent_id for a root."""
    name: str
    parent_id: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name must be {MAX_NAME_LENGTH} characters or less")
        return v

    @field_validator('parent_id')
    @classmethod
    def validate_parent_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        return check_uuid(v)

    model_config = {
        "json_schema_extra": {
            "examples": [{"name": "Engineering", "parent_id": "2f1c6b9e-8d0a-4c61-9e43-0a7b5d2c9f11"}]
        }
    }


class StructureSummary(BaseModel):
    """Compact structure reference embedded in other responses."""
    id: str
    name: str
    path: str
    level: int
    level_name: str
    parent_id: Optional[str] = None

    @classmethod
    def from_model(cls, structure) -> "StructureSummary":
        return cls(
            id=structure.id,
            name=structure.name,
            path=structure.path,
            level=structure.level,
            level_name=level_name(structure.level),
            parent_id=structure.parent_id,
        )


class StructureDetail(StructureSummary):
    depth: int
    created_at: datetime

    @classmethod
    def from_model(cls, structure) -> "StructureDetail":
        return cls(
            **StructureSummary.from_model(structure).model_dump(),
            depth=structure.level,
            created_at=structure.created_at,
        )


class HierarchyStats(BaseModel):
    max_level: int
    total_structures: int
    children_count: int


class StructureCreateResponse(BaseModel):
    structure: StructureDetail
    parent: Optional[StructureSummary] = None
    hierarchy: HierarchyStats


class TreeNode(BaseModel):
    """A structure with its direct children and a per-node user count."""
    id: str
    name: str
    level: int
    level_name: str
    path: str
    parent_id: Optional[str] = None
    user_count: int = 0
    children: List['TreeNode'] = []


class HierarchyMetadata(BaseModel):
    total_structures: int
    total_users: int
    max_depth: int
    level_counts: Dict[int, int]
    level_names: Dict[int, str]
    paths: List[str]


class HierarchyTreeResponse(BaseModel):
    tree: List[TreeNode]
    metadata: HierarchyMetadata
