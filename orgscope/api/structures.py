"""Hierarchy API: structure creation and the organisation tree."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.structure import HierarchyTreeResponse, StructureCreate, StructureCreateResponse
from ..services.hierarchy_service import HierarchyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hierarchy", tags=["hierarchy"])


@router.post("/structures", response_model=StructureCreateResponse, status_code=201)
def create_structure(data: StructureCreate, db: Session = Depends(get_db)):
    """Create a structure at the root, or under ``parent_id``."""
    return HierarchyService(db).create_structure(data)


@router.get("/tree", response_model=HierarchyTreeResponse)
def get_hierarchy_tree(db: Session = Depends(get_db)):
    """The whole organisation with per-structure grant counts."""
    return HierarchyService(db).get_hierarchy_tree()
