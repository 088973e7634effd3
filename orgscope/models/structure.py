"""Organisational structure model."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.identifiers import new_id
from ..database import Base


class OrganisationStructure(Base):
    """A node in the organisation tree (Company -> Division -> Department -> Team).

    ``path`` is the materialised ancestry (``acme/eng/frontend``): the parent's
    path plus this node's slug. It is globally unique, and descendant queries
    are ``LIKE 'path/%'`` prefix searches served by ``ix_structures_path``.
    Nodes are append-only; nothing rewrites ``path`` after creation.
    """

    __tablename__ = "organisation_structures"
    __table_args__ = (
        Index("ix_structures_parent_id", "parent_id"),
        Index("ix_structures_level", "level"),
        Index("ix_structures_path", "path", unique=True),
        Index("ix_structures_level_path", "level", "path"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)

    # 0 = Company, 1 = Division, 2 = Department, 3 = Team, 4+ = "Level N"
    level = Column(Integer, nullable=False)
    parent_id = Column(
        String(36),
        ForeignKey("organisation_structures.id", ondelete="CASCADE"),
        nullable=True,
    )
    path = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    parent = relationship("OrganisationStructure", remote_side=[id])
    permissions = relationship(
        "UserPermission",
        back_populates="structure",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
