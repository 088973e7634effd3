"""User, UserPermission, and AuditLog models.

A UserPermission is a grant edge: the user may see the granted structure and
every structure below it. AuditLog records every state-changing operation.
"""

from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.identifiers import new_id
from ..database import Base


class User(Base):
    """A person in the organisation.

    ``role`` is a free-text job title, not an access level; visibility comes
    only from UserPermission rows. ``spirit_animal`` is a display tag.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_name", "name"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(Text, nullable=False)
    spirit_animal = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    permissions = relationship(
        "UserPermission",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class UserPermission(Base):
    """Grant of one structure (and its descendants) to one user.

    ``(user_id, structure_id)`` is unique: the constraint, not the
    service-level pre-check, is what prevents duplicate grants under
    concurrent writes.
    """

    __tablename__ = "user_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "structure_id", name="uq_user_permissions_user_structure"),
        Index("ix_user_permissions_user_id", "user_id"),
        Index("ix_user_permissions_structure_id", "structure_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    structure_id = Column(
        String(36),
        ForeignKey("organisation_structures.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="permissions")
    structure = relationship("OrganisationStructure", back_populates="permissions")


class AuditLog(Base):
    """Immutable record of state-changing operations.

    Written by the service layer inside the same transaction as the change.
    Fields:
        action        -- structure_create, user_create, grant_create,
                         grant_revoke, grants_replace
        resource_type -- structure, user, permission
        resource_id   -- ID of the affected resource
        details       -- JSON string with additional context
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
