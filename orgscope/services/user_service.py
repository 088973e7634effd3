"""User directory: create, list and search users."""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import EmailAlreadyExistsError
from ..models.user import User
from ..repositories.user_repository import UserRepository
from ..schemas.user import UserCreate
from . import audit_service
from .access_service import clamp_limit, normalize_search_query

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def get_user(self, user_id: str) -> User:
        return self.user_repo.get_by_id(user_id)

    def list_users(self) -> List[User]:
        return self.user_repo.list_all()

    def create_user(self, data: UserCreate) -> User:
        """Create a user; email addresses are unique (compared lowercased)."""
        if self.user_repo.get_by_email(data.email) is not None:
            raise EmailAlreadyExistsError(data.email)

        user = User(
            name=data.name,
            email=data.email,
            role=data.role,
            spirit_animal=data.spirit_animal,
        )
        try:
            self.user_repo.insert(user)
        except IntegrityError:
            self.db.rollback()
            raise EmailAlreadyExistsError(data.email)

        audit_service.record(
            self.db,
            action="user_create",
            resource_type="user",
            resource_id=user.id,
            details={"email": data.email},
        )
        self.db.commit()
        self.db.refresh(user)

        logger.info("User created", extra={"user_id": user.id})
        return user

    def search_users(self, query: str, limit: Optional[int] = None) -> tuple[str, int, List[User]]:
        """Search every user by name or email, regardless of scope.

        Returns the normalized query, the effective limit and the matches.
        """
        text = normalize_search_query(query)
        limit = clamp_limit(limit, settings.default_search_limit, settings.max_search_limit)
        return text, limit, self.user_repo.search(text, limit)
