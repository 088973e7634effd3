"""Repository for user rows."""

from typing import List, Optional

from sqlalchemy import or_

from ..core.paths import escape_like
from ..exceptions import UserNotFoundError
from ..models.user import User
from .base import BaseRepository


def contains_pattern(query: str) -> str:
    """LIKE pattern for a case-insensitive substring match (escape char ``\\``)."""
    return f"%{escape_like(query)}%"


def name_or_email_matches(query: str):
    """Filter: *query* appears in the user's name or email, ignoring case."""
    pattern = contains_pattern(query)
    return or_(
        User.name.ilike(pattern, escape="\\"),
        User.email.ilike(pattern, escape="\\"),
    )


class UserRepository(BaseRepository[User]):
    """Data access layer for users."""

    model_class = User
    not_found_error = UserNotFoundError

    def get_by_email(self, email: str) -> Optional[User]:
        return self._base_query().filter(User.email == email).first()

    def list_all(self) -> List[User]:
        return self._base_query().order_by(User.name, User.id).all()

    def search(self, query: str, limit: int) -> List[User]:
        """Users whose name or email contains *query*, ordered by name."""
        return (
            self._base_query()
            .filter(name_or_email_matches(query))
            .order_by(User.name, User.id)
            .limit(limit)
            .all()
        )

    def insert(self, user: User) -> User:
        return self.add(user)
