"""Permission store: user -> structure grant edges."""

from typing import Iterable, List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Query

from ..exceptions import PermissionNotFoundError
from ..models.structure import OrganisationStructure
from ..models.user import User, UserPermission
from .base import BaseRepository


class PermissionRepository(BaseRepository[UserPermission]):
    """Data access layer for grants.

    Every bulk read is a single joined query; callers pass a SQL criterion
    (see ``AccessScope.member_criteria``) rather than looping over ids.
    """

    model_class = UserPermission

    def get_grants_for_user(
        self, user_id: str
    ) -> List[Tuple[UserPermission, OrganisationStructure]]:
        """The user's grants with their structures, ordered by (level, name)."""
        return (
            self.db.query(UserPermission, OrganisationStructure)
            .join(OrganisationStructure, UserPermission.structure_id == OrganisationStructure.id)
            .filter(UserPermission.user_id == user_id)
            .order_by(OrganisationStructure.level, OrganisationStructure.name)
            .all()
        )

    def get_for_user(self, permission_id: str, user_id: str) -> UserPermission:
        """Grant *permission_id* owned by *user_id*; raises PermissionNotFoundError."""
        grant = (
            self._base_query()
            .filter(UserPermission.id == permission_id, UserPermission.user_id == user_id)
            .first()
        )
        if grant is None:
            raise PermissionNotFoundError(permission_id, user_id)
        return grant

    def grant_exists(self, user_id: str, structure_id: str) -> bool:
        return (
            self._base_query()
            .filter(UserPermission.user_id == user_id, UserPermission.structure_id == structure_id)
            .first()
            is not None
        )

    def insert_grant(self, user_id: str, structure_id: str) -> UserPermission:
        return self.add(UserPermission(user_id=user_id, structure_id=structure_id))

    def delete_grant(self, grant_id: str) -> bool:
        deleted = self._base_query().filter(UserPermission.id == grant_id).delete(
            synchronize_session="fetch"
        )
        self.db.flush()
        return deleted > 0

    def delete_grants_for_structures(self, user_id: str, structure_ids: Iterable[str]) -> int:
        ids = list(structure_ids)
        if not ids:
            return 0
        deleted = (
            self._base_query()
            .filter(UserPermission.user_id == user_id, UserPermission.structure_id.in_(ids))
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return deleted

    def count_grants_for_user(self, user_id: str) -> int:
        return self._base_query().filter(UserPermission.user_id == user_id).count()

    def count_distinct_users(self) -> int:
        """Users holding at least one grant."""
        return self.db.query(func.count(func.distinct(UserPermission.user_id))).scalar() or 0

    # ------------------------------------------------------------------
    # Set-membership reads used by the access engine
    # ------------------------------------------------------------------

    def _membership_query(self, *entities) -> Query:
        return (
            self.db.query(*entities)
            .select_from(UserPermission)
            .join(User, UserPermission.user_id == User.id)
            .join(OrganisationStructure, UserPermission.structure_id == OrganisationStructure.id)
        )

    def get_users_with_grant_to_any_of(
        self,
        structure_ids: Iterable[str],
        criteria=None,
    ) -> List[Tuple[User, OrganisationStructure]]:
        """(user, structure) rows for grants on any of *structure_ids*.

        One IN query joined to users and structures. *criteria* narrows the
        rows further (e.g. to the accessible-user set).
        """
        ids = list(dict.fromkeys(structure_ids))
        if not ids:
            return []
        query = self._membership_query(User, OrganisationStructure).filter(
            UserPermission.structure_id.in_(ids)
        )
        if criteria is not None:
            query = query.filter(criteria)
        return query.order_by(
            OrganisationStructure.level, OrganisationStructure.name, User.name, User.id
        ).all()

    def count_by_structure(self, criteria=None) -> dict[str, int]:
        """Grant counts per structure id, optionally narrowed by *criteria*."""
        query = self._membership_query(UserPermission.structure_id, func.count(UserPermission.user_id))
        if criteria is not None:
            query = query.filter(criteria)
        rows = query.group_by(UserPermission.structure_id).all()
        return {structure_id: count for structure_id, count in rows}

    def users_on_structure(self, structure_id: str, criteria=None) -> Query:
        """Query of users granted exactly *structure_id*, ordered by (name, id)."""
        query = self._membership_query(User).filter(UserPermission.structure_id == structure_id)
        if criteria is not None:
            query = query.filter(criteria)
        return query.order_by(User.name, User.id)

    def users_matching(self, text_filter, criteria=None) -> Query:
        """Distinct users passing *text_filter* (and *criteria*), ordered by (name, id)."""
        query = self._membership_query(User).filter(text_filter)
        if criteria is not None:
            query = query.filter(criteria)
        return query.distinct().order_by(User.name, User.id)
