"""Tests for scope resolution and the accessible-user set."""

import pytest

from orgscope.exceptions import UserNotFoundError
from orgscope.models import User, UserPermission
from orgscope.repositories.permission_repository import PermissionRepository
from orgscope.services.scope_service import ScopeResolver


def accessible_user_ids(db, user_id):
    """Every user id admitted by the scope's member criterion."""
    scope = ScopeResolver(db).resolve_scope(user_id)
    rows = (
        PermissionRepository(db)
        ._membership_query(User.id)
        .filter(scope.member_criteria())
        .distinct()
        .all()
    )
    return {row[0] for row in rows}


class TestResolveScope:

    def test_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            ScopeResolver(db).resolve_scope("2f1c6b9e-8d0a-4c61-9e43-0a7b5d2c9f11")

    def test_user_without_grants_has_empty_scope(self, db, make_user):
        user = make_user("Nobody")
        scope = ScopeResolver(db).resolve_scope(user.id)
        assert scope.is_empty
        assert scope.accessible_structures == []
        assert accessible_user_ids(db, user.id) == set()

    def test_grant_includes_structure_and_descendants(self, db, org, make_user, grant):
        user = make_user("Ann")
        grant(user, org["eng"])
        scope = ScopeResolver(db).resolve_scope(user.id)
        assert {s.name for s in scope.accessible_structures} == {
            "Engineering", "Frontend", "Team A", "Team B",
        }
        assert not scope.contains(org["acme"].id)
        assert not scope.contains(org["sales"].id)

    def test_structures_ordered_by_level_then_name(self, db, org, make_user, grant):
        user = make_user("Ann")
        grant(user, org["acme"])
        scope = ScopeResolver(db).resolve_scope(user.id)
        keys = [(s.level, s.name) for s in scope.accessible_structures]
        assert keys == sorted(keys)

    def test_overlapping_grants_are_deduplicated(self, db, org, make_user, grant):
        user = make_user("Ann")
        grant(user, org["eng"])
        grant(user, org["team_a"])
        scope = ScopeResolver(db).resolve_scope(user.id)
        ids = [s.id for s in scope.accessible_structures]
        assert len(ids) == len(set(ids)) == 4
        assert [s.name for s in scope.root_structures()] == ["Engineering"]

    def test_similar_path_prefix_is_not_a_descendant(self, db, make_structure, make_user, grant):
        acme = make_structure("Acme")
        make_structure("Acme Labs")
        user = make_user("Ann")
        grant(user, acme)
        scope = ScopeResolver(db).resolve_scope(user.id)
        assert [s.path for s in scope.accessible_structures] == ["acme"]


class TestGrantChainScenario:
    """Acme > Eng > Frontend, with A granted Eng and B granted Frontend."""

    @pytest.fixture()
    def chain(self, make_structure, make_user, grant):
        acme = make_structure("Acme")
        eng = make_structure("Eng", acme)
        frontend = make_structure("Frontend", eng)
        a = make_user("Alice")
        b = make_user("Bruno")
        grant(a, eng)
        grant(b, frontend)
        return {"eng": eng, "frontend": frontend, "a": a, "b": b}

    def test_paths(self, chain):
        assert chain["eng"].path == "acme/eng"
        assert chain["frontend"].path == "acme/eng/frontend"

    def test_upstream_user_sees_both(self, db, chain):
        scope = ScopeResolver(db).resolve_scope(chain["a"].id)
        assert scope.accessible_ids == {chain["eng"].id, chain["frontend"].id}
        assert accessible_user_ids(db, chain["a"].id) == {chain["a"].id, chain["b"].id}

    def test_downstream_user_sees_only_self(self, db, chain):
        scope = ScopeResolver(db).resolve_scope(chain["b"].id)
        assert scope.accessible_ids == {chain["frontend"].id}
        assert accessible_user_ids(db, chain["b"].id) == {chain["b"].id}


class TestAccessibleUserSet:

    def test_self_inclusion(self, db, org, make_user, grant):
        for key in ["acme", "eng", "team_b"]:
            user = make_user(f"User {key}")
            grant(user, org[key])
            assert user.id in accessible_user_ids(db, user.id)

    def test_peer_on_same_structure_excluded(self, db, org, make_user, grant):
        ann = make_user("Ann")
        peer = make_user("Peer")
        grant(ann, org["frontend"])
        grant(peer, org["frontend"])
        assert peer.id not in accessible_user_ids(db, ann.id)
        assert ann.id not in accessible_user_ids(db, peer.id)

    def test_peer_with_other_grant_visible_through_descendant(self, db, org, make_user, grant):
        ann = make_user("Ann")
        peer = make_user("Peer")
        grant(ann, org["frontend"])
        grant(peer, org["frontend"])
        grant(peer, org["team_a"])
        assert peer.id in accessible_user_ids(db, ann.id)

    def test_sibling_branch_invisible(self, db, org, make_user, grant):
        ann = make_user("Ann")
        seller = make_user("Seller")
        grant(ann, org["eng"])
        grant(seller, org["sales"])
        assert seller.id not in accessible_user_ids(db, ann.id)

    def test_monotonic_under_additional_grant(self, db, org, make_user, grant):
        ann = make_user("Ann")
        grant(ann, org["team_a"])
        for key in ["team_b", "sales", "acme"]:
            grant(make_user(f"Member {key}"), org[key])

        before = ScopeResolver(db).resolve_scope(ann.id).accessible_ids
        grant(ann, org["sales"])
        after = ScopeResolver(db).resolve_scope(ann.id).accessible_ids
        assert before <= after
        assert org["sales"].id in after

    def test_direct_grants_always_in_scope(self, db, org, make_user, grant):
        ann = make_user("Ann")
        for key in ["team_a", "sales"]:
            grant(ann, org[key])
        scope = ScopeResolver(db).resolve_scope(ann.id)
        assert {g.structure_id for g in scope.direct_grants} <= scope.accessible_ids

    def test_scope_recomputed_after_revoke(self, db, org, make_user, grant):
        ann = make_user("Ann")
        grant(ann, org["eng"])
        resolver = ScopeResolver(db)
        assert resolver.resolve_scope(ann.id).contains(org["team_a"].id)

        db.query(UserPermission).filter(UserPermission.user_id == ann.id).delete()
        db.commit()
        assert resolver.resolve_scope(ann.id).is_empty
