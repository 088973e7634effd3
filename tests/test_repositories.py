"""Tests for repository queries that services rely on."""

from orgscope.models import UserPermission
from orgscope.repositories import PermissionRepository, StructureRepository, UserRepository


class TestStructureRepository:

    def test_prefix_search_returns_strict_descendants(self, db, org):
        repo = StructureRepository(db)
        paths = [s.path for s in repo.find_by_path_prefix("acme/engineering")]
        assert paths == [
            "acme/engineering/frontend",
            "acme/engineering/frontend/team-a",
            "acme/engineering/frontend/team-b",
        ]

    def test_descendants_of_several_paths_in_one_call(self, db, org):
        repo = StructureRepository(db)
        found = repo.find_descendants(["acme/engineering/frontend", "acme/sales", "acme/sales"])
        assert sorted(s.name for s in found) == ["Team A", "Team B"]

    def test_underscore_is_not_a_wildcard(self, db, make_structure):
        make_structure("Child", make_structure("axb"))
        repo = StructureRepository(db)
        assert [s.path for s in repo.find_by_path_prefix("axb")] == ["axb/child"]
        assert repo.find_by_path_prefix("a_b") == []

    def test_find_by_name_under_parent(self, db, org):
        repo = StructureRepository(db)
        assert repo.find_by_name_under_parent("Sales", org["acme"].id).id == org["sales"].id
        assert repo.find_by_name_under_parent("Sales", None) is None
        assert repo.find_by_name_under_parent("Acme", None).id == org["acme"].id

    def test_level_counts_and_max_level(self, db, org):
        repo = StructureRepository(db)
        assert repo.level_counts() == {0: 1, 1: 2, 2: 1, 3: 2}
        assert repo.max_level() == 3

    def test_max_level_of_empty_tree(self, db):
        assert StructureRepository(db).max_level() is None


class TestPermissionRepository:

    def test_users_with_grant_to_any_of(self, db, org, make_user, grant):
        ann = make_user("Ann")
        bob = make_user("Bob")
        grant(ann, org["team_a"])
        grant(bob, org["sales"])
        grant(make_user("Cy"), org["acme"])

        rows = PermissionRepository(db).get_users_with_grant_to_any_of(
            [org["team_a"].id, org["sales"].id]
        )
        assert [(u.name, s.name) for u, s in rows] == [("Bob", "Sales"), ("Ann", "Team A")]

    def test_empty_id_list_skips_query(self, db):
        assert PermissionRepository(db).get_users_with_grant_to_any_of([]) == []

    def test_count_by_structure(self, db, org, make_user, grant):
        grant(make_user("Ann"), org["eng"])
        grant(make_user("Bob"), org["eng"])
        counts = PermissionRepository(db).count_by_structure()
        assert counts == {org["eng"].id: 2}

    def test_delete_grants_for_structures(self, db, org, make_user, grant):
        ann = make_user("Ann")
        grant(ann, org["eng"])
        grant(ann, org["sales"])
        repo = PermissionRepository(db)
        assert repo.delete_grants_for_structures(ann.id, [org["eng"].id]) == 1
        db.commit()
        assert [p.structure_id for p in db.query(UserPermission)] == [org["sales"].id]


class TestUserRepository:

    def test_search_matches_email(self, db, make_user):
        make_user("Kim", email="kim@globex.example")
        make_user("Lee", email="lee@acme.example")
        assert [u.name for u in UserRepository(db).search("globex", 10)] == ["Kim"]

    def test_get_by_email(self, db, make_user):
        kim = make_user("Kim", email="kim@globex.example")
        assert UserRepository(db).get_by_email("kim@globex.example").id == kim.id
        assert UserRepository(db).get_by_email("nobody@globex.example") is None
