"""Tests for slug and materialised path helpers."""

import pytest

from orgscope.core.identifiers import check_uuid, is_uuid, new_id, require_uuid
from orgscope.core.paths import (
    child_path,
    descendant_pattern,
    escape_like,
    has_ancestor_in,
    is_strict_descendant,
    level_name,
    parent_path_of,
    slugify,
)
from orgscope.exceptions import ValidationError
from orgscope.schemas.permission import ReplacePermissionsRequest


class TestSlugify:

    def test_lowercases_and_hyphenates(self):
        assert slugify("Team A") == "team-a"

    def test_strips_punctuation(self):
        assert slugify("R&D Platform!") == "rd-platform"

    def test_collapses_separator_runs(self):
        assert slugify("  Sales__and -- Marketing  ") == "sales-and-marketing"

    def test_trims_leading_and_trailing_hyphens(self):
        assert slugify("-Ops-") == "ops"

    def test_non_ascii_letters_are_dropped(self):
        assert slugify("Équipe Zürich") == "quipe-zrich"

    def test_only_symbols_gives_empty_slug(self):
        assert slugify("!!!") == ""


class TestPaths:

    def test_root_path_is_slug(self):
        assert child_path(None, "acme") == "acme"

    def test_child_path_appends_segment(self):
        assert child_path("acme/eng", "frontend") == "acme/eng/frontend"

    def test_parent_path_of(self):
        assert parent_path_of("acme/eng/frontend") == "acme/eng"
        assert parent_path_of("acme") is None

    def test_strict_descendant_excludes_self(self):
        assert is_strict_descendant("acme/eng", "acme")
        assert not is_strict_descendant("acme", "acme")

    def test_strict_descendant_respects_segment_boundary(self):
        # "acme-labs" shares a prefix with "acme" but is not below it.
        assert not is_strict_descendant("acme-labs/x", "acme")

    def test_has_ancestor_in(self):
        assert has_ancestor_in("acme/eng/frontend", ["acme/sales", "acme/eng"])
        assert not has_ancestor_in("acme/eng", ["acme/eng"])


class TestLikePatterns:

    def test_escape_like_escapes_wildcards(self):
        assert escape_like("a_b%c") == "a\\_b\\%c"

    def test_descendant_pattern(self):
        assert descendant_pattern("acme/eng") == "acme/eng/%"

    def test_descendant_pattern_escapes_underscore(self):
        assert descendant_pattern("a_b") == "a\\_b/%"


class TestLevelNames:

    def test_named_tiers(self):
        assert [level_name(i) for i in range(4)] == ["Company", "Division", "Department", "Team"]

    def test_deeper_tiers_are_numbered(self):
        assert level_name(4) == "Level 4"


class TestIdentifiers:

    def test_new_id_is_uuid(self):
        assert is_uuid(new_id())

    def test_rejects_non_uuid(self):
        assert not is_uuid("not-a-uuid")
        assert not is_uuid("12345678-1234-1234-1234-1234567890ab-extra")
        assert not is_uuid(None)

    def test_accepts_upper_case(self):
        assert is_uuid("2F1C6B9E-8D0A-4C61-9E43-0A7B5D2C9F11")

    def test_require_uuid_returns_lowercase(self):
        assert require_uuid("2F1C6B9E-8D0A-4C61-9E43-0A7B5D2C9F11", "user_id") == (
            "2f1c6b9e-8d0a-4c61-9e43-0a7b5d2c9f11"
        )

    def test_require_uuid_rejects_malformed(self):
        with pytest.raises(ValidationError) as exc:
            require_uuid("nope", "structure_id")
        assert exc.value.details == {"field": "structure_id"}

    def test_check_uuid_returns_lowercase(self):
        assert check_uuid("ABCDEF01-2345-6789-ABCD-EF0123456789") == "abcdef01-2345-6789-abcd-ef0123456789"

    def test_replace_request_lowercases_and_dedupes(self):
        upper = "2F1C6B9E-8D0A-4C61-9E43-0A7B5D2C9F11"
        request = ReplacePermissionsRequest(structure_ids=[upper, upper.lower()])
        assert request.structure_ids == [upper.lower()]
