"""Materialised path helpers.

A structure's path is its ancestry spelled root-to-leaf, one slug per
segment: ``acme/eng/frontend``. Descendant lookups are prefix matches on
``path + "/"``, so everything here is plain string work with no tree walking.
"""

import re
from typing import Iterable, Optional

SEPARATOR = "/"

_UNSAFE_CHARS = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATOR_RUNS = re.compile(r"[\s_-]+", re.ASCII)

LEVEL_NAMES: dict[int, str] = {
    0: "Company",
    1: "Division",
    2: "Department",
    3: "Team",
}


def slugify(name: str) -> str:
    """URL-friendly slug: ``"R&D  Platform_Team"`` -> ``"rd-platform-team"``."""
    slug = name.lower().strip()
    slug = _UNSAFE_CHARS.sub("", slug)
    slug = _SEPARATOR_RUNS.sub("-", slug)
    return slug.strip("-")


def child_path(parent_path: Optional[str], slug: str) -> str:
    """Path for a node named *slug* under *parent_path* (``None`` = root)."""
    if parent_path is None:
        return slug
    return f"{parent_path}{SEPARATOR}{slug}"


def parent_path_of(path: str) -> Optional[str]:
    """``a/b/c`` -> ``a/b``; roots have no parent path."""
    if SEPARATOR not in path:
        return None
    return path.rsplit(SEPARATOR, 1)[0]


def is_strict_descendant(path: str, ancestor_path: str) -> bool:
    """True if *path* lies strictly below *ancestor_path* (never itself)."""
    return path.startswith(ancestor_path + SEPARATOR)


def has_ancestor_in(path: str, candidate_ancestors: Iterable[str]) -> bool:
    return any(is_strict_descendant(path, a) for a in candidate_ancestors)


def escape_like(value: str, escape_char: str = "\\") -> str:
    """Escape LIKE wildcards so *value* matches literally."""
    return (
        value.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )


def descendant_pattern(path: str) -> str:
    """LIKE pattern matching every strict descendant of *path* (escape char ``\\``)."""
    return f"{escape_like(path)}{SEPARATOR}%"


def level_name(level: int) -> str:
    return LEVEL_NAMES.get(level, f"Level {level}")
