"""Identifier format checks.

Every id in the system is a UUID string. Ids arriving from callers are
checked against a strict pattern before any query is issued.
"""

import re
import uuid

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def new_id() -> str:
    return str(uuid.uuid4())


def is_uuid(value: object) -> bool:
    return isinstance(value, str) and bool(_UUID_PATTERN.match(value))


def require_uuid(value: object, field: str) -> str:
    """Return *value* lowercased, or raise ValidationError naming *field*.

    Stored ids are lowercase, so the canonical form is what lookups use.
    """
    from ..exceptions import ValidationError

    if not is_uuid(value):
        raise ValidationError(f"{field} must be a valid UUID", field=field)
    return value.lower()


def check_uuid(value: str) -> str:
    """Pydantic-validator flavour of :func:`require_uuid` (raises ValueError)."""
    if not is_uuid(value):
        raise ValueError("must be a valid UUID")
    return value.lower()
