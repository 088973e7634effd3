"""User schemas."""

import re
from typing import List

from pydantic import BaseModel, field_validator

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class UserCreate(BaseModel):
    """Create a user. Every field is required and trimmed."""
    name: str
    email: str
    role: str
    spirit_animal: str

    @field_validator('name', 'role', 'spirit_animal')
    @classmethod
    def require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        if len(v) > 255:
            raise ValueError("Field must be 255 characters or less")
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("Please provide a valid email address")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [{
                "name": "Ada Lovelace",
                "email": "ada@acme.example",
                "role": "Staff Engineer",
                "spirit_animal": "Owl",
            }]
        }
    }


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    spirit_animal: str

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    data: List[UserResponse]
    total: int


class UserSearchResponse(UserListResponse):
    query: str
    limit: int
