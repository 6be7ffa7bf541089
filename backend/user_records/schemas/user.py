from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from user_records.models.user import DEFAULT_AGE, User

# Fields that can be left out but never set to null once given
REQUIRED_FIELDS = ("first_name", "email")


class UserCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    age: Optional[int] = Field(default=DEFAULT_AGE, ge=0)

    # Values are stored exactly as given; unknown keys are rejected
    model_config = ConfigDict(extra="forbid")


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, min_length=1, max_length=255)
    age: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def required_fields_not_cleared(self):
        for field in REQUIRED_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} is required and cannot be set to null")
        return self

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually passed"""
        return self.model_dump(exclude_unset=True)


class UserRead(BaseModel):
    id: int
    first_name: str
    last_name: Optional[str]
    email: str
    age: Optional[int]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None


def to_dict(user: User) -> Dict[str, Any]:
    """Plain, JSON-friendly view of a user record"""
    return UserRead.model_validate(user).model_dump()
