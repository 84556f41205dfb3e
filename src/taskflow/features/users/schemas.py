"""Pydantic response models for auth and user endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.taskflow.auth.providers import AuthProvider
from src.taskflow.features.users.entity import User


class UserResponse(BaseModel):
    """User as returned to the client (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    external_id: str
    provider: AuthProvider
    email: str
    name: str
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls.model_validate(user.model_dump())


class VerifyTokenResponse(BaseModel):
    """Response model for POST /api/auth/verify."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    user: UserResponse
    is_new_user: bool


class UserProfileResponse(BaseModel):
    """Response model for GET /api/user/profile."""

    success: bool = True
    data: UserResponse
