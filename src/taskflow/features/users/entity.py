"""User entity and provisioning inputs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.taskflow.auth.providers import AuthProvider


class User(BaseModel):
    """
    Application user linked to one external identity.

    `id` is generated internally and never equals `external_id`.
    `last_login_at` stays None until the first completed login.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    external_id: str
    provider: AuthProvider
    email: str
    name: str
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    @property
    def is_first_login(self) -> bool:
        return self.last_login_at is None


class ExternalUserInfo(BaseModel):
    """Identity data taken from verified token claims."""

    model_config = ConfigDict(frozen=True)

    external_id: str = Field(min_length=1)
    provider: AuthProvider
    email: str
    name: str = Field(min_length=1)
    avatar_url: str | None = None
