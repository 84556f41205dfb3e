"""SQLAlchemy ORM models for users and tasks."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.taskflow.auth.providers import AuthProvider


class Base(DeclarativeBase):
    """Declarative base class for all ORM models."""

    pass


class UserRow(Base):
    """
    Application user, linked to one external identity.

    `id` is generated by the application and is never derived from
    `external_id`; `(external_id, provider)` is unique so concurrent first
    logins collapse into a single row.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("external_id", "provider", name="uq_users_external_id_provider"),
        Index("idx_users_email", "email"),
        CheckConstraint("length(trim(name)) > 0", name="non_empty_name"),
        CheckConstraint("avatar_url IS NULL OR avatar_url ~* '^https?://'", name="valid_avatar_url"),
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[AuthProvider] = mapped_column(
        Enum(AuthProvider, name="auth_provider_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class TaskRow(Base):
    """Task owned by a user; RLS restricts rows to app.current_user_id."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_user_id_created_at", "user_id", "created_at"),
        CheckConstraint("priority IN ('high', 'medium', 'low')", name="valid_priority"),
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'in_review', 'completed')",
            name="valid_status",
        ),
    )

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, server_default="medium")
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="not_started")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
