"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Column types are kept portable (String/JSON/DateTime) so the schema runs
on PostgreSQL in production and SQLite in tests.

Key concepts:
- Account namespaces are separate tables: super_admins, wedding_admins,
  legacy_admins. The master account is configuration, not a row.
- Uniqueness of usernames and slugs is enforced by primary keys, so an
  INSERT is the atomic "create only if absent" write.
- wedding_admin_links is the join record; WeddingAdmin.wedding_ids is the
  denormalised membership array read on every wedding-scoped request.
  Both are written in the same transaction.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_wedding_id() -> str:
    return str(uuid.uuid4())


# ══════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════


class SuperAdmin(Base):
    """Platform operator. Implicit access to every wedding."""

    __tablename__ = "super_admins"

    username: Mapped[str] = mapped_column(String(30), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)


class WeddingAdmin(Base):
    """Wedding-scoped admin account.

    user_type "client" is the couple's account created alongside a
    wedding; "staff" is a reusable planner account linked to many
    weddings after creation.
    """

    __tablename__ = "wedding_admins"
    __table_args__ = (
        Index("idx_wedding_admins_user_type", "user_type"),
    )

    username: Mapped[str] = mapped_column(String(30), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    wedding_ids: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    user_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default="client"
    )  # client, staff
    must_change_password: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utcnow
    )


class LegacyAdmin(Base):
    """Pre-multi-tenant admin, implicitly scoped to the legacy wedding."""

    __tablename__ = "legacy_admins"

    username: Mapped[str] = mapped_column(String(30), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    must_change_password: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Weddings
# ══════════════════════════════════════════════════════════════


class Wedding(Base):
    """One wedding microsite — the tenant boundary.

    Statuses: draft | active → archived (terminal).
    """

    __tablename__ = "weddings"
    __table_args__ = (
        Index("idx_weddings_status", "status"),
        Index("idx_weddings_created_at", "created_at"),
    )

    wedding_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_wedding_id
    )
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default="active"
    )  # draft, active, archived
    owner_id: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    co_owner_ids: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    created_by: Mapped[str] = mapped_column(String(30), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_by: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)


class WeddingSlug(Base):
    """Slug → wedding_id index. Inserting here claims the slug."""

    __tablename__ = "wedding_slugs"

    slug: Mapped[str] = mapped_column(String(50), primary_key=True)
    wedding_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("weddings.wedding_id"), nullable=False
    )


class WeddingAdminLink(Base):
    """Join record (wedding, admin) with the admin's role on that wedding."""

    __tablename__ = "wedding_admin_links"
    __table_args__ = (
        Index("idx_wedding_admin_links_username", "username"),
    )

    wedding_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("weddings.wedding_id"), primary_key=True
    )
    username: Mapped[str] = mapped_column(
        String(30), ForeignKey("wedding_admins.username"), primary_key=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="owner")
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    added_by: Mapped[str] = mapped_column(String(30), nullable=False)


# ══════════════════════════════════════════════════════════════
# Audit log
# ══════════════════════════════════════════════════════════════


class Event(Base):
    """Append-only audit event.

    Written in the same transaction as the mutation it records, so an
    event exists iff the change committed.
    """

    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_stream", "stream_id", "id"),
        Index("idx_events_type", "type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stream_id: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    meta: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
