"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db.base import Base
from erp.db.enums import DEFAULT_CLAIM_STATUS, DEFAULT_LEAD_STATUS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Application user (staff or client).

    supervisor_id forms the supervisor → operator ownership forest; it is only
    meaningful for operators (and loosely for clients).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'supervisor', 'operator', 'client')",
            name="ck_users_role",
        ),
        Index("idx_users_supervisor_role", "supervisor_id", "role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, server_default=text("'client'"))
    supervisor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    token_version: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    supervisor: Mapped["User | None"] = relationship(remote_side=[id])
    client_profile: Mapped["Client | None"] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class Client(Base):
    """Customer record attached to a client-role user (created by lead conversion)."""

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="client_profile")


class Claim(Base):
    """
    Client-submitted support ticket.

    client_id is immutable after creation. assigned_to, when set, references
    an active staff user (validated by the assignment router at write time).
    """

    __tablename__ = "claims"
    __table_args__ = (
        CheckConstraint(
            "status IN ('submitted', 'in_review', 'resolved', 'rejected')",
            name="ck_claims_status",
        ),
        Index("idx_claims_client_created", "client_id", "created_at"),
        Index("idx_claims_assigned_created", "assigned_to", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_CLAIM_STATUS.value,
        server_default=text(f"'{DEFAULT_CLAIM_STATUS.value}'"),
        nullable=False,
    )
    reply: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_paths: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    client: Mapped["User | None"] = relationship(foreign_keys=[client_id])
    assignee: Mapped["User | None"] = relationship(foreign_keys=[assigned_to])
    comments: Mapped[list["ClaimComment"]] = relationship(
        back_populates="claim",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ClaimComment.created_at.desc()",
    )


class Lead(Base):
    """Sales prospect. Status is a free-form prospect stage, not a ClaimStatus."""

    __tablename__ = "leads"
    __table_args__ = (
        Index("idx_leads_assigned_created", "assigned_to", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        default=DEFAULT_LEAD_STATUS,
        server_default=text(f"'{DEFAULT_LEAD_STATUS}'"),
        nullable=False,
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    assignee: Mapped["User | None"] = relationship(foreign_keys=[assigned_to])


class ClaimComment(Base):
    """
    Append-only comment on a claim.

    role is the author's role at posting time (denormalized). Client-authored
    comments are always stored with visible_to_client = False.
    """

    __tablename__ = "claim_comments"
    __table_args__ = (
        Index("idx_claim_comments_claim_created", "claim_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    claim_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("claims.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)  # HTML allowed, sanitized
    visible_to_client: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    claim: Mapped["Claim"] = relationship(back_populates="comments")
    author: Mapped["User | None"] = relationship()
