"""SQLAlchemy ORM models for tenants, guest messaging, auto-rules and approvals."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Float,
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

from guestdesk.db.base import Base, utcnow
from guestdesk.db.enums import (
    DEFAULT_APPROVAL_STATUS,
    DEFAULT_JOB_STATUS,
    DEFAULT_RISK_MAX,
    DEFAULT_THREAD_STATUS,
)
from guestdesk.db.types import JSONDocument


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


def _created_at() -> Mapped[datetime]:
    return mapped_column(default=utcnow, server_default=func.now(), nullable=False)


def _updated_at() -> Mapped[datetime]:
    return mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


# =============================================================================
# Tenants & Operators
# =============================================================================

class Client(Base):
    """
    A property-management company (tenant).

    Auto-rules, templates and knowledge base entries are owned by a client;
    a rule with no property applies client-wide.
    """

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = _created_at()

    properties: Mapped[list["Property"]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )


class Property(Base):
    """A rental property belonging to exactly one client."""

    __tablename__ = "properties"
    __table_args__ = (Index("idx_properties_client", "client_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    client: Mapped["Client"] = relationship(back_populates="properties")


class User(Base):
    """
    Console operator.

    Identity is owned by the external provider; this row carries the role
    and the token version used to revoke issued sessions.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = _uuid_pk()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # Role enum
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    token_version: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()


# =============================================================================
# Guest Messaging
# =============================================================================

class Thread(Base):
    """
    A guest conversation at one property.

    Status `sent`/`declined` is written only when an approval for one of the
    thread's messages is decided; operators set the remaining statuses.
    """

    __tablename__ = "threads"
    __table_args__ = (
        Index("idx_threads_client_status", "client_id", "status"),
        Index("idx_threads_last_received", "last_received_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_THREAD_STATUS.value,
        server_default=text(f"'{DEFAULT_THREAD_STATUS.value}'"),
        nullable=False,
    )
    last_received_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = _created_at()

    property: Mapped["Property"] = relationship()
    messages: Mapped[list["Message"]] = relationship(
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="Message.received_at",
    )


class Message(Base):
    """A single guest or staff message within a thread."""

    __tablename__ = "messages"
    __table_args__ = (Index("idx_messages_thread_received", "thread_id", "received_at"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False
    )
    sender_type: Mapped[str] = mapped_column(String(20), nullable=False)  # SenderType
    text: Mapped[str] = mapped_column(Text, nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    thread: Mapped["Thread"] = relationship(back_populates="messages")
    analysis: Mapped["Analysis | None"] = relationship(
        back_populates="message", uselist=False, cascade="all, delete-orphan"
    )


class Analysis(Base):
    """
    Classification of a guest message.

    At most one per message. Absent when classification was skipped or
    the provider was unavailable.
    """

    __tablename__ = "analyses"

    id: Mapped[uuid.UUID] = _uuid_pk()
    message_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False
    )
    intent: Mapped[str] = mapped_column(String(50), nullable=False)
    risk: Mapped[str] = mapped_column(String(20), nullable=False)  # RiskLevel
    urgency: Mapped[str] = mapped_column(String(20), nullable=False)
    suggested_reply: Mapped[str] = mapped_column(Text, default="", nullable=False)
    thread_summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_at: Mapped[datetime] = _created_at()

    message: Mapped["Message"] = relationship(back_populates="analysis")


# =============================================================================
# Auto-Rules & Approvals
# =============================================================================

class Template(Base):
    """Reply template referenced by template/auto_send rule conditions."""

    __tablename__ = "templates"
    __table_args__ = (Index("idx_templates_client", "client_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = _created_at()


class AutoRule(Base):
    """
    Operator-authored rule turning a classified message into an approval.

    A rule with property_id NULL applies to every property of its client.
    intent NULL matches any intent; risk_max is an inclusive ceiling.
    """

    __tablename__ = "auto_rules"
    __table_args__ = (Index("idx_auto_rules_client_enabled", "client_id", "enabled"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=True
    )
    intent: Mapped[str | None] = mapped_column(String(50), nullable=True)
    risk_max: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_RISK_MAX.value,
        server_default=text(f"'{DEFAULT_RISK_MAX.value}'"),
        nullable=False,
    )
    conditions: Mapped[dict] = mapped_column(JSONDocument, default=dict, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)  # RuleAction
    enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    property: Mapped["Property | None"] = relationship()


class ApprovalRequest(Base):
    """
    A pending-human-decision record for a message.

    Lifecycle: pending -> approved | rejected. Decided rows are never
    modified again; status transitions use a conditional UPDATE.
    """

    __tablename__ = "approval_requests"
    __table_args__ = (
        Index("idx_approvals_status_created", "status", "created_at"),
        Index("idx_approvals_message", "message_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    message_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False
    )
    rule_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("auto_rules.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_APPROVAL_STATUS.value,
        server_default=text(f"'{DEFAULT_APPROVAL_STATUS.value}'"),
        nullable=False,
    )
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    message: Mapped["Message"] = relationship()
    reviewer: Mapped["User | None"] = relationship()


class SendLog(Base):
    """Record of an outbound reply produced by an approved decision."""

    __tablename__ = "send_logs"
    __table_args__ = (
        Index("idx_send_logs_created", "created_at"),
        Index("idx_send_logs_thread", "thread_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    message_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False
    )
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False
    )
    approval_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("approval_requests.id", ondelete="SET NULL"), nullable=True
    )
    final_reply: Mapped[str] = mapped_column(Text, nullable=False)
    channel: Mapped[str] = mapped_column(String(50), nullable=False)
    provider_response: Mapped[dict] = mapped_column(JSONDocument, default=dict, nullable=False)
    sent_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()

    sent_by: Mapped["User | None"] = relationship()


class AuditLog(Base):
    """
    Operator and system audit trail.

    meta holds identifiers and short reasons only; reply and guest text
    are never copied here.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_created", "created_at"),
        Index("idx_audit_action_created", "action", "created_at"),
        Index("idx_audit_actor_created", "actor_user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,  # System events have no actor
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # AuditAction
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    meta: Mapped[dict] = mapped_column(JSONDocument, default=dict, nullable=False)
    created_at: Mapped[datetime] = _created_at()

    actor: Mapped["User | None"] = relationship()


# =============================================================================
# Knowledge Base
# =============================================================================

class KbEntry(Base):
    """Client or property knowledge used as classification context."""

    __tablename__ = "kb_entries"
    __table_args__ = (Index("idx_kb_entries_client_property", "client_id", "property_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list] = mapped_column(JSONDocument, default=list, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


# =============================================================================
# Background Jobs
# =============================================================================

class Job(Base):
    """
    Background job for async processing.

    Used for: guest message classification followed by rule evaluation.
    Worker polls for pending jobs and processes them.
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index("idx_jobs_pending", "status", "run_at"),
        Index("uq_job_idempotency", "idempotency_key", unique=True),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    job_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONDocument, default=dict, nullable=False)
    run_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_JOB_STATUS.value,
        server_default=text(f"'{DEFAULT_JOB_STATUS.value}'"),
        nullable=False,
    )
    attempts: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    max_attempts: Mapped[int] = mapped_column(
        Integer, default=3, server_default=text("3"), nullable=False
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = _created_at()
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Idempotency key for deduplication (NULLs never collide)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
