"""Dashboard service - headline counts and approval workflow metrics."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from guestdesk.db.base import utcnow
from guestdesk.db.enums import ApprovalStatus, RiskLevel, ThreadStatus
from guestdesk.db.models import (
    Analysis,
    ApprovalRequest,
    Client,
    Message,
    Property,
    SendLog,
    Thread,
)

METRICS_WINDOW_DAYS = 30
HIGH_RISK_LEVELS = (RiskLevel.HIGH.value, RiskLevel.CRITICAL.value)


def get_stats(db: Session, client_id: UUID | None = None) -> dict:
    """Thread counts by status, pending approvals and 24h activity."""
    since = utcnow() - timedelta(hours=24)

    status_query = db.query(Thread.status, func.count(Thread.id)).group_by(Thread.status)
    pending_query = (
        db.query(func.count(ApprovalRequest.id))
        .join(Message, ApprovalRequest.message_id == Message.id)
        .join(Thread, Message.thread_id == Thread.id)
        .filter(ApprovalRequest.status == ApprovalStatus.PENDING.value)
    )
    sends_query = (
        db.query(func.count(SendLog.id))
        .join(Thread, SendLog.thread_id == Thread.id)
        .filter(SendLog.created_at >= since)
    )
    messages_query = (
        db.query(func.count(Message.id))
        .join(Thread, Message.thread_id == Thread.id)
        .filter(Message.received_at >= since)
    )
    properties_query = db.query(func.count(Property.id))

    if client_id:
        status_query = status_query.filter(Thread.client_id == client_id)
        pending_query = pending_query.filter(Thread.client_id == client_id)
        sends_query = sends_query.filter(Thread.client_id == client_id)
        messages_query = messages_query.filter(Thread.client_id == client_id)
        properties_query = properties_query.filter(Property.client_id == client_id)

    threads_by_status = {status.value: 0 for status in ThreadStatus}
    for status, count in status_query.all():
        threads_by_status[status] = count

    return {
        "threads_by_status": threads_by_status,
        "total_threads": sum(threads_by_status.values()),
        "pending_approvals": pending_query.scalar() or 0,
        "sends_last_24h": sends_query.scalar() or 0,
        "messages_last_24h": messages_query.scalar() or 0,
        "total_clients": 1 if client_id else db.query(func.count(Client.id)).scalar() or 0,
        "total_properties": properties_query.scalar() or 0,
    }


def _average_seconds(pairs) -> int:
    """Mean of (later - earlier) in whole seconds; 0 when there is nothing to average."""
    deltas = [
        (later - earlier).total_seconds()
        for later, earlier in pairs
        if later is not None and earlier is not None
    ]
    if not deltas:
        return 0
    return round(sum(deltas) / len(deltas))


def get_metrics(db: Session, client_id: UUID | None = None) -> dict:
    """
    Approval workflow metrics over the last 30 days.

    Response time runs from message receipt to approval creation;
    decision time from approval creation to its decision.
    """
    now = utcnow()
    window_start = now - timedelta(days=METRICS_WINDOW_DAYS)
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    messages = db.query(Message).join(Thread, Message.thread_id == Thread.id)
    approvals = (
        db.query(ApprovalRequest)
        .join(Message, ApprovalRequest.message_id == Message.id)
        .join(Thread, Message.thread_id == Thread.id)
    )
    analyses = db.query(Analysis).join(Thread, Analysis.thread_id == Thread.id)
    if client_id:
        messages = messages.filter(Thread.client_id == client_id)
        approvals = approvals.filter(Thread.client_id == client_id)
        analyses = analyses.filter(Thread.client_id == client_id)

    by_status = {status.value: 0 for status in ApprovalStatus}
    rows = (
        approvals.with_entities(ApprovalRequest.status, func.count(ApprovalRequest.id))
        .group_by(ApprovalRequest.status)
        .all()
    )
    for status, count in rows:
        by_status[status] = count
    total_approvals = sum(by_status.values())
    approved = by_status[ApprovalStatus.APPROVED.value]

    response_pairs = (
        approvals.filter(Message.received_at >= window_start)
        .with_entities(ApprovalRequest.created_at, Message.received_at)
        .all()
    )
    decision_pairs = (
        approvals.filter(
            ApprovalRequest.status != ApprovalStatus.PENDING.value,
            ApprovalRequest.updated_at >= window_start,
        )
        .with_entities(ApprovalRequest.updated_at, ApprovalRequest.created_at)
        .all()
    )

    return {
        "messages": {
            "total": messages.count(),
            "this_month": messages.filter(Message.received_at >= window_start).count(),
            "today": messages.filter(Message.received_at >= today_start).count(),
        },
        "approvals": {
            "total": total_approvals,
            "approved": approved,
            "rejected": by_status[ApprovalStatus.REJECTED.value],
            "pending": by_status[ApprovalStatus.PENDING.value],
            "approval_rate": round(approved * 100 / total_approvals) if total_approvals else 0,
        },
        "performance": {
            "avg_response_time_seconds": _average_seconds(response_pairs),
            "avg_approval_time_seconds": _average_seconds(decision_pairs),
        },
        "risks": {
            "high_risk_this_month": analyses.filter(
                Analysis.risk.in_(HIGH_RISK_LEVELS),
                Analysis.created_at >= window_start,
            ).count(),
        },
        "generated_at": now,
    }
