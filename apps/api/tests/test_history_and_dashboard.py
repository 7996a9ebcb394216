"""Send log, audit log and dashboard tests."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from guestdesk.db.base import utcnow
from guestdesk.db.enums import AuditAction
from guestdesk.db.models import ApprovalRequest
from guestdesk.services import approval_service, audit_service, dashboard_service, send_log_service
from guestdesk.utils.pagination import PaginationParams


@pytest.fixture
def sent_reply(db, make_thread, make_message, make_analysis, test_user):
    """One approved (sent) reply."""
    thread = make_thread()
    message = make_message(thread)
    make_analysis(message, suggested_reply="Check-in is at 3pm, door code 1234.")
    approval = ApprovalRequest(message_id=message.id, status="pending")
    db.add(approval)
    db.commit()
    approval_service.decide(db, approval.id, "approve", reviewer_id=test_user.id)
    return message


# =============================================================================
# Send logs
# =============================================================================

def test_send_logs_filter_by_thread_and_search(db, sent_reply, make_thread):
    logs, total = send_log_service.list_send_logs(
        db, PaginationParams(), thread_id=sent_reply.thread_id
    )
    assert total == 1
    assert logs[0].message_id == sent_reply.id

    _, total = send_log_service.list_send_logs(db, PaginationParams(), thread_id=make_thread().id)
    assert total == 0

    _, total = send_log_service.list_send_logs(db, PaginationParams(), search="door code")
    assert total == 1
    _, total = send_log_service.list_send_logs(db, PaginationParams(), search="wifi")
    assert total == 0


def test_send_logs_filter_by_user_and_channel(db, sent_reply, test_user, agent_user):
    _, total = send_log_service.list_send_logs(db, PaginationParams(), user_id=test_user.id)
    assert total == 1
    _, total = send_log_service.list_send_logs(db, PaginationParams(), user_id=agent_user.id)
    assert total == 0
    _, total = send_log_service.list_send_logs(db, PaginationParams(), channel="email")
    assert total == 0


@pytest.mark.asyncio
async def test_send_logs_endpoint(agent_client: AsyncClient, sent_reply):
    response = await agent_client.get("/send-logs")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["channel"] == "pms"
    assert body["items"][0]["provider_response"]["success"] is True


# =============================================================================
# Audit logs
# =============================================================================

def test_audit_entity_id_is_stringified(db, test_user):
    import uuid

    entity_id = uuid.uuid4()
    entry = audit_service.log_event(
        db,
        action=AuditAction.THREAD_STATUS_CHANGED,
        entity_type="thread",
        entity_id=entity_id,
        actor_user_id=test_user.id,
    )
    db.commit()

    assert entry.entity_id == str(entity_id)
    assert entry.meta == {}


def test_audit_logs_filter(db, sent_reply, test_user):
    audit_service.log_event(db, AuditAction.KB_ENTRY_CREATED, "kb_entry", "abc")
    db.commit()

    items, total = audit_service.list_audit_logs(db, PaginationParams())
    assert total == 2

    items, total = audit_service.list_audit_logs(
        db, PaginationParams(), action=AuditAction.MESSAGE_APPROVED_AND_SENT.value
    )
    assert total == 1
    assert items[0].entity_id == str(sent_reply.id)

    _, total = audit_service.list_audit_logs(db, PaginationParams(), user_id=test_user.id)
    assert total == 1

    _, total = audit_service.list_audit_logs(db, PaginationParams(), search="kb_")
    assert total == 1


def test_audit_meta_carries_no_reply_text(db, sent_reply):
    entries, _ = audit_service.list_audit_logs(db, PaginationParams())
    for entry in entries:
        assert "door code" not in str(entry.meta)


@pytest.mark.asyncio
async def test_audit_logs_manager_only(agent_client: AsyncClient):
    response = await agent_client.get("/audit-logs")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_audit_logs_endpoint(authed_client: AsyncClient, sent_reply):
    response = await authed_client.get("/audit-logs", params={"entity_type": "message"})

    assert response.status_code == 200
    assert response.json()["total"] == 1


# =============================================================================
# Dashboard
# =============================================================================

def test_dashboard_counts(db, sent_reply, make_thread, make_message, test_client_account):
    pending_thread = make_thread(guest_name="Other Guest")
    message = make_message(pending_thread)
    db.add(ApprovalRequest(message_id=message.id, status="pending"))
    db.commit()

    stats = dashboard_service.get_stats(db, client_id=test_client_account.id)

    assert stats["threads_by_status"]["sent"] == 1
    assert stats["threads_by_status"]["pending"] == 1
    assert stats["threads_by_status"]["declined"] == 0
    assert stats["total_threads"] == 2
    assert stats["pending_approvals"] == 1
    assert stats["sends_last_24h"] == 1
    assert stats["messages_last_24h"] == 2
    assert stats["total_clients"] == 1
    assert stats["total_properties"] == 1


@pytest.mark.asyncio
async def test_dashboard_endpoint(authed_client: AsyncClient, test_property):
    response = await authed_client.get("/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["total_threads"] == 0
    assert body["total_clients"] == 1
    assert body["total_properties"] == 1


# =============================================================================
# Metrics
# =============================================================================

def test_metrics_approval_totals_and_timings(
    db, make_thread, make_message, make_analysis, test_client_account
):
    received = utcnow() - timedelta(hours=1)
    message = make_message(make_thread())
    message.received_at = received
    db.commit()
    make_analysis(message, intent="complaint", risk="high")

    created = received + timedelta(seconds=120)
    decided = received + timedelta(seconds=300)
    db.add_all(
        [
            ApprovalRequest(
                message_id=message.id, status="approved", created_at=created, updated_at=decided
            ),
            ApprovalRequest(
                message_id=message.id, status="rejected", created_at=created, updated_at=decided
            ),
            ApprovalRequest(
                message_id=message.id, status="pending", created_at=created, updated_at=created
            ),
        ]
    )
    db.commit()

    metrics = dashboard_service.get_metrics(db, client_id=test_client_account.id)

    assert metrics["messages"]["total"] == 1
    assert metrics["messages"]["this_month"] == 1
    assert metrics["approvals"] == {
        "total": 3,
        "approved": 1,
        "rejected": 1,
        "pending": 1,
        "approval_rate": 33,
    }
    assert metrics["performance"]["avg_response_time_seconds"] == 120
    assert metrics["performance"]["avg_approval_time_seconds"] == 180
    assert metrics["risks"]["high_risk_this_month"] == 1


def test_metrics_ignore_old_messages(db, make_thread, make_message, make_analysis):
    message = make_message(make_thread())
    message.received_at = utcnow() - timedelta(days=45)
    db.commit()
    make_analysis(message, risk="low")

    metrics = dashboard_service.get_metrics(db)

    assert metrics["messages"]["total"] == 1
    assert metrics["messages"]["this_month"] == 0
    assert metrics["risks"]["high_risk_this_month"] == 0


@pytest.mark.asyncio
async def test_metrics_endpoint_without_activity(agent_client: AsyncClient):
    response = await agent_client.get("/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["approvals"]["approval_rate"] == 0
    assert body["performance"] == {
        "avg_response_time_seconds": 0,
        "avg_approval_time_seconds": 0,
    }
    assert "generated_at" in body


@pytest.mark.asyncio
async def test_metrics_requires_session(client: AsyncClient):
    response = await client.get("/metrics")

    assert response.status_code == 401
