"""Auto-rule endpoint tests: RBAC, CSRF and validation mapping."""

import pytest
from httpx import AsyncClient

from guestdesk.db.models import AutoRule


@pytest.mark.asyncio
async def test_list_requires_authentication(client: AsyncClient, test_client_account):
    response = await client.get("/auto-rules", params={"client_id": str(test_client_account.id)})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_manager_creates_rule(authed_client: AsyncClient, test_client_account, test_property):
    response = await authed_client.post(
        "/auto-rules",
        params={"client_id": str(test_client_account.id)},
        json={
            "property_id": str(test_property.id),
            "intent": "checkin",
            "risk_max": "low",
            "action": "queue",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["client_id"] == str(test_client_account.id)
    assert body["property_id"] == str(test_property.id)
    assert body["intent"] == "checkin"
    assert body["enabled"] is True


@pytest.mark.asyncio
async def test_agent_cannot_create_rule(agent_client: AsyncClient, test_client_account, db):
    response = await agent_client.post(
        "/auto-rules",
        params={"client_id": str(test_client_account.id)},
        json={"action": "queue"},
    )

    assert response.status_code == 403
    assert db.query(AutoRule).count() == 0


@pytest.mark.asyncio
async def test_agent_can_list_rules(agent_client: AsyncClient, test_client_account, db):
    db.add(AutoRule(client_id=test_client_account.id, action="queue", risk_max="low"))
    db.commit()

    response = await agent_client.get(
        "/auto-rules", params={"client_id": str(test_client_account.id)}
    )

    assert response.status_code == 200
    assert len(response.json()) == 1


@pytest.mark.asyncio
async def test_mutation_requires_csrf_header(
    db, test_auth, test_client_account, authed_client: AsyncClient
):
    response = await authed_client.post(
        "/auto-rules",
        params={"client_id": str(test_client_account.id)},
        json={"action": "queue"},
        headers={"X-Requested-With": ""},
    )

    assert response.status_code == 403
    assert "CSRF" in response.json()["detail"]


@pytest.mark.asyncio
async def test_invalid_action_is_bad_request(authed_client: AsyncClient, test_client_account):
    response = await authed_client.post(
        "/auto-rules",
        params={"client_id": str(test_client_account.id)},
        json={"action": "send_now"},
    )

    assert response.status_code == 400
    assert "Invalid action" in response.json()["detail"]


@pytest.mark.asyncio
async def test_patch_and_delete_rule(authed_client: AsyncClient, test_client_account, db):
    rule = AutoRule(client_id=test_client_account.id, action="queue", risk_max="low")
    db.add(rule)
    db.commit()
    rule_id = str(rule.id)

    response = await authed_client.patch(f"/auto-rules/{rule_id}", json={"risk_max": "high"})
    assert response.status_code == 200
    assert response.json()["risk_max"] == "high"

    response = await authed_client.delete(f"/auto-rules/{rule_id}")
    assert response.status_code == 204

    response = await authed_client.get(f"/auto-rules/{rule_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_revoked_session_is_rejected(authed_client: AsyncClient, test_user, test_client_account, db):
    test_user.token_version += 1
    db.commit()

    response = await authed_client.get(
        "/auto-rules", params={"client_id": str(test_client_account.id)}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Session revoked"
